"""
MediaWiki REST Client

Typed request facade over the wiki registry, the credential resolver and
httpx. Every call follows the same one-shot pipeline:

    read active wiki -> resolve auth -> build URL -> send -> decode or fail

Design Goals
------------
- The active wiki is read once per call from an injected source and passed
  explicitly down the pipeline (never cached between calls)
- A session is only requested when cookie auth actually applies
- Non-2xx responses raise MediaWikiHTTPError; transport errors propagate
- The HTML/image helpers are best-effort and expose an explicit FetchResult
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Generic, Mapping, Optional, Protocol, TypeVar

import httpx

from ..config import USER_AGENT, settings
from ..core.errors import raise_for_status
from .auth import AuthMode, resolve_auth, select_auth_mode
from .models import WikiConfig
from .session import SessionProvider, SessionSource
from .utils import get_page_url, rest_api_base

logger = logging.getLogger("mwclient.rest")

T = TypeVar("T")

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class ActiveWikiSource(Protocol):
    def current(self) -> WikiConfig:
        ...


class FetchResult(Generic[T]):
    """
    Outcome of a best-effort fetch: a value on success, the cause on failure.
    """

    __slots__ = ("value", "error")

    def __init__(self, value: Optional[T] = None, error: Optional[BaseException] = None) -> None:
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or_none(self) -> Optional[T]:
        return self.value if self.ok else None

    def __repr__(self) -> str:
        if self.ok:
            return f"FetchResult(ok, {type(self.value).__name__})"
        return f"FetchResult(error={self.error!r})"


# ---------------------------------------------------------------------
# Request Builder
# ---------------------------------------------------------------------

async def send_request(
    client: httpx.AsyncClient,
    base_url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    headers: Optional[Mapping[str, str]] = None,
    body: Optional[Mapping[str, Any]] = None,
    method: str = "GET",
) -> httpx.Response:
    """
    Send a request and fail on any non-2xx status.

    Parameters
    ----------
    client : httpx.AsyncClient
        Client used for transport.

    base_url : str
        Absolute or protocol-relative (`//host/...`, treated as https) URL.

    params : Optional[Mapping[str, str]]
        Query parameters; only appended when non-empty.

    headers : Optional[Mapping[str, str]]
        Extra headers, merged over the User-Agent.

    body : Optional[Mapping[str, Any]]
        JSON body, serialized when present.

    method : str
        HTTP method. Defaults to GET.

    Raises
    ------
    MediaWikiHTTPError
        For any non-2xx response.

    httpx.TransportError
        For network-level failures (not wrapped, not retried).
    """
    url = base_url
    if url.startswith("//"):
        url = "https:" + url

    request_headers: Dict[str, str] = {"User-Agent": USER_AGENT}
    if headers:
        request_headers.update(headers)

    request_kwargs: Dict[str, Any] = {"headers": request_headers}
    if params:
        request_kwargs["params"] = dict(params)
    if body is not None:
        request_kwargs["json"] = dict(body)

    logger.debug("%s %s", method, url)
    request = client.build_request(method, url, **request_kwargs)

    # Streamed so a failing error-body read cannot hide the HTTP status
    response = await client.send(request, stream=True)
    try:
        await raise_for_status(response)
    finally:
        await response.aclose()
    return response


# ---------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------

class MediaWikiRestClient:
    """
    Auth-aware REST client for whichever wiki is currently active.
    """

    def __init__(
        self,
        wikis: ActiveWikiSource,
        sessions: Optional[SessionSource] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Parameters
        ----------
        wikis : ActiveWikiSource
            Source of the active wiki (usually a WikiRegistry). Read on
            every call.

        sessions : Optional[SessionSource]
            Provides cookie sessions for cookie-authenticated wikis. Without
            one, cookie-mode requests go out anonymously.

        transport : Optional[httpx.AsyncBaseTransport]
            Optional transport override (tests use httpx.MockTransport).

        timeout : Optional[float]
            Request timeout in seconds. Defaults to settings.request_timeout.
        """
        self._wikis = wikis
        self._sessions = sessions
        self._transport = transport
        self._timeout = timeout if timeout is not None else settings.request_timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            follow_redirects=True,
        )

    async def _send(self, url: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            return await send_request(client, url, **kwargs)

    async def _session_for(self, config: WikiConfig, need_auth: bool) -> Optional[SessionProvider]:
        if self._sessions is None or select_auth_mode(config, need_auth) is not AuthMode.COOKIE:
            return None
        return await self._sessions.get_session(config)

    async def _rest_request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str],
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, str]] = None,
        need_auth: bool = False,
    ) -> Any:
        config = self._wikis.current()
        session = await self._session_for(config, need_auth)
        auth = await resolve_auth(config, headers, body, need_auth, session)

        response = await self._send(
            f"{rest_api_base(config)}{path}",
            params=params,
            headers=auth.headers,
            body=auth.body,
            method=method,
        )
        return response.json()

    # ------------------------------------------------------------------
    # Typed entry points
    # ------------------------------------------------------------------

    async def api_request(self, url: str, params: Optional[Mapping[str, str]] = None) -> Any:
        """GET an arbitrary JSON endpoint (e.g. the Action API) without auth."""
        response = await self._send(url, params=params, headers={"Accept": "application/json"})
        return response.json()

    async def rest_get(
        self,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        need_auth: bool = False,
    ) -> Any:
        """
        GET `path` relative to the active wiki's REST API base.

        Credentials are attached when `need_auth` is set or the wiki is private.
        """
        return await self._rest_request(
            "GET",
            path,
            headers={"Accept": "application/json"},
            params=params,
            need_auth=need_auth,
        )

    async def rest_put(
        self,
        path: str,
        body: Mapping[str, Any],
        need_auth: bool = False,
    ) -> Any:
        return await self._rest_request(
            "PUT",
            path,
            headers=JSON_HEADERS,
            body=body,
            need_auth=need_auth,
        )

    async def rest_post(
        self,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        need_auth: bool = False,
    ) -> Any:
        return await self._rest_request(
            "POST",
            path,
            headers=JSON_HEADERS,
            body=body,
            need_auth=need_auth,
        )

    # ------------------------------------------------------------------
    # Best-effort helpers (no auth, never raise)
    # ------------------------------------------------------------------

    async def fetch_page_html_result(self, url: str) -> FetchResult[str]:
        try:
            response = await self._send(url)
            return FetchResult(value=response.text)
        except Exception as exc:
            logger.debug("Fetching HTML from %s failed: %s", url, type(exc).__name__)
            return FetchResult(error=exc)

    async def fetch_page_html(self, url: str) -> Optional[str]:
        return (await self.fetch_page_html_result(url)).value_or_none()

    async def fetch_image_as_base64_result(self, url: str) -> FetchResult[str]:
        try:
            response = await self._send(url)
            return FetchResult(value=base64.b64encode(response.content).decode("ascii"))
        except Exception as exc:
            logger.debug("Fetching image from %s failed: %s", url, type(exc).__name__)
            return FetchResult(error=exc)

    async def fetch_image_as_base64(self, url: str) -> Optional[str]:
        """Fetch an image and return it base64-encoded, or None on any failure."""
        return (await self.fetch_image_as_base64_result(url)).value_or_none()

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def rest_api_base(self) -> str:
        return rest_api_base(self._wikis.current())

    def page_url(self, title: str) -> str:
        return get_page_url(self._wikis.current(), title)
