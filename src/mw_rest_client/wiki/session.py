"""
MediaWiki Session Client

This module provides the session material the request layer needs for
cookie-based authentication: a cookie jar scoped per wiki and a CSRF token
fetch primitive.

Design Goals
------------
- The request layer depends only on the two-capability `SessionProvider`
  protocol, never on the concrete client below
- Cookie lookup is synchronous; CSRF fetches are always a network round trip
- CSRF tokens are never cached here
- Login failures and token failures raise; they are not swallowed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Tuple

import httpx

from ..config import USER_AGENT, settings
from ..core.errors import CsrfTokenError, MediaWikiLoginError, raise_for_status
from .models import WikiConfig
from .utils import action_api_url

logger = logging.getLogger("mwclient.session")

# (action API URL, token, username, password)
SessionKey = Tuple[str, Optional[str], Optional[str], Optional[str]]


# ---------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------

class SessionProvider(Protocol):
    """Session capabilities consumed by the credential resolver."""

    def cookies_for(self, url: str) -> Optional[str]:
        """Return the Cookie header value the jar would send to `url`, or None."""
        ...

    async def fetch_csrf_token(self) -> str:
        """Fetch a fresh CSRF token. Raises on failure."""
        ...


class SessionSource(Protocol):
    """Hands out the session for a given wiki."""

    async def get_session(self, config: WikiConfig) -> SessionProvider:
        ...


# ---------------------------------------------------------------------
# httpx-backed session
# ---------------------------------------------------------------------

class MediaWikiSession:
    """
    Cookie-holding Action API session for a single wiki.

    The underlying httpx.AsyncClient owns the cookie jar; every response
    (login included) updates it.
    """

    def __init__(
        self,
        config: WikiConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Parameters
        ----------
        config : WikiConfig
            The wiki this session talks to.

        transport : Optional[httpx.AsyncBaseTransport]
            Optional transport override (tests use httpx.MockTransport).

        timeout : Optional[float]
            Request timeout in seconds. Defaults to settings.request_timeout.
        """
        self._config = config
        self.api_url = action_api_url(config)

        headers = {"User-Agent": USER_AGENT}
        if config.token is not None:
            headers["Authorization"] = f"Bearer {config.token}"

        self._client = httpx.AsyncClient(
            headers=headers,
            transport=transport,
            timeout=timeout if timeout is not None else settings.request_timeout,
            follow_redirects=True,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    # ------------------------------------------------------------------
    # SessionProvider
    # ------------------------------------------------------------------

    def cookies_for(self, url: str) -> Optional[str]:
        # Let the jar apply its own domain/path/secure matching rules
        request = httpx.Request("GET", url)
        self._client.cookies.set_cookie_header(request)
        return request.headers.get("Cookie") or None

    async def fetch_csrf_token(self) -> str:
        """
        Fetch a fresh CSRF token from the Action API.

        Raises
        ------
        CsrfTokenError
            If the API answers without a token.

        MediaWikiHTTPError
            If the token endpoint returns a non-2xx status.
        """
        data = await self._get_json({"action": "query", "meta": "tokens", "type": "csrf"})

        if "error" in data:
            raise CsrfTokenError(
                f"CSRF token request failed: {data['error'].get('code', 'unknown')}"
            )

        token = data.get("query", {}).get("tokens", {}).get("csrftoken")
        if not token:
            raise CsrfTokenError(f"No CSRF token returned by {self.api_url}")

        return token

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> None:
        """
        Log in with a bot password (Special:BotPasswords).

        Session cookies set by the wiki land in this session's jar.

        Raises
        ------
        MediaWikiLoginError
            If MediaWiki does not report `Success`.
        """
        data = await self._get_json({"action": "query", "meta": "tokens", "type": "login"})
        login_token = data.get("query", {}).get("tokens", {}).get("logintoken")
        if not login_token:
            raise MediaWikiLoginError("NoLoginToken", f"no login token from {self.api_url}")

        data = await self._post_json(
            {
                "action": "login",
                "lgname": username,
                "lgpassword": password,
                "lgtoken": login_token,
            }
        )

        result = data.get("login", {})
        if result.get("result") != "Success":
            reason = result.get("reason")
            if isinstance(reason, dict):
                reason = reason.get("text") or reason.get("code")
            raise MediaWikiLoginError(result.get("result", "Unknown"), reason)

        logger.info("Logged in to %s as %s", self._config.server, result.get("lgusername", username))

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get_json(self, params: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._client.get(
            self.api_url,
            params={**params, "format": "json", "formatversion": "2"},
        )
        await raise_for_status(resp)
        return resp.json()

    async def _post_json(self, data: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._client.post(
            self.api_url,
            data={**data, "format": "json", "formatversion": "2"},
        )
        await raise_for_status(resp)
        return resp.json()


# ---------------------------------------------------------------------
# Session Pool
# ---------------------------------------------------------------------

class SessionPool:
    """
    Lazily creates one MediaWikiSession per wiki and keeps it for reuse.

    Sessions are keyed by the wiki's Action API URL together with its
    credentials, so replacing a wiki's token or bot password yields a new
    session instead of reusing one logged in as another account. A session
    for a wiki with a bot-password pair (and no OAuth2 token) is logged in
    on creation.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        self._sessions: Dict[SessionKey, MediaWikiSession] = {}
        self._lock = asyncio.Lock()

    async def get_session(self, config: WikiConfig) -> MediaWikiSession:
        key: SessionKey = (action_api_url(config), config.token, config.username, config.password)

        async with self._lock:
            session = self._sessions.get(key)
            if session is not None:
                return session

            session = MediaWikiSession(config, transport=self._transport, timeout=self._timeout)
            if config.token is None and config.username and config.password:
                try:
                    await session.login(config.username, config.password)
                except BaseException:
                    await session.aclose()
                    raise

            self._sessions[key] = session
            return session

    async def aclose(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            await session.aclose()
