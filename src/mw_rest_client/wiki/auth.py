"""
Credential Resolution

Decides, per request, whether authentication must be attached and how, and
builds the augmented headers/body.

Policy
------
1. `need_auth` is False and the wiki is not private -> anonymous request.
2. The wiki has an OAuth2 `token` -> `Authorization: Bearer <token>`.
3. Otherwise cookie session auth: attach the session's cookies and, for
   requests with a body, a freshly fetched CSRF `token` field. With no
   cookies available the request goes out anonymously and the wiki's own
   permission checks decide.

The mode depends only on `(need_auth, private, token)`; request content is
never consulted. Input mappings are never mutated.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import WikiConfig
from .session import SessionProvider
from .utils import rest_api_base

logger = logging.getLogger("mwclient.auth")


class AuthMode(str, enum.Enum):
    NONE = "none"
    BEARER = "bearer"
    COOKIE = "cookie"


class AuthenticatedRequest(BaseModel):
    """
    Request-scoped headers and body after credential resolution.

    Built fresh for every call and never reused.
    """

    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------
# Mode Selection
# ---------------------------------------------------------------------

def select_auth_mode(config: WikiConfig, need_auth: bool) -> AuthMode:
    if not need_auth and not config.private:
        return AuthMode.NONE
    if config.token is not None:
        return AuthMode.BEARER
    return AuthMode.COOKIE


# ---------------------------------------------------------------------
# Session Material
# ---------------------------------------------------------------------

def cookies_for_wiki(config: WikiConfig, session: SessionProvider) -> Optional[str]:
    """
    Return the session cookies to send to a wiki's REST API.

    Looks up cookies for the REST API base URL first, then for the bare
    server origin (cookies set without a path, or on the domain). Returns
    None when neither yields anything.
    """
    cookies = session.cookies_for(rest_api_base(config))
    if cookies:
        return cookies

    return session.cookies_for(config.server) or None


async def csrf_token(session: SessionProvider) -> str:
    # Not cached: each write gets a fresh token
    return await session.fetch_csrf_token()


# ---------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------

async def resolve_auth(
    config: WikiConfig,
    headers: Mapping[str, str],
    body: Optional[Mapping[str, Any]],
    need_auth: bool,
    session: Optional[SessionProvider] = None,
) -> AuthenticatedRequest:
    """
    Attach credentials for `config` to a request.

    Parameters
    ----------
    config : WikiConfig
        Configuration of the wiki the request targets.

    headers : Mapping[str, str]
        Base request headers.

    body : Optional[Mapping[str, Any]]
        JSON body of a mutating request, or None.

    need_auth : bool
        True when the operation always requires a logged-in user (e.g. edits).

    session : Optional[SessionProvider]
        Session used for cookie auth. Only consulted in cookie mode; with no
        session the request proceeds anonymously.

    Returns
    -------
    AuthenticatedRequest
        New headers/body; the inputs are left untouched.

    Raises
    ------
    Exception
        Whatever the session raises while fetching a CSRF token.
    """
    mode = select_auth_mode(config, need_auth)
    new_headers = dict(headers)
    new_body = dict(body) if body is not None else None

    if mode is AuthMode.NONE:
        return AuthenticatedRequest(headers=new_headers, body=new_body)

    if mode is AuthMode.BEARER:
        new_headers["Authorization"] = f"Bearer {config.token}"
        logger.debug("Using OAuth2 bearer auth for %s", config.server)
        return AuthenticatedRequest(headers=new_headers, body=new_body)

    cookies = cookies_for_wiki(config, session) if session is not None else None
    if cookies is None:
        logger.debug("No session cookies for %s; sending request without auth", config.server)
        return AuthenticatedRequest(headers=new_headers, body=new_body)

    new_headers["Cookie"] = cookies
    if new_body is not None:
        new_body["token"] = await csrf_token(session)

    logger.debug("Using cookie session auth for %s", config.server)
    return AuthenticatedRequest(headers=new_headers, body=new_body)
