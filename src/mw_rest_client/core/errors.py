"""
Client Error Hierarchy

This module defines the exceptions raised by the MediaWiki REST client.

Design Goals
------------
- One base class callers can catch for any client-side failure
- Structured attributes on HTTP failures (status, URL, body)
- Transport errors from httpx are NOT wrapped; they propagate as-is
- Missing session material is not an error and has no exception type
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger("mwclient.errors")

UNREADABLE_BODY_PLACEHOLDER = "Could not read error response body"


# ---------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------

class MediaWikiClientError(RuntimeError):
    """Base exception for MediaWiki client failures."""


# ---------------------------------------------------------------------
# Request Errors
# ---------------------------------------------------------------------

class MediaWikiHTTPError(MediaWikiClientError):
    """
    Raised when a MediaWiki endpoint answers with a non-2xx status.

    Attributes
    ----------
    status_code : int
        HTTP status returned by the server.

    url : str
        Effective URL of the response (after redirects).

    body : str
        Best-effort response body text.
    """

    def __init__(self, status_code: int, url: str, body: str) -> None:
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(
            f"HTTP error! status: {status_code} for URL: {url}. Response: {body}"
        )


class CsrfTokenError(MediaWikiClientError):
    """Raised when the token endpoint does not yield a CSRF token."""


class MediaWikiLoginError(MediaWikiClientError):
    """Raised when a bot-password login is rejected."""

    def __init__(self, result: str, reason: Optional[str] = None) -> None:
        self.result = result
        self.reason = reason
        message = f"Login failed: {result}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# ---------------------------------------------------------------------
# Registry / Configuration Errors
# ---------------------------------------------------------------------

class WikiRegistryError(MediaWikiClientError):
    """Raised when the wiki registry is asked to do something invalid."""


class WikiNotFoundError(WikiRegistryError, KeyError):
    """Raised when a wiki key is not present in the registry."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown wiki: '{key}'")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class ConfigLoadError(MediaWikiClientError):
    """Raised when the wiki configuration file cannot be read or validated."""


# ---------------------------------------------------------------------
# Response Checking
# ---------------------------------------------------------------------

async def raise_for_status(response: httpx.Response) -> httpx.Response:
    """
    Read the response body and raise MediaWikiHTTPError for any non-2xx status.

    Works on streamed responses. On success the body is read normally and
    read errors propagate. On failure the body is read best-effort; if
    reading it fails the placeholder text is used so the HTTP failure
    itself is never masked.

    Parameters
    ----------
    response : httpx.Response
        Response to check.

    Returns
    -------
    httpx.Response
        The same response, when successful.
    """
    if response.is_success:
        await response.aread()
        return response

    try:
        await response.aread()
        body = response.text
    except Exception:
        logger.debug("Failed to read error body from %s", response.url, exc_info=True)
        body = UNREADABLE_BODY_PLACEHOLDER

    raise MediaWikiHTTPError(response.status_code, str(response.url), body)
