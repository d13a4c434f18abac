from urllib.parse import parse_qs

import httpx
import pytest

from mw_rest_client.core.errors import CsrfTokenError, MediaWikiHTTPError, MediaWikiLoginError
from mw_rest_client.wiki.auth import cookies_for_wiki
from mw_rest_client.wiki.models import WikiConfig
from mw_rest_client.wiki.session import MediaWikiSession, SessionPool

SERVER = "https://wiki.example.org"
API_URL = f"{SERVER}/w/api.php"


def make_config(**overrides):
    fields = {
        "sitename": "Example Wiki",
        "server": SERVER,
        "articlepath": "/wiki",
        "scriptpath": "/w",
    }
    fields.update(overrides)
    return WikiConfig(**fields)


class FakeWiki:
    """Minimal Action API login + token endpoint."""

    def __init__(self, login_result="Success", csrf="csrf-123+\\", cookie_path="/"):
        self.login_result = login_result
        self.csrf = csrf
        self.cookie_path = cookie_path
        self.requests = []
        self.logins = []

    def __call__(self, request):
        self.requests.append(request)
        if request.method == "POST":
            form = parse_qs(request.content.decode())
            self.logins.append(form)
            body = {"login": {"result": self.login_result, "lgusername": "Bot"}}
            if self.login_result != "Success":
                body["login"]["reason"] = "Incorrect username or password entered."
                return httpx.Response(200, json=body)
            return httpx.Response(
                200,
                json=body,
                headers={"Set-Cookie": f"wikiSession=abc123; Path={self.cookie_path}; HttpOnly"},
            )

        token_type = request.url.params.get("type")
        if token_type == "login":
            return httpx.Response(200, json={"query": {"tokens": {"logintoken": "login-tok+\\"}}})
        if token_type == "csrf":
            if self.csrf is None:
                return httpx.Response(200, json={"error": {"code": "badtoken", "info": "nope"}})
            return httpx.Response(200, json={"query": {"tokens": {"csrftoken": self.csrf}}})
        return httpx.Response(400, text="unexpected request")


# ---------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_stores_session_cookie():
    wiki = FakeWiki()
    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(wiki))

    await session.login("Bot@tool", "secret")

    form = wiki.logins[0]
    assert form["action"] == ["login"]
    assert form["lgname"] == ["Bot@tool"]
    assert form["lgpassword"] == ["secret"]
    assert form["lgtoken"] == ["login-tok+\\"]
    assert session.cookies.get("wikiSession") == "abc123"
    assert session.cookies_for(f"{SERVER}/w/rest.php") == "wikiSession=abc123"
    await session.aclose()


@pytest.mark.asyncio
async def test_login_failure_raises():
    wiki = FakeWiki(login_result="Failed")
    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(wiki))

    with pytest.raises(MediaWikiLoginError) as excinfo:
        await session.login("Bot@tool", "wrong")

    assert excinfo.value.result == "Failed"
    assert "Incorrect username" in str(excinfo.value)
    await session.aclose()


# ---------------------------------------------------------------------
# Cookie scoping
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_path_scoped_cookie_only_matches_rest_url():
    wiki = FakeWiki(cookie_path="/w/rest.php")
    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(wiki))
    await session.login("Bot@tool", "secret")

    assert session.cookies_for(f"{SERVER}/w/rest.php/v1/page/Foo") == "wikiSession=abc123"
    assert session.cookies_for(SERVER) is None
    await session.aclose()


@pytest.mark.asyncio
async def test_cookies_for_wiki_with_real_jar():
    wiki = FakeWiki()
    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(wiki))

    assert cookies_for_wiki(make_config(), session) is None

    await session.login("Bot@tool", "secret")

    assert cookies_for_wiki(make_config(), session) == "wikiSession=abc123"
    assert session.cookies_for("https://elsewhere.example.net") is None
    await session.aclose()


# ---------------------------------------------------------------------
# CSRF
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_csrf_token_hits_api_every_time():
    wiki = FakeWiki(csrf="csrf-xyz+\\")
    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(wiki))

    assert await session.fetch_csrf_token() == "csrf-xyz+\\"
    assert await session.fetch_csrf_token() == "csrf-xyz+\\"

    csrf_requests = [r for r in wiki.requests if r.url.params.get("type") == "csrf"]
    assert len(csrf_requests) == 2
    assert str(csrf_requests[0].url).startswith(API_URL)
    await session.aclose()


@pytest.mark.asyncio
async def test_fetch_csrf_token_api_error_raises():
    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(FakeWiki(csrf=None)))

    with pytest.raises(CsrfTokenError, match="badtoken"):
        await session.fetch_csrf_token()
    await session.aclose()


@pytest.mark.asyncio
async def test_fetch_csrf_token_http_error_raises():
    def handler(request):
        return httpx.Response(503, text="Service Unavailable")

    session = MediaWikiSession(make_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(MediaWikiHTTPError) as excinfo:
        await session.fetch_csrf_token()
    assert excinfo.value.status_code == 503
    await session.aclose()


@pytest.mark.asyncio
async def test_oauth_session_sends_bearer_header():
    wiki = FakeWiki()
    session = MediaWikiSession(make_config(token="oauth-tok"), transport=httpx.MockTransport(wiki))

    await session.fetch_csrf_token()

    assert wiki.requests[0].headers["Authorization"] == "Bearer oauth-tok"
    await session.aclose()


# ---------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_pool_logs_in_once_per_wiki():
    wiki = FakeWiki()
    pool = SessionPool(transport=httpx.MockTransport(wiki))
    config = make_config(username="Bot@tool", password="secret")

    first = await pool.get_session(config)
    second = await pool.get_session(config)

    assert first is second
    assert len(wiki.logins) == 1
    assert first.cookies_for(f"{SERVER}/w/rest.php") == "wikiSession=abc123"
    await pool.aclose()


@pytest.mark.asyncio
async def test_pool_skips_login_without_credentials_or_with_token():
    wiki = FakeWiki()
    pool = SessionPool(transport=httpx.MockTransport(wiki))

    await pool.get_session(make_config())
    await pool.get_session(
        make_config(server="https://oauth.example.org", token="t", username="u", password="p")
    )

    assert wiki.logins == []
    await pool.aclose()


@pytest.mark.asyncio
async def test_pool_does_not_keep_failed_login():
    wiki = FakeWiki(login_result="Failed")
    pool = SessionPool(transport=httpx.MockTransport(wiki))
    config = make_config(username="Bot@tool", password="wrong")

    with pytest.raises(MediaWikiLoginError):
        await pool.get_session(config)

    wiki.login_result = "Success"
    session = await pool.get_session(config)
    assert session.cookies_for(SERVER) == "wikiSession=abc123"
    await pool.aclose()


@pytest.mark.asyncio
async def test_pool_logs_in_again_when_credentials_change():
    wiki = FakeWiki()
    pool = SessionPool(transport=httpx.MockTransport(wiki))

    first = await pool.get_session(make_config(username="BotA@tool", password="a"))
    second = await pool.get_session(make_config(username="BotB@tool", password="b"))

    assert first is not second
    assert [form["lgname"] for form in wiki.logins] == [["BotA@tool"], ["BotB@tool"]]
    await pool.aclose()


@pytest.mark.asyncio
async def test_pool_logs_in_once_credentials_are_added():
    wiki = FakeWiki()
    pool = SessionPool(transport=httpx.MockTransport(wiki))

    anonymous = await pool.get_session(make_config())
    assert wiki.logins == []
    assert anonymous.cookies_for(SERVER) is None

    authed = await pool.get_session(make_config(username="Bot@tool", password="secret"))

    assert authed is not anonymous
    assert len(wiki.logins) == 1
    assert authed.cookies_for(SERVER) == "wikiSession=abc123"
    await pool.aclose()
