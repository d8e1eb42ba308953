"""Tests for transport module."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from ytstreams.errors import ExtractionError
from ytstreams.transport import DEFAULT_USER_AGENT, Transport, load_cookie_file

COOKIE_FILE = """# Netscape HTTP Cookie File
.youtube.com\tTRUE\t/\tTRUE\t2147483647\tLOGIN_INFO\tlogin
.youtube.com\tTRUE\t/\tTRUE\t2147483647\t__Secure-3PAPISID\tpapisid3
.example.com\tTRUE\t/\tFALSE\t2147483647\tSAPISID\tother
"""


def make_transport(handler) -> Transport:
    return Transport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestCookies:

    @pytest.fixture
    def cookie_path(self, tmp_path):
        path = tmp_path / "cookies.txt"
        path.write_text(COOKIE_FILE)
        return str(path)

    def test_load_cookie_file(self, cookie_path: str) -> None:
        cookies = load_cookie_file(cookie_path)
        assert {c.name for c in cookies.jar} == {"LOGIN_INFO", "__Secure-3PAPISID", "SAPISID"}

    def test_sid_cookies_fall_back_to_3papisid(self, cookie_path: str) -> None:
        transport = Transport(cookies=load_cookie_file(cookie_path))
        # SAPISID of another domain is ignored.
        assert transport.sid_cookies() == ("papisid3", None, "papisid3")
        assert transport.has_auth_cookies
        asyncio.run(transport.aclose())

    def test_no_auth_without_login_info(self) -> None:
        transport = make_transport(lambda request: httpx.Response(200))
        transport.cookies.set("SAPISID", "s", domain=".youtube.com")
        assert not transport.has_auth_cookies

    def test_from_config(self, cookie_path: str) -> None:
        transport = Transport.from_config({"cookiefile": cookie_path, "timeout": 5.0})
        assert transport.youtube_cookie("LOGIN_INFO") == "login"
        asyncio.run(transport.aclose())

    def test_missing_cookie_file(self, tmp_path) -> None:
        with pytest.raises(ExtractionError, match="Unable to load cookie file"):
            load_cookie_file(str(tmp_path / "missing.txt"))

    def test_malformed_cookie_file(self, tmp_path) -> None:
        path = tmp_path / "cookies.txt"
        path.write_text("not a cookie export\n")
        with pytest.raises(ExtractionError):
            load_cookie_file(str(path))


class TestSend:

    def test_default_user_agent(self) -> None:
        transport = Transport()
        assert transport._client.headers["User-Agent"] == DEFAULT_USER_AGENT
        asyncio.run(transport.aclose())

    def test_forwarded_for_header(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport = make_transport(handler)
        asyncio.run(transport.send("GET", "https://www.youtube.com/"))
        transport.x_forwarded_for_ip = "203.0.113.7"
        asyncio.run(transport.send("GET", "https://www.youtube.com/"))
        assert "X-Forwarded-For" not in seen[0].headers
        assert seen[1].headers["X-Forwarded-For"] == "203.0.113.7"

    def test_anonymous_drops_cookies(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport = make_transport(handler)
        transport.cookies.set("SID", "secret", domain=".youtube.com")
        asyncio.run(transport.send("GET", "https://www.youtube.com/"))
        asyncio.run(transport.send("GET", "https://www.youtube.com/", anonymous=True))
        assert "SID=secret" in seen[0].headers["Cookie"]
        assert "Cookie" not in seen[1].headers

    def test_fetch_text_raises_on_error_status(self) -> None:
        transport = make_transport(lambda request: httpx.Response(404))
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(transport.fetch_text("https://www.youtube.com/s/player/x/base.js"))

    def test_fetch_text(self) -> None:
        transport = make_transport(lambda request: httpx.Response(200, text="code"))
        assert asyncio.run(transport.fetch_text("https://www.youtube.com/s/player/x/base.js")) == "code"

    def test_anonymous_redirect_drops_cookies(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/watch":
                return httpx.Response(302, headers={"Location": "/watch2"})
            return httpx.Response(200, text="page")

        transport = make_transport(handler)
        transport.cookies.set("SAPISID", "secret", domain=".youtube.com")
        transport.x_forwarded_for_ip = "203.0.113.7"
        response = asyncio.run(transport.send("GET", "https://www.youtube.com/watch", anonymous=True))
        assert response.status_code == 200
        assert [r.url.path for r in seen] == ["/watch", "/watch2"]
        assert all("Cookie" not in r.headers for r in seen)
        assert seen[1].headers["X-Forwarded-For"] == "203.0.113.7"

    def test_anonymous_redirect_loop_raises(self) -> None:
        transport = Transport(httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(302, headers={"Location": "/loop"})),
            max_redirects=3,
        ))
        with pytest.raises(httpx.TooManyRedirects):
            asyncio.run(transport.send("GET", "https://www.youtube.com/watch", anonymous=True))
