"""httpx-backed request primitive shared by the webpage and API paths."""

from __future__ import annotations

import http.cookiejar
import logging
from typing import Any, Mapping, Optional

import httpx

from ytstreams.errors import ExtractionError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
YOUTUBE_COOKIE_DOMAIN = "youtube.com"


def load_cookie_file(path: str) -> httpx.Cookies:
    """Load a Netscape/Mozilla cookies.txt export.

    Raises:
        ExtractionError: If the file is missing, unreadable or malformed.
    """
    jar = http.cookiejar.MozillaCookieJar(path)
    try:
        jar.load(ignore_discard=True, ignore_expires=True)
    except OSError as exc:  # includes http.cookiejar.LoadError
        raise ExtractionError(f"Unable to load cookie file {path}: {exc}") from exc
    return httpx.Cookies(jar)


class Transport:
    """Thin wrapper over ``httpx.AsyncClient``.

    ``x_forwarded_for_ip`` is left unset until a geo restriction has been
    seen; once set it is sent with every request.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        proxy: Optional[str] = None,
        cookies: Optional[httpx.Cookies] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                proxy=proxy,
                timeout=timeout,
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
            )
        if cookies is not None:
            client.cookies.update(cookies)
        self._client = client
        self.x_forwarded_for_ip: Optional[str] = None

    @classmethod
    def from_config(cls, opts: Mapping[str, Any]) -> Transport:
        """Build from the dict returned by ``config.load_config``."""
        cookies = load_cookie_file(opts["cookiefile"]) if opts.get("cookiefile") else None
        return cls(
            proxy=opts.get("proxy"),
            cookies=cookies,
            timeout=opts.get("timeout", DEFAULT_TIMEOUT),
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def youtube_cookie(self, name: str) -> Optional[str]:
        for cookie in self._client.cookies.jar:
            if cookie.name == name and cookie.domain.lstrip(".").endswith(YOUTUBE_COOKIE_DOMAIN):
                return cookie.value
        return None

    def sid_cookies(self) -> tuple[Optional[str], Optional[str], Optional[str]]:
        """(SAPISID, __Secure-1PAPISID, __Secure-3PAPISID).

        SAPISID is sometimes missing while __Secure-3PAPISID is present; the
        site falls back to the latter as well.
        """
        sapisid = self.youtube_cookie("SAPISID")
        papisid_1p = self.youtube_cookie("__Secure-1PAPISID")
        papisid_3p = self.youtube_cookie("__Secure-3PAPISID")
        return sapisid or papisid_3p, papisid_1p, papisid_3p

    @property
    def has_auth_cookies(self) -> bool:
        # 3PAPISID survives rotation but LOGIN_INFO does not.
        has_login_info = self.youtube_cookie("LOGIN_INFO") is not None
        return has_login_info and any(self.sid_cookies())

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Any = None,
        json: Any = None,
        anonymous: bool = False,
    ) -> httpx.Response:
        """Issue one request.

        ``anonymous`` drops the cookie header on the request and on every
        redirect it leads to.
        """
        request_headers = dict(headers or {})
        if self.x_forwarded_for_ip:
            request_headers["X-Forwarded-For"] = self.x_forwarded_for_ip
        request = self._client.build_request(
            method, url, headers=request_headers, params=params, json=json
        )
        logger.debug("%s %s", method, request.url)
        if not anonymous:
            return await self._client.send(request)

        # httpx re-attaches the jar's cookies when it builds a redirect.
        for _ in range(self._client.max_redirects + 1):
            request.headers.pop("Cookie", None)
            response = await self._client.send(request, follow_redirects=False)
            if response.next_request is None:
                return response
            await response.aclose()
            request = response.next_request
            logger.debug("Redirected to %s", request.url)
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects", request=request)

    async def fetch_text(self, url: str, headers: Optional[Mapping[str, str]] = None) -> str:
        response = await self.send("GET", url, headers=headers)
        response.raise_for_status()
        return response.text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
