"""Tests for webpage module."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from ytstreams.clients import YtClient, get_client
from ytstreams.errors import BootstrapNotFoundError, WebpageDownloadError
from ytstreams.models import VideoId
from ytstreams.transport import Transport
from ytstreams.webpage import (
    BootstrapPatterns,
    extract_embedded_config,
    extract_initial_data,
    fetch_watch_page,
    get_text,
    search_json,
    traverse,
    watch_page_url,
)

HTML = (
    '<script>ytcfg.set({"INNERTUBE_API_KEY":"X"});</script>'
    '<script>var ytInitialData = {"a": {"b": "}"}, "c": [1, 2]};</script>'
)


class TestExtractEmbeddedConfig:

    def test_ytcfg_found(self) -> None:
        assert extract_embedded_config(HTML) == {"INNERTUBE_API_KEY": "X"}

    def test_absent_returns_empty(self) -> None:
        assert extract_embedded_config("<html></html>") == {}
        assert extract_embedded_config("") == {}

    def test_first_object_wins(self) -> None:
        html = 'ytcfg.set({"A": 1}); ytcfg.set({"B": 2});'
        assert extract_embedded_config(html) == {"A": 1}

    def test_non_object_candidates_skipped(self) -> None:
        html = 'ytcfg.set("LOGGED_IN", false); ytcfg.set({"B": 2});'
        assert extract_embedded_config(html) == {"B": 2}

    def test_swappable_patterns(self) -> None:
        patterns = BootstrapPatterns(ytcfg_start=r"config\s*=\s*", ytcfg_end=r"\s*;")
        assert extract_embedded_config('config = {"k": "v"};', patterns) == {"k": "v"}


class TestExtractInitialData:

    def test_nested_braces_and_strings(self) -> None:
        assert extract_initial_data(HTML) == {"a": {"b": "}"}, "c": [1, 2]}

    def test_window_assignment(self) -> None:
        html = '<script>window["ytInitialData"] = {"x": 1};</script>'
        assert extract_initial_data(html) == {"x": 1}

    def test_terminated_by_script_tag(self) -> None:
        assert extract_initial_data('ytInitialData = {"x": 1}</script>') == {"x": 1}

    def test_absent_raises(self) -> None:
        with pytest.raises(BootstrapNotFoundError):
            extract_initial_data('<script>ytcfg.set({"A": 1});</script>')

    def test_malformed_raises(self) -> None:
        with pytest.raises(BootstrapNotFoundError):
            extract_initial_data("ytInitialData = {broken;")


class TestSearchJson:

    def test_end_pattern_enforced(self) -> None:
        text = 'x = {"a": 1} nope; x = {"b": 2};'
        assert search_json(r"x\s*=\s*", text, r"\s*;") == {"b": 2}

    def test_no_match(self) -> None:
        assert search_json(r"missing\s*=", "nothing here") is None


class TestTraverse:

    def test_keys_and_indices(self) -> None:
        data = {"a": [{"b": 1}, {"b": 2}]}
        assert traverse(data, ("a", 1, "b")) == 2
        assert traverse(data, ("a", -1, "b")) == 2

    def test_misses_return_none(self) -> None:
        data = {"a": [1]}
        assert traverse(data, ("a", 5)) is None
        assert traverse(data, ("x", "y")) is None
        assert traverse(data, ("a", "b")) is None
        assert traverse(None, ("a",)) is None


class TestGetText:

    def test_simple_text(self) -> None:
        assert get_text({"title": {"simpleText": "Hello"}}, "title") == "Hello"

    def test_runs_joined(self) -> None:
        data = {"title": {"runs": [{"text": "Hello"}, {"text": ", "}, {"text": "world"}]}}
        assert get_text(data, "title") == "Hello, world"

    def test_max_runs(self) -> None:
        data = {"title": {"runs": [{"text": "a"}, {"text": "b"}]}}
        assert get_text(data, "title", max_runs=1) == "a"

    def test_first_matching_path(self) -> None:
        data = {"b": {"simpleText": "B"}}
        assert get_text(data, "a", ("b",)) == "B"

    def test_missing(self) -> None:
        assert get_text({"a": {"runs": []}}, "a") is None


class TestFetchWatchPage:

    def test_watch_page_url(self) -> None:
        assert watch_page_url("https://www.youtube.com") == "https://www.youtube.com/watch"
        assert watch_page_url("https://www.youtube.com/") == "https://www.youtube.com/watch"

    def test_request_shape(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=HTML)

        transport = Transport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        transport.cookies.set("SID", "secret", domain=".youtube.com")
        tv = get_client(YtClient.TV)

        html = asyncio.run(fetch_watch_page(transport, "https://www.youtube.com", tv, VideoId("dQw4w9WgXcQ")))

        assert html == HTML
        request = seen[0]
        assert request.url.path == "/watch"
        assert list(request.url.params.multi_items()) == [
            ("bpctr", "9999999999"), ("has_verified", "1"), ("v", "dQw4w9WgXcQ"),
        ]
        assert request.headers["User-Agent"] == tv.authenticated_user_agent
        assert "Cookie" not in request.headers

    def test_redirect_keeps_cookies_off(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/watch":
                return httpx.Response(302, headers={"Location": "/watch2"})
            return httpx.Response(200, text=HTML)

        transport = Transport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        transport.cookies.set("SAPISID", "secret", domain=".youtube.com")

        html = asyncio.run(fetch_watch_page(
            transport, "https://www.youtube.com", get_client(YtClient.WEB), VideoId("dQw4w9WgXcQ")))

        assert html == HTML
        assert [r.url.path for r in seen] == ["/watch", "/watch2"]
        assert all("Cookie" not in r.headers for r in seen)

    def test_error_status_raises(self) -> None:
        transport = Transport(httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))))
        with pytest.raises(WebpageDownloadError):
            asyncio.run(fetch_watch_page(
                transport, "https://www.youtube.com", get_client(YtClient.WEB), VideoId("dQw4w9WgXcQ")))

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = Transport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(WebpageDownloadError):
            asyncio.run(fetch_watch_page(
                transport, "https://www.youtube.com", get_client(YtClient.WEB), VideoId("dQw4w9WgXcQ")))
