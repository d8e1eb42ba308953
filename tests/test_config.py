"""Tests for config module."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from ytstreams.clients import YtClient
from ytstreams.config import (
    load_client_preference,
    load_config,
    load_geo_bypass_ip,
    load_log_level,
    parse_client_names,
)


class TestLoadConfig:

    def test_no_env_vars_returns_default_timeout(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert load_config() == {"timeout": 30.0}

    def test_proxy(self) -> None:
        env = {"YTSTREAMS_PROXY": "http://127.0.0.1:7897"}
        with patch.dict(os.environ, env, clear=True):
            assert load_config()["proxy"] == "http://127.0.0.1:7897"

    def test_cookie_file(self) -> None:
        env = {"YTSTREAMS_COOKIE_FILE": "/tmp/cookies.txt"}
        with patch.dict(os.environ, env, clear=True):
            assert load_config()["cookiefile"] == "/tmp/cookies.txt"

    def test_whitespace_values_ignored(self) -> None:
        env = {"YTSTREAMS_PROXY": "   ", "YTSTREAMS_COOKIE_FILE": ""}
        with patch.dict(os.environ, env, clear=True):
            assert load_config() == {"timeout": 30.0}

    def test_values_stripped(self) -> None:
        env = {"YTSTREAMS_PROXY": "  socks5://127.0.0.1:1080  "}
        with patch.dict(os.environ, env, clear=True):
            assert load_config()["proxy"] == "socks5://127.0.0.1:1080"

    def test_timeout(self) -> None:
        with patch.dict(os.environ, {"YTSTREAMS_TIMEOUT": "12.5"}, clear=True):
            assert load_config()["timeout"] == 12.5

    @pytest.mark.parametrize("value", ["soon", "0", "-3"])
    def test_invalid_timeout(self, value: str) -> None:
        with patch.dict(os.environ, {"YTSTREAMS_TIMEOUT": value}, clear=True):
            with pytest.raises(ValueError, match="YTSTREAMS_TIMEOUT"):
                load_config()


class TestClientPreference:

    def test_parse_names(self) -> None:
        assert parse_client_names("android_vr, WEB ,android_vr,") == (YtClient.ANDROID_VR, YtClient.WEB)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown client 'desktop'"):
            parse_client_names("web,desktop")

    def test_unset_means_all(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert load_client_preference() is None

    def test_from_env(self) -> None:
        with patch.dict(os.environ, {"YTSTREAMS_CLIENTS": "tv,ios"}, clear=True):
            assert load_client_preference() == (YtClient.TV, YtClient.IOS)

    def test_only_separators_means_all(self) -> None:
        with patch.dict(os.environ, {"YTSTREAMS_CLIENTS": " , "}, clear=True):
            assert load_client_preference() is None


class TestOtherSettings:

    def test_geo_bypass_ip(self) -> None:
        with patch.dict(os.environ, {"YTSTREAMS_GEO_BYPASS_IP": "203.0.113.7"}, clear=True):
            assert load_geo_bypass_ip() == "203.0.113.7"
        with patch.dict(os.environ, {}, clear=True):
            assert load_geo_bypass_ip() is None

    def test_log_level(self) -> None:
        with patch.dict(os.environ, {"YTSTREAMS_LOG_LEVEL": "debug"}, clear=True):
            assert load_log_level() == "debug"
        with patch.dict(os.environ, {}, clear=True):
            assert load_log_level() == "info"
