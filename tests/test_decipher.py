"""Tests for decipher and pot modules."""

import asyncio

import pytest

from ytstreams.decipher import PlayerTransforms, decipher_n_param, decipher_signature_cipher
from ytstreams.pot import NoPoTokenProvider, PoTokenContext, PoTokenRequest, StaticPoTokenProvider

TRANSFORMS = PlayerTransforms(signature=lambda s: s[::-1], n=lambda n: n + "!")


class TestDecipherSignatureCipher:

    def test_named_signature_param(self) -> None:
        cipher = "s=321&sp=sig&url=https%3A%2F%2Fh%2Fvideoplayback%3Fitag%3D18"
        assert decipher_signature_cipher(cipher, TRANSFORMS) == "https://h/videoplayback?itag=18&sig=123"

    def test_default_signature_param(self) -> None:
        cipher = "s=321&url=https%3A%2F%2Fh%2Fvideoplayback%3Fitag%3D18"
        assert decipher_signature_cipher(cipher, TRANSFORMS) == "https://h/videoplayback?itag=18&signature=123"

    @pytest.mark.parametrize("cipher", ["s=321", "url=https%3A%2F%2Fh%2Fv", ""])
    def test_incomplete_cipher(self, cipher: str) -> None:
        with pytest.raises(ValueError):
            decipher_signature_cipher(cipher, TRANSFORMS)


class TestDecipherNParam:

    def test_rewrites_n(self) -> None:
        assert decipher_n_param("https://h/v?a=1&n=abc", TRANSFORMS) == "https://h/v?a=1&n=abc%21"

    def test_without_n(self) -> None:
        assert decipher_n_param("https://h/v?a=1", TRANSFORMS) == "https://h/v?a=1"


class TestPoTokenProviders:

    request = PoTokenRequest(context=PoTokenContext.GVS, client_name="web", video_id="dQw4w9WgXcQ")

    def test_no_provider_declines(self) -> None:
        assert asyncio.run(NoPoTokenProvider().fetch_pot(self.request)) is None

    def test_static_provider(self) -> None:
        provider = StaticPoTokenProvider({PoTokenContext.GVS: "tok"})
        assert asyncio.run(provider.fetch_pot(self.request)) == "tok"
        player_request = PoTokenRequest(
            context=PoTokenContext.PLAYER, client_name="web", video_id="dQw4w9WgXcQ")
        assert asyncio.run(provider.fetch_pot(player_request)) is None
