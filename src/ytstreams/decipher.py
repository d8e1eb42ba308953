"""Interface to the player script deciphering engine.

Interpreting the player JavaScript is outside this package. An engine
implements ``Decipherer`` and hands back two pure string transforms.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from ytstreams.utils import parse_query_string, replace_n_sig_query_param, update_url_query

Transform = Callable[[str], str]


@dataclass(frozen=True)
class PlayerTransforms:
    signature: Transform
    n: Transform


class Decipherer(Protocol):
    def derive_transforms(self, player_js: str) -> PlayerTransforms:
        """Analyse *player_js* once and return its transforms."""
        ...


def decipher_signature_cipher(signature_cipher: str, transforms: PlayerTransforms) -> str:
    """Turn a ``signatureCipher`` value into a signed URL.

    Raises:
        ValueError: If the cipher lacks its url or encrypted signature.
    """
    sc = parse_query_string(signature_cipher)
    url, encrypted_sig = sc.get("url"), sc.get("s")
    if not url or not encrypted_sig:
        raise ValueError("signatureCipher is missing url or s")
    return update_url_query(url, {sc.get("sp") or "signature": transforms.signature(encrypted_sig)})


def decipher_n_param(url: str, transforms: PlayerTransforms) -> str:
    n = parse_query_string(url.partition("?")[2]).get("n")
    if not n:
        return url
    return replace_n_sig_query_param(url, transforms.n(n))
