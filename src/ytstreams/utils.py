"""Query-string codec, URL rewriting and MIME helpers."""

from __future__ import annotations

import urllib.parse
from typing import Mapping, Optional

from yt_dlp.utils import filesize_from_tbr, mimetype2ext
from yt_dlp.utils import update_url_query as _update_url_query

DEFAULT_EXT = "unknown_video"


def parse_query_string(qs: str) -> dict[str, str]:
    """Decode ``a=1&b=2`` into a dict. Later duplicates win."""
    return dict(urllib.parse.parse_qsl(qs, keep_blank_values=True))


def convert_to_query_string(params: Mapping[str, str]) -> str:
    return urllib.parse.urlencode(params)


def replace_n_sig_query_param(url_with_sig: str, deciphered_n: str) -> str:
    """Swap the value of the ``n`` query parameter.

    Other parameters keep their original encoding and order. A URL without
    an ``n`` parameter is returned unchanged.
    """
    parts = urllib.parse.urlsplit(url_with_sig)
    pieces = parts.query.split("&") if parts.query else []
    replaced = False
    for i, piece in enumerate(pieces):
        if urllib.parse.unquote_plus(piece.split("=", 1)[0]) == "n":
            pieces[i] = "n=" + urllib.parse.quote(deciphered_n, safe="")
            replaced = True
    if not replaced:
        return url_with_sig
    return urllib.parse.urlunsplit(parts._replace(query="&".join(pieces)))


def update_url_query(url: str, params: Mapping[str, str]) -> str:
    """Set (or append) query parameters."""
    return _update_url_query(url, params)


def file_size_from_tbr(tbr: Optional[float], duration: Optional[float]) -> Optional[int]:
    """Approximate size in bytes from kbit/s bitrate and seconds."""
    return filesize_from_tbr(tbr, duration)


def mime_type_to_ext(mime_type: str) -> str:
    """Map a MIME type to a file extension.

    Tries the full type, then the subtype, then the part after ``+``.
    """
    return mimetype2ext(mime_type, default=DEFAULT_EXT)
