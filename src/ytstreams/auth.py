"""Cookie-derived authorization headers for Innertube requests."""

from __future__ import annotations

import hashlib
import time
from typing import Any, Mapping, Optional

from ytstreams.errors import AuthRequiredError
from ytstreams.ytcfg import (
    extract_delegated_session_id,
    extract_session_index,
    extract_user_session_id,
)

SidCookies = tuple[Optional[str], Optional[str], Optional[str]]


def make_sid_authorization(
    scheme: str,
    sid: str,
    origin: str,
    additional_parts: Mapping[str, str],
    timestamp: Optional[int] = None,
) -> str:
    timestamp = str(round(time.time()) if timestamp is None else timestamp)

    hash_parts = []
    if additional_parts:
        hash_parts.append(":".join(additional_parts.values()))
    hash_parts.extend([timestamp, sid, origin])
    sidhash = hashlib.sha1(" ".join(hash_parts).encode()).hexdigest()

    parts = [timestamp, sidhash]
    if additional_parts:
        parts.append("".join(additional_parts))
    return f"{scheme} {'_'.join(parts)}"


def sid_authorization_header(
    sid_cookies: SidCookies,
    origin: str,
    user_session_id: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> Optional[str]:
    """Session ID authorization. Assumes every request is https."""
    additional_parts = {"u": user_session_id} if user_session_id else {}
    sapisid, papisid_1p, papisid_3p = sid_cookies
    authorizations = [
        make_sid_authorization(scheme, sid, origin, additional_parts, timestamp)
        for scheme, sid in (
            ("SAPISIDHASH", sapisid),
            ("SAPISID1PHASH", papisid_1p),
            ("SAPISID3PHASH", papisid_3p),
        )
        if sid
    ]
    return " ".join(authorizations) if authorizations else None


def generate_cookie_auth_headers(
    ytcfg: Optional[Mapping[str, Any]],
    *,
    sid_cookies: SidCookies,
    origin: str,
    delegated_session_id: Optional[str] = None,
    user_session_id: Optional[str] = None,
    session_index: Optional[int] = None,
    require_auth: bool = False,
) -> dict[str, str]:
    """Headers proving the cookie session.

    Raises:
        AuthRequiredError: If *require_auth* is set and no SID cookie exists.
    """
    headers: dict[str, str] = {}
    delegated_session_id = delegated_session_id or extract_delegated_session_id(ytcfg)
    if delegated_session_id:
        headers["X-Goog-PageId"] = delegated_session_id
    if session_index is None:
        session_index = extract_session_index(ytcfg)
    if delegated_session_id or session_index is not None:
        headers["X-Goog-AuthUser"] = str(session_index if session_index is not None else 0)

    auth = sid_authorization_header(
        sid_cookies, origin, user_session_id=user_session_id or extract_user_session_id(ytcfg)
    )
    if auth is None:
        if require_auth:
            raise AuthRequiredError("Authenticated headers requested but no session cookies are present")
        return headers
    headers["Authorization"] = auth
    headers["X-Origin"] = origin
    if ytcfg and ytcfg.get("LOGGED_IN"):
        headers["X-Youtube-Bootstrap-Logged-In"] = "true"
    return headers
