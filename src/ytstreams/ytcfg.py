"""Field selectors over ytcfg documents and API responses."""

from __future__ import annotations

import urllib.parse
from typing import Any, Mapping, Optional

from yt_dlp.utils import int_or_none

from ytstreams.clients import YT_URL, InnerTubeClient
from ytstreams.webpage import traverse


def _first_str(docs: tuple[Any, ...], *paths: tuple) -> Optional[str]:
    for doc in docs:
        for path in paths:
            value = traverse(doc, path)
            if isinstance(value, str) and value:
                return value
    return None


def select_visitor_data(*docs: Optional[Mapping[str, Any]]) -> Optional[str]:
    """visitorData from a ytcfg or an API response. Tracks session state."""
    return _first_str(
        docs,
        ("VISITOR_DATA",),
        ("INNERTUBE_CONTEXT", "client", "visitorData"),
        ("responseContext", "visitorData"),
    )


def extract_session_index(*docs: Optional[Mapping[str, Any]]) -> Optional[int]:
    """Index of the current account in the account list."""
    for doc in docs:
        value = int_or_none(traverse(doc, ("SESSION_INDEX",)))
        if value is not None:
            return value
    return None


def parse_data_sync_id(data_sync_id: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split ``delegated||user`` (secondary channel) or ``user||`` (primary).

    Returns (delegated_session_id, user_session_id).
    """
    if not data_sync_id:
        return None, None
    first, _, second = data_sync_id.partition("||")
    if second:
        return first, second
    return None, first


def extract_data_sync_id(*docs: Optional[Mapping[str, Any]]) -> Optional[str]:
    return _first_str(
        docs,
        ("DATASYNC_ID",),
        ("responseContext", "mainAppWebResponseContext", "datasyncId"),
    )


def extract_delegated_session_id(*docs: Optional[Mapping[str, Any]]) -> Optional[str]:
    return _first_str(docs, ("DELEGATED_SESSION_ID",)) or parse_data_sync_id(extract_data_sync_id(*docs))[0]


def extract_user_session_id(*docs: Optional[Mapping[str, Any]]) -> Optional[str]:
    return _first_str(docs, ("USER_SESSION_ID",)) or parse_data_sync_id(extract_data_sync_id(*docs))[1]


def extract_player_url(*docs: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Absolute player script URL named by a ytcfg, if any."""
    player_url = _first_str(docs, ("PLAYER_JS_URL",))
    if not player_url:
        for doc in docs:
            configs = traverse(doc, ("WEB_PLAYER_CONTEXT_CONFIGS",))
            if not isinstance(configs, dict):
                continue
            player_url = next(
                (c["jsUrl"] for c in configs.values()
                 if isinstance(c, dict) and isinstance(c.get("jsUrl"), str)),
                None,
            )
            if player_url:
                break
    if not player_url:
        return None
    return urllib.parse.urljoin(YT_URL, player_url)


def extract_api_key(ytcfg: Optional[Mapping[str, Any]]) -> Optional[str]:
    return _first_str((ytcfg,), ("INNERTUBE_API_KEY",))


def extract_client_version(ytcfg: Optional[Mapping[str, Any]], client: InnerTubeClient) -> str:
    """ytcfg's client version when it describes the same client, else the default."""
    if traverse(ytcfg, ("INNERTUBE_CONTEXT_CLIENT_NAME",)) not in (None, client.context_client_name):
        return client.client_version
    return _first_str(
        (ytcfg,),
        ("INNERTUBE_CLIENT_VERSION",),
        ("INNERTUBE_CONTEXT", "client", "clientVersion"),
    ) or client.client_version
