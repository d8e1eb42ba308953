"""Configuration loader: reads proxy, cookie and client settings from environment variables.

All variables share the YTSTREAMS_ prefix; blank values are ignored.
"""

from __future__ import annotations

import os
from typing import Optional

from ytstreams.clients import YtClient
from ytstreams.transport import DEFAULT_TIMEOUT


def _env(key: str) -> str:
    return os.environ.get(f"YTSTREAMS_{key}", "").strip()


def load_config() -> dict:
    """Build transport options from environment variables.

    Environment variables:
        YTSTREAMS_PROXY       - proxy URL (e.g. http://127.0.0.1:7897)
        YTSTREAMS_COOKIE_FILE - path to a Netscape cookies.txt file
        YTSTREAMS_TIMEOUT     - request timeout in seconds (default 30)

    Only non-empty values are included, except ``timeout`` which is always set.

    Raises:
        ValueError: If YTSTREAMS_TIMEOUT is not a positive number.
    """
    opts: dict = {}

    proxy = _env("PROXY")
    if proxy:
        opts["proxy"] = proxy

    cookie_file = _env("COOKIE_FILE")
    if cookie_file:
        opts["cookiefile"] = cookie_file

    timeout = _env("TIMEOUT")
    if timeout:
        try:
            value = float(timeout)
        except ValueError:
            raise ValueError(f"YTSTREAMS_TIMEOUT must be a number, got {timeout!r}") from None
        if value <= 0:
            raise ValueError(f"YTSTREAMS_TIMEOUT must be positive, got {timeout!r}")
        opts["timeout"] = value
    else:
        opts["timeout"] = DEFAULT_TIMEOUT

    return opts


def parse_client_names(value: str) -> tuple[YtClient, ...]:
    """Parse ``android_vr, web`` into clients, keeping order and dropping repeats.

    Raises:
        ValueError: On an unknown client name.
    """
    clients = []
    for name in value.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            client = YtClient(name)
        except ValueError:
            known = ", ".join(c.value for c in YtClient)
            raise ValueError(f"Unknown client {name!r} (expected one of {known})") from None
        if client not in clients:
            clients.append(client)
    return tuple(clients)


def load_client_preference() -> Optional[tuple[YtClient, ...]]:
    """Clients to try from YTSTREAMS_CLIENTS, or None for all of them."""
    value = _env("CLIENTS")
    if not value:
        return None
    return parse_client_names(value) or None


def load_geo_bypass_ip() -> Optional[str]:
    """X-Forwarded-For address to use after a geo restriction (YTSTREAMS_GEO_BYPASS_IP)."""
    value = _env("GEO_BYPASS_IP")
    return value if value else None


def load_log_level() -> str:
    return _env("LOG_LEVEL") or "info"
