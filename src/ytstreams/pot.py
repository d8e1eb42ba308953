"""PO token acquisition interface.

The core never mints tokens itself; a provider is plugged into the
extractor and may decline any request by returning None.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol


class PoTokenContext(enum.Enum):
    GVS = "gvs"
    PLAYER = "player"
    SUBS = "subs"


@dataclass(frozen=True)
class PoTokenRequest:
    context: PoTokenContext
    client_name: str
    video_id: str
    innertube_context: Mapping[str, Any] = field(default_factory=dict, compare=False)
    innertube_host: Optional[str] = None
    session_index: Optional[int] = None
    player_url: Optional[str] = None
    is_authenticated: bool = False
    visitor_data: Optional[str] = None
    data_sync_id: Optional[str] = None
    # Generate a fresh token; the result may still be cached by the provider.
    bypass_cache: bool = False


class PoTokenProvider(Protocol):
    async def fetch_pot(self, request: PoTokenRequest) -> Optional[str]:
        """Return a token, or None to decline."""
        ...


class NoPoTokenProvider:
    """Declines every request."""

    async def fetch_pot(self, request: PoTokenRequest) -> Optional[str]:
        return None


class StaticPoTokenProvider:
    """Serves preconfigured tokens per context, e.g. from the command line."""

    def __init__(self, tokens: Mapping[PoTokenContext, str]) -> None:
        self._tokens = dict(tokens)

    async def fetch_pot(self, request: PoTokenRequest) -> Optional[str]:
        return self._tokens.get(request.context)
