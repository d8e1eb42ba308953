"""In-memory player script cache keyed by player identity."""

from __future__ import annotations

import re
import threading
from typing import Optional

from ytstreams.errors import PlayerScriptError

PLAYER_INFO_RE: tuple[re.Pattern[str], ...] = (
    re.compile(r"/s/player/(?P<id>[a-zA-Z0-9_-]{8,})/(?P<path>(?:tv-)?player[^?#]*)"),
    re.compile(
        r"/(?P<id>[a-zA-Z0-9_-]{8,})/(?P<path>player(?:_ias\.vflset(?:/[a-zA-Z]{2,3}_[a-zA-Z]{2,3})?"
        r"|-plasma-ias-(?:phone|tablet)-[a-z]{2}_[A-Z]{2}\.vflset)/base\.js)$"
    ),
)


def get_player_id_and_path(player_url: str) -> tuple[str, str]:
    """Split a player URL into (player id, path below the id).

    Raises:
        PlayerScriptError: If the URL does not look like a player script.
    """
    for pattern in PLAYER_INFO_RE:
        match = pattern.search(player_url)
        if match:
            return match.group("id"), match.group("path")
    raise PlayerScriptError(f"Cannot identify player {player_url!r}")


def player_js_cache_key(player_url: str) -> str:
    player_id, player_path = get_player_id_and_path(player_url)
    return f"{player_id}-{player_path}"


class PlayerScriptCache:
    """Thread-safe insert-if-absent store.

    The first value stored for a (namespace, player) pair stays canonical:
    transforms derived from it must not be desynchronised by a later write.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def cache_id(namespace: str, player_url: str) -> tuple[str, str]:
        return f"youtube-{namespace}", player_js_cache_key(player_url)

    def get(self, namespace: str, player_url: str) -> Optional[str]:
        """Return cached text, else None."""
        key = self.cache_id(namespace, player_url)
        with self._lock:
            return self._store.get(key)

    def put(self, namespace: str, player_url: str, data: str) -> bool:
        """Store *data* unless the key is present. Returns True if stored."""
        key = self.cache_id(namespace, player_url)
        with self._lock:
            if key in self._store:
                return False
            self._store[key] = data
            return True

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
