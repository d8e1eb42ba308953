"""Immutable data structures for video identifiers and streams."""

from __future__ import annotations

import dataclasses
import enum
import re
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from ytstreams.errors import InvalidVideoIdError
from ytstreams.utils import DEFAULT_EXT, mime_type_to_ext

_VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")

AUDIO_ONLY_QUALITIES: tuple[str, ...] = (
    "audio_quality_ultralow",
    "audio_quality_low",
    "audio_quality_medium",
    "audio_quality_high",
)

VIDEO_ONLY_QUALITIES: tuple[str, ...] = (
    "tiny", "small", "medium", "large", "hd720",
    "hd1080", "hd1440", "hd2160", "hd2880", "highres",
)


@dataclass(frozen=True, order=True)
class VideoId:
    """Validated 11-character video identifier."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise InvalidVideoIdError(f"video ID must be a string, got {type(self.value).__name__}")
        if len(self.value) != 11:
            raise InvalidVideoIdError(
                f"invalid length: expected 11 characters, got {len(self.value)}"
            )
        if not _VIDEO_ID_RE.fullmatch(self.value):
            raise InvalidVideoIdError(f"invalid characters in video ID: {self.value}")

    @classmethod
    def new(cls, value: str) -> VideoId:
        return cls(value)

    parse = new

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SessionState:
    """Per-attempt session values, rebuilt for every client tried."""

    delegated_session_id: Optional[str] = None
    user_session_id: Optional[str] = None
    session_index: Optional[int] = None
    visitor_data: Optional[str] = None
    authenticated: bool = False
    is_premium_subscriber: bool = False


class StreamSourceKind(enum.Enum):
    URL = "url"
    SIGNATURE = "signature"


@dataclass(frozen=True)
class YtStreamSource:
    """Either a direct URL or a signature cipher that still needs deciphering."""

    kind: StreamSourceKind
    value: str

    @classmethod
    def url(cls, value: str) -> YtStreamSource:
        return cls(StreamSourceKind.URL, value)

    @classmethod
    def signature(cls, value: str) -> YtStreamSource:
        return cls(StreamSourceKind.SIGNATURE, value)

    @property
    def is_url(self) -> bool:
        return self.kind is StreamSourceKind.URL

    @property
    def is_signature(self) -> bool:
        return self.kind is StreamSourceKind.SIGNATURE


@dataclass(frozen=True)
class YtStream:
    """Single playable stream variant."""

    source: YtStreamSource
    tbr: float
    asr: Optional[int] = None
    file_size: Optional[int] = None
    itag: Optional[str] = None
    quality: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def url(self) -> Optional[str]:
        return self.source.value if self.source.is_url else None

    @property
    def ext(self) -> str:
        return mime_type_to_ext(self.mime_type) if self.mime_type else DEFAULT_EXT

    def to_dict(self) -> dict:
        """Convert to plain dictionary."""
        d = dataclasses.asdict(self)
        d["source"] = {"kind": self.source.kind.value, "value": self.source.value}
        d["ext"] = self.ext
        return d


@dataclass(frozen=True)
class YtStreamList:
    """Ordered stream collection. Every view returns a new list."""

    streams: tuple[YtStream, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "streams", tuple(self.streams))

    def __len__(self) -> int:
        return len(self.streams)

    def __iter__(self) -> Iterator[YtStream]:
        return iter(self.streams)

    def __getitem__(self, index: Union[int, slice]) -> Union[YtStream, YtStreamList]:
        if isinstance(index, slice):
            return YtStreamList(self.streams[index])
        return self.streams[index]

    def first(self) -> Optional[YtStream]:
        return self.streams[0] if self.streams else None

    def video_only(self) -> YtStreamList:
        return YtStreamList(tuple(s for s in self.streams if (s.quality or "") in VIDEO_ONLY_QUALITIES))

    def audio_only(self) -> YtStreamList:
        return YtStreamList(tuple(s for s in self.streams if (s.quality or "") in AUDIO_ONLY_QUALITIES))

    def with_highest_bitrate(self) -> YtStreamList:
        return YtStreamList(tuple(sorted(self.streams, key=lambda s: s.tbr, reverse=True)))

    def with_lowest_bitrate(self) -> YtStreamList:
        return YtStreamList(tuple(sorted(self.streams, key=lambda s: s.tbr)))

    def only_signatures(self) -> YtStreamList:
        """Streams that still need signature deciphering."""
        return YtStreamList(tuple(s for s in self.streams if s.source.is_signature))

    def only_urls(self) -> YtStreamList:
        """Streams usable without deciphering."""
        return YtStreamList(tuple(s for s in self.streams if s.source.is_url))


@dataclass(frozen=True)
class YtStreamResponse:
    """Streams of one extraction with the player script used for them."""

    streams: YtStreamList = field(default_factory=YtStreamList)
    player_url: Optional[str] = None
    client: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to plain dictionary."""
        return {
            "client": self.client,
            "player_url": self.player_url,
            "streams": [s.to_dict() for s in self.streams],
        }
