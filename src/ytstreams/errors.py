"""Exception hierarchy for stream extraction."""

from __future__ import annotations

from typing import Mapping, Optional


class ExtractionError(Exception):
    """General extraction failure."""


class InvalidVideoIdError(ExtractionError, ValueError):
    """Video identifier is malformed. Raised before any network activity."""


class BootstrapNotFoundError(ExtractionError):
    """Initial data could not be located in the watch page."""


class WebpageDownloadError(ExtractionError):
    """Watch page or player script could not be downloaded."""


class TokenRequiredError(ExtractionError):
    """A PO token is required and no provider supplied one."""

    def __init__(self, client: str, context: str, protocol: Optional[str] = None) -> None:
        self.client = client
        self.context = context
        self.protocol = protocol
        where = f"{context}/{protocol}" if protocol else context
        super().__init__(f"{client} client requires a {where} PO token")


class ApiCallError(ExtractionError):
    """Innertube API call failed (transport, status or decoding)."""


class AuthRequiredError(ExtractionError):
    """Client or video needs an authenticated cookie session."""


class GeoRestrictionError(ExtractionError):
    """Video is geo-restricted."""


class VideoUnavailableError(ExtractionError):
    """Video is private or unavailable."""


class PlayerScriptError(ExtractionError):
    """Player script URL could not be identified or downloaded."""


class ExhaustedAllPersonasError(ExtractionError):
    """No client produced a usable stream.

    ``failures`` maps each attempted client name to the error that ended it.
    """

    def __init__(self, video_id: str, failures: Mapping[str, ExtractionError]) -> None:
        self.video_id = video_id
        self.failures = dict(failures)
        detail = "; ".join(f"{name}: {exc}" for name, exc in self.failures.items())
        super().__init__(
            f"No client returned usable streams for {video_id}"
            + (f" ({detail})" if detail else "")
        )
