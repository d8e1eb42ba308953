"""Watch page download and embedded JSON extraction.

Extraction is pattern based and deliberately shallow: a regex finds where a
JSON object starts and a JSON decoder reads it from there, so nested braces
and strings containing ``}`` are handled without parsing the page.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.parse
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

import httpx
from yt_dlp.utils import traverse_obj

from ytstreams.errors import BootstrapNotFoundError, WebpageDownloadError

if TYPE_CHECKING:
    from ytstreams.clients import InnerTubeClient
    from ytstreams.models import VideoId
    from ytstreams.transport import Transport

logger = logging.getLogger(__name__)

WATCH_PATH = "watch"
# Skips the content-check interstitial.
CONTENT_CHECK_BYPASS = (("bpctr", "9999999999"), ("has_verified", "1"))

PathKey = Union[str, int]


@dataclass(frozen=True)
class BootstrapPatterns:
    """Regexes marking where embedded JSON starts and how it must end."""

    ytcfg_start: str = r"ytcfg\.set\s*\(\s*"
    ytcfg_end: str = r"\s*\)"
    initial_data_start: str = (
        r"(?:window\s*\[\s*[\"']ytInitialData[\"']\s*\]|ytInitialData)\s*=\s*"
    )
    initial_data_end: str = r"\s*(?:;|</script)"


DEFAULT_PATTERNS = BootstrapPatterns()

_DECODER = json.JSONDecoder()


def search_json(start_pattern: str, text: str, end_pattern: Optional[str] = None) -> Optional[dict]:
    """Return the first JSON object that follows *start_pattern*.

    Candidates that fail to decode, are not objects, or are not followed by
    *end_pattern* are skipped in favour of the next match.
    """
    for match in re.finditer(start_pattern, text):
        idx = match.end()
        while idx < len(text) and text[idx].isspace():
            idx += 1
        if idx >= len(text) or text[idx] != "{":
            continue
        try:
            obj, end = _DECODER.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        if not isinstance(obj, dict):
            continue
        if end_pattern and not re.match(end_pattern, text[end:]):
            continue
        return obj
    return None


def extract_embedded_config(html: str, patterns: BootstrapPatterns = DEFAULT_PATTERNS) -> dict:
    """ytcfg of the page, or ``{}`` when absent (callers use client defaults)."""
    if not html:
        return {}
    return search_json(patterns.ytcfg_start, html, patterns.ytcfg_end) or {}


def extract_initial_data(html: str, patterns: BootstrapPatterns = DEFAULT_PATTERNS) -> dict:
    """ytInitialData of the page.

    Raises:
        BootstrapNotFoundError: If no initial data assignment is present.
    """
    data = search_json(patterns.initial_data_start, html or "", patterns.initial_data_end)
    if data is None:
        raise BootstrapNotFoundError("Unable to extract yt initial data")
    return data


def traverse(data: Any, path: Sequence[PathKey]) -> Any:
    """Follow dict keys / list indices, returning None on any miss."""
    return traverse_obj(data, tuple(path))


def get_text(data: Any, *path_list: Union[PathKey, Sequence[PathKey], None],
             max_runs: Optional[int] = None) -> Optional[str]:
    """First text found under the candidate paths.

    A ``simpleText`` leaf wins; otherwise the ``text`` fields of ``runs`` are
    joined, keeping at most *max_runs* runs.
    """
    for path in path_list or (None,):
        if path is None:
            item = data
        elif isinstance(path, (str, int)):
            item = traverse(data, (path,))
        else:
            item = traverse(data, path)
        if isinstance(item, dict):
            text = item.get("simpleText")
            if isinstance(text, str) and text:
                return text
            runs = item.get("runs")
        else:
            runs = item
        if not isinstance(runs, list):
            continue
        if max_runs is not None:
            runs = runs[:max_runs]
        text = "".join(r["text"] for r in runs if isinstance(r, dict) and isinstance(r.get("text"), str))
        if text:
            return text
    return None


def watch_page_url(base_url: str) -> str:
    return urllib.parse.urljoin(base_url.rstrip("/") + "/", WATCH_PATH)


async def fetch_watch_page(
    transport: Transport,
    base_url: str,
    client: InnerTubeClient,
    video_id: VideoId,
) -> str:
    """Download the watch page anonymously with the client's webpage UA.

    Raises:
        WebpageDownloadError: On transport failure or an error status.
    """
    headers = {}
    if client.webpage_user_agent:
        headers["User-Agent"] = client.webpage_user_agent
    params = [*CONTENT_CHECK_BYPASS, ("v", str(video_id))]
    url = watch_page_url(base_url)
    logger.debug("Downloading watch page %s for %s (%s)", url, video_id, client.name.value)
    try:
        response = await transport.send("GET", url, headers=headers, params=params, anonymous=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise WebpageDownloadError(f"Unable to download watch page for {video_id}: {exc}") from exc
    return response.text
