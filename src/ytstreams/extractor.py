"""Stream extraction: client fallback, PO token gating, API calls and deciphering."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Iterable, Mapping, Optional, Union

import httpx
from yt_dlp.utils import float_or_none, int_or_none

from ytstreams.api import InnertubeApi, YtEndpoint
from ytstreams.cache import PlayerScriptCache
from ytstreams.clients import YT_URL, InnerTubeClient, YtClient, ordered_by_priority
from ytstreams.config import load_client_preference, load_config, load_geo_bypass_ip
from ytstreams.decipher import Decipherer, PlayerTransforms, decipher_n_param, decipher_signature_cipher
from ytstreams.errors import (
    AuthRequiredError,
    BootstrapNotFoundError,
    ExhaustedAllPersonasError,
    ExtractionError,
    GeoRestrictionError,
    PlayerScriptError,
    TokenRequiredError,
    VideoUnavailableError,
)
from ytstreams.models import (
    SessionState,
    VideoId,
    YtStream,
    YtStreamList,
    YtStreamResponse,
    YtStreamSource,
)
from ytstreams.pot import NoPoTokenProvider, PoTokenContext, PoTokenProvider, PoTokenRequest
from ytstreams.token_policy import (
    StreamingProtocol,
    TokenRequirement,
    is_premium_subscriber,
    needs_player_token,
    needs_token,
)
from ytstreams.transport import Transport
from ytstreams.utils import file_size_from_tbr, parse_query_string, update_url_query
from ytstreams.validators import coerce_video_id
from ytstreams.webpage import (
    DEFAULT_PATTERNS,
    BootstrapPatterns,
    extract_embedded_config,
    extract_initial_data,
    fetch_watch_page,
    get_text,
    traverse,
)
from ytstreams.ytcfg import (
    extract_api_key,
    extract_data_sync_id,
    extract_delegated_session_id,
    extract_player_url,
    extract_session_index,
    extract_user_session_id,
    select_visitor_data,
)

logger = logging.getLogger(__name__)

PLAYER_CACHE_NAMESPACE = "js"

# ---------------------------------------------------------------------------
# Module-level cache
# ---------------------------------------------------------------------------

_player_cache = PlayerScriptCache()


# ---------------------------------------------------------------------------
# Player response helpers
# ---------------------------------------------------------------------------


def _raise_for_playability(player_response: Mapping[str, Any]) -> None:
    """Raise the ExtractionError subclass matching a non-OK playability status."""
    status = player_response.get("playabilityStatus")
    if not isinstance(status, dict) or status.get("status") in (None, "OK"):
        return
    code = status["status"]
    reason = (
        status.get("reason")
        or get_text(status, ("errorScreen", "playerErrorMessageRenderer", "subreason"))
        or code
    )
    lower = reason.lower()
    if "country" in lower or "geo" in lower:
        raise GeoRestrictionError(reason)
    if code == "LOGIN_REQUIRED" or "sign in" in lower:
        raise AuthRequiredError(reason)
    raise VideoUnavailableError(reason)


def _format_quality(fmt: Mapping[str, Any]) -> Optional[str]:
    quality = fmt.get("quality")
    if quality == "tiny" or not quality:
        quality = (fmt.get("audioQuality") or "").lower() or quality
    return quality or None


def _build_stream(fmt: Mapping[str, Any], duration: Optional[float]) -> Optional[YtStream]:
    """Convert one streamingData format to a YtStream, or None if unusable."""
    # OTF formats need the init fragment parsed first.
    if fmt.get("drmFamilies") or fmt.get("type") == "FORMAT_STREAM_TYPE_OTF":
        return None
    if fmt.get("url"):
        source = YtStreamSource.url(fmt["url"])
    elif fmt.get("signatureCipher") or fmt.get("cipher"):
        source = YtStreamSource.signature(fmt.get("signatureCipher") or fmt["cipher"])
    else:
        return None

    tbr = float_or_none(fmt.get("averageBitrate") or fmt.get("bitrate"), 1000) or 0.0
    file_size = int_or_none(fmt.get("contentLength"))
    if file_size is None and tbr and duration:
        file_size = file_size_from_tbr(tbr, duration)
    itag = fmt.get("itag")
    return YtStream(
        source=source,
        tbr=tbr,
        asr=int_or_none(fmt.get("audioSampleRate")),
        file_size=file_size,
        itag=str(itag) if itag is not None else None,
        quality=_format_quality(fmt),
        mime_type=fmt.get("mimeType"),
    )


def _extract_formats(player_response: Mapping[str, Any]) -> list[YtStream]:
    streaming_data = player_response.get("streamingData") or {}
    duration = float_or_none(traverse(player_response, ("videoDetails", "lengthSeconds")))
    streams = []
    for key in ("formats", "adaptiveFormats"):
        for fmt in streaming_data.get(key) or []:
            if not isinstance(fmt, dict):
                continue
            stream = _build_stream(fmt, duration)
            if stream is not None:
                streams.append(stream)
    return streams


def _has_n_param(url: str) -> bool:
    return bool(parse_query_string(url.partition("?")[2]).get("n"))


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class YtExtractor:
    """Tries clients in priority order until one yields usable streams.

    Clients are attempted strictly one after another; each attempt builds its
    own SessionState. The first client with at least one usable stream wins.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        decipherer: Optional[Decipherer] = None,
        po_token_provider: Optional[PoTokenProvider] = None,
        player_cache: Optional[PlayerScriptCache] = None,
        base_url: str = YT_URL,
        patterns: BootstrapPatterns = DEFAULT_PATTERNS,
        geo_bypass_ip: Optional[str] = None,
    ) -> None:
        self._transport = transport
        self._api = InnertubeApi(transport)
        self._decipherer = decipherer
        self._po_token_provider = po_token_provider or NoPoTokenProvider()
        self._player_cache = player_cache if player_cache is not None else _player_cache
        self._base_url = base_url
        self._patterns = patterns
        self._geo_bypass_ip = geo_bypass_ip

    async def extract_streams(
        self,
        video_id: Union[str, VideoId],
        clients: Optional[Iterable[YtClient]] = None,
    ) -> YtStreamResponse:
        """Extract streams for *video_id*.

        Raises:
            InvalidVideoIdError: Before any request if the ID is malformed.
            ExhaustedAllPersonasError: If every client failed.
        """
        video_id = coerce_video_id(video_id)
        failures: dict[str, ExtractionError] = {}
        webpages: dict[str, str] = {}
        transforms: dict[str, PlayerTransforms] = {}

        for client in ordered_by_priority(clients):
            name = client.name.value
            logger.info("[%s] Trying %s client", video_id, name)
            try:
                response = await self._try_client(video_id, client, webpages, transforms)
            except GeoRestrictionError as exc:
                self._enable_geo_bypass()
                failures[name] = exc
                logger.warning("[%s] %s client failed: %s", video_id, name, exc)
                continue
            except ExtractionError as exc:
                failures[name] = exc
                logger.warning("[%s] %s client failed: %s", video_id, name, exc)
                continue
            logger.info("[%s] %d streams from %s client", video_id, len(response.streams), name)
            return response

        raise ExhaustedAllPersonasError(str(video_id), failures)

    def _enable_geo_bypass(self) -> None:
        if self._geo_bypass_ip and not self._transport.x_forwarded_for_ip:
            logger.info("Geo restriction detected, sending X-Forwarded-For: %s", self._geo_bypass_ip)
            self._transport.x_forwarded_for_ip = self._geo_bypass_ip

    # -- one client ----------------------------------------------------------

    async def _try_client(
        self,
        video_id: VideoId,
        client: InnerTubeClient,
        webpages: dict[str, str],
        transforms: dict[str, PlayerTransforms],
    ) -> YtStreamResponse:
        name = client.name.value
        authenticated = client.supports_cookies and self._transport.has_auth_cookies
        if client.require_auth and not authenticated:
            raise AuthRequiredError(f"{name} client requires an authenticated cookie session")

        ytcfg: dict = {}
        initial_data: Optional[dict] = None
        if client.require_js_player or authenticated:
            ytcfg, initial_data = await self._bootstrap(video_id, client, webpages, authenticated)

        session = self._session_state(ytcfg, initial_data, authenticated)
        if authenticated and initial_data is None:
            next_response = await self._api.call(
                YtEndpoint.NEXT, {"videoId": str(video_id)},
                context=self._context(client, session), api_key=extract_api_key(ytcfg),
                client=client, ytcfg=ytcfg, session=session,
            )
            session = dataclasses.replace(
                session,
                visitor_data=session.visitor_data or select_visitor_data(next_response),
                is_premium_subscriber=is_premium_subscriber(next_response, authenticated),
            )

        player_url = extract_player_url(ytcfg) if client.require_js_player else None

        player_pot = await self._obtain_token(
            PoTokenContext.PLAYER,
            needs_player_token(client, session.is_premium_subscriber),
            video_id, client, session, ytcfg, player_url,
        )
        gvs_pot = await self._check_gvs_tokens(
            video_id, client, session, ytcfg, player_url, has_player_token=player_pot is not None,
        )

        query: dict[str, Any] = {
            "videoId": str(video_id),
            "contentCheckOk": True,
            "racyCheckOk": True,
        }
        if player_pot:
            query["serviceIntegrityDimensions"] = {"poToken": player_pot}
        player_response = await self._api.call(
            YtEndpoint.PLAYER, query,
            context=self._context(client, session), api_key=extract_api_key(ytcfg),
            client=client, ytcfg=ytcfg, session=session,
        )
        _raise_for_playability(player_response)

        streams = _extract_formats(player_response)
        if not streams:
            raise ExtractionError(f"{name} client returned no formats")
        streams = await self._finalize_streams(client, streams, player_url, transforms, gvs_pot)
        if not streams:
            raise ExtractionError(f"{name} client returned no usable streams after deciphering")
        return YtStreamResponse(streams=YtStreamList(tuple(streams)), player_url=player_url, client=name)

    async def _bootstrap(
        self,
        video_id: VideoId,
        client: InnerTubeClient,
        webpages: dict[str, str],
        authenticated: bool = False,
    ) -> tuple[dict, Optional[dict]]:
        """Watch page ytcfg and initial data. Pages are reused per user agent.

        Authenticated sessions tolerate a page without initial data; the
        caller falls back to the next endpoint.
        """
        user_agent = client.webpage_user_agent or ""
        webpage = webpages.get(user_agent)
        if webpage is None:
            webpage = await fetch_watch_page(self._transport, self._base_url, client, video_id)
            webpages[user_agent] = webpage
        ytcfg = extract_embedded_config(webpage, self._patterns)
        if not ytcfg:
            logger.debug("[%s] No ytcfg in watch page, using %s client defaults", video_id, client.name.value)
        try:
            initial_data = extract_initial_data(webpage, self._patterns)
        except BootstrapNotFoundError:
            if not authenticated:
                raise
            logger.debug("[%s] No initial data in watch page, querying next", video_id)
            initial_data = None
        return ytcfg, initial_data

    @staticmethod
    def _session_state(
        ytcfg: Mapping[str, Any],
        initial_data: Optional[Mapping[str, Any]],
        authenticated: bool,
    ) -> SessionState:
        if not authenticated:
            return SessionState(visitor_data=select_visitor_data(ytcfg))
        return SessionState(
            delegated_session_id=extract_delegated_session_id(ytcfg),
            user_session_id=extract_user_session_id(ytcfg),
            session_index=extract_session_index(ytcfg),
            visitor_data=select_visitor_data(ytcfg),
            authenticated=True,
            is_premium_subscriber=is_premium_subscriber(initial_data, True),
        )

    @staticmethod
    def _context(client: InnerTubeClient, session: SessionState) -> dict:
        context = client.context()
        if session.visitor_data:
            context["client"]["visitorData"] = session.visitor_data
        return context

    # -- PO tokens -----------------------------------------------------------

    async def _obtain_token(
        self,
        context: PoTokenContext,
        requirement: TokenRequirement,
        video_id: VideoId,
        client: InnerTubeClient,
        session: SessionState,
        ytcfg: Mapping[str, Any],
        player_url: Optional[str],
        protocol: Optional[StreamingProtocol] = None,
    ) -> Optional[str]:
        """Ask the provider when a token is recommended or required.

        Raises:
            TokenRequiredError: If required and the provider declines.
        """
        if requirement is TokenRequirement.NOT_NEEDED:
            return None
        request = PoTokenRequest(
            context=context,
            client_name=client.name.value,
            video_id=str(video_id),
            innertube_context=self._context(client, session),
            innertube_host=client.innertube_host,
            session_index=session.session_index,
            player_url=player_url,
            is_authenticated=session.authenticated,
            visitor_data=session.visitor_data,
            data_sync_id=extract_data_sync_id(ytcfg) if session.authenticated else None,
        )
        token = await self._po_token_provider.fetch_pot(request)
        if token is None and requirement is TokenRequirement.REQUIRED:
            raise TokenRequiredError(
                client.name.value, context.value, protocol.value if protocol else None
            )
        if token is None:
            logger.debug("No %s PO token for %s client, continuing without", context.value, client.name.value)
        return token

    async def _check_gvs_tokens(
        self,
        video_id: VideoId,
        client: InnerTubeClient,
        session: SessionState,
        ytcfg: Mapping[str, Any],
        player_url: Optional[str],
        has_player_token: bool,
    ) -> Optional[str]:
        """Evaluate every protocol; one GVS token serves all of them."""
        token: Optional[str] = None
        requested = False
        for protocol in StreamingProtocol:
            requirement = needs_token(client, protocol, session.is_premium_subscriber, has_player_token)
            if requirement is TokenRequirement.NOT_NEEDED or token is not None:
                continue
            if requested:
                if requirement is TokenRequirement.REQUIRED:
                    raise TokenRequiredError(client.name.value, PoTokenContext.GVS.value, protocol.value)
                continue
            requested = True
            token = await self._obtain_token(
                PoTokenContext.GVS, requirement, video_id, client, session, ytcfg, player_url, protocol,
            )
        return token

    # -- deciphering ---------------------------------------------------------

    async def _finalize_streams(
        self,
        client: InnerTubeClient,
        streams: list[YtStream],
        player_url: Optional[str],
        transforms: dict[str, PlayerTransforms],
        gvs_pot: Optional[str],
    ) -> list[YtStream]:
        """Resolve signatures and n parameters; drop what cannot be resolved."""
        needs_player = any(
            s.source.is_signature or (client.require_js_player and _has_n_param(s.source.value))
            for s in streams
        )
        player_transforms = None
        if needs_player:
            try:
                player_transforms = await self._load_transforms(player_url, transforms)
            except PlayerScriptError as exc:
                logger.warning("Player script unavailable for %s client: %s", client.name.value, exc)

        finalized = []
        for stream in streams:
            url = stream.source.value
            try:
                if stream.source.is_signature:
                    if player_transforms is None:
                        logger.debug("Skipping itag %s: signature needs a player script", stream.itag)
                        continue
                    url = decipher_signature_cipher(url, player_transforms)
                if player_transforms is not None and client.require_js_player:
                    url = decipher_n_param(url, player_transforms)
            except Exception as exc:
                logger.warning("Deciphering failed for itag %s: %s", stream.itag, exc)
                continue
            if gvs_pot:
                url = update_url_query(url, {"pot": gvs_pot})
            finalized.append(dataclasses.replace(stream, source=YtStreamSource.url(url)))
        return finalized

    async def _load_transforms(
        self,
        player_url: Optional[str],
        transforms: dict[str, PlayerTransforms],
    ) -> Optional[PlayerTransforms]:
        """Transforms for *player_url*, derived at most once per extraction."""
        if not player_url:
            logger.warning("Cannot decipher streams without a player URL")
            return None
        if self._decipherer is None:
            logger.warning("No decipherer configured; signature streams will be skipped")
            return None
        if player_url not in transforms:
            code = await self._load_player(player_url)
            try:
                transforms[player_url] = self._decipherer.derive_transforms(code)
            except Exception as exc:
                raise PlayerScriptError(f"Unable to derive transforms from {player_url}: {exc}") from exc
        return transforms[player_url]

    async def _load_player(self, player_url: str) -> str:
        cached = self._player_cache.get(PLAYER_CACHE_NAMESPACE, player_url)
        if cached is not None:
            return cached
        logger.debug("Downloading player %s", player_url)
        try:
            code = await self._transport.fetch_text(player_url)
        except httpx.HTTPError as exc:
            raise PlayerScriptError(f"Download of {player_url} failed: {exc}") from exc
        self._player_cache.put(PLAYER_CACHE_NAMESPACE, player_url, code)
        # Another extraction may have stored first; its copy is canonical.
        return self._player_cache.get(PLAYER_CACHE_NAMESPACE, player_url) or code


# ---------------------------------------------------------------------------
# Async public API
# ---------------------------------------------------------------------------


async def extract_streams(
    video_id: Union[str, VideoId],
    *,
    clients: Optional[Iterable[YtClient]] = None,
    decipherer: Optional[Decipherer] = None,
    po_token_provider: Optional[PoTokenProvider] = None,
    timeout: Optional[float] = None,
) -> YtStreamResponse:
    """Async entry point: validate, configure from the environment, extract.

    Args:
        video_id: Video ID or watch URL.
        clients: Clients to try; defaults to YTSTREAMS_CLIENTS or all clients.
        decipherer: Engine for signature and n deciphering.
        po_token_provider: Source of PO tokens; by default every request is declined.
        timeout: Upper bound in seconds for the whole extraction.
    """
    video_id = coerce_video_id(video_id)
    opts = load_config()
    if clients is None:
        clients = load_client_preference()
    async with Transport.from_config(opts) as transport:
        extractor = YtExtractor(
            transport,
            decipherer=decipherer,
            po_token_provider=po_token_provider,
            geo_bypass_ip=load_geo_bypass_ip(),
        )
        run = extractor.extract_streams(video_id, clients)
        if timeout is None:
            return await run
        return await asyncio.wait_for(run, timeout)
