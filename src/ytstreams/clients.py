"""Innertube client registry.

Each ``YtClient`` is an emulated device/application identity. The registry is
built once at import time and exposed read-only; callers get deep copies of
the request contexts so nothing can mutate the shared table.
"""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from ytstreams.token_policy import (
    GvsPoTokenPolicy,
    PlayerPoTokenPolicy,
    StreamingProtocol,
    SubsPoTokenPolicy,
    default_gvs_policies,
)

DEFAULT_INNERTUBE_HOST = "www.youtube.com"
PREFERRED_LOCALE = "en"
YT_URL = "https://www.youtube.com"

# Families earlier in this tuple are tried first.
BASE_CLIENTS: tuple[str, ...] = ("android", "mweb", "tv", "web", "ios")

THIRD_PARTY = {
    # Can be any valid URL.
    "embedUrl": "https://www.youtube.com/",
}


class YtClient(enum.Enum):
    WEB = "web"
    # Safari UA returns pre-merged video+audio 144p/240p/360p/720p/1080p HLS formats.
    WEB_SAFARI = "web_safari"
    WEB_EMBEDDED = "web_embedded"
    WEB_MUSIC = "web_music"
    # Requires sign-in for every video.
    WEB_CREATOR = "web_creator"
    ANDROID = "android"
    ANDROID_SDKLESS = "android_sdkless"
    # Kids videos aren't returned on this client.
    ANDROID_VR = "android_vr"
    # HLS live streams; device model set to get 60fps formats.
    IOS = "ios"
    # Has 'ultralow' formats.
    MWEB = "mweb"
    TV = "tv"
    TV_SIMPLY = "tv_simply"
    # Requires sign-in for every video. May still help with an EU account
    # that is not age-verified.
    TV_EMBEDDED = "tv_embedded"

    @property
    def base(self) -> str:
        return self.value.split("_", 1)[0]

    @property
    def variant(self) -> str:
        base, _, variant = self.value.partition("_")
        return variant or base

    @property
    def is_embedded(self) -> bool:
        return self.variant == "embedded"


DEFAULT_YT_CLIENT = YtClient.WEB


@dataclass(frozen=True)
class InnerTubeClient:
    """Static description of one client persona."""

    name: YtClient
    innertube_context: Mapping[str, Any] = field(compare=False)
    context_client_name: int
    innertube_host: str = DEFAULT_INNERTUBE_HOST
    supports_cookies: bool = False
    require_js_player: bool = True
    require_auth: bool = False
    authenticated_user_agent: Optional[str] = None
    gvs_po_token_policy: Mapping[StreamingProtocol, GvsPoTokenPolicy] = field(
        default_factory=default_gvs_policies, compare=False
    )
    player_po_token_policy: PlayerPoTokenPolicy = PlayerPoTokenPolicy()
    subs_po_token_policy: SubsPoTokenPolicy = SubsPoTokenPolicy()
    priority: int = 0

    def context(self) -> dict[str, Any]:
        """Deep copy of the request context, safe to mutate."""
        return copy.deepcopy(dict(self.innertube_context))

    @property
    def client_version(self) -> str:
        return self.innertube_context["client"]["clientVersion"]

    @property
    def user_agent(self) -> Optional[str]:
        return self.innertube_context["client"].get("userAgent")

    @property
    def webpage_user_agent(self) -> Optional[str]:
        """User agent for scraping the watch page, never for API calls."""
        return self.authenticated_user_agent or self.user_agent


_WEB_GVS_POLICY = {
    StreamingProtocol.HTTPS: GvsPoTokenPolicy(
        required=True,
        recommended=True,
        not_required_for_premium=True,
        not_required_with_player_token=False,
    ),
    StreamingProtocol.DASH: GvsPoTokenPolicy(
        required=True,
        recommended=True,
        not_required_for_premium=True,
        not_required_with_player_token=False,
    ),
    StreamingProtocol.HLS: GvsPoTokenPolicy(
        required=False,
        recommended=True,
    ),
}

_ANDROID_GVS_POLICY = {
    StreamingProtocol.HTTPS: GvsPoTokenPolicy(
        required=True,
        recommended=True,
        not_required_with_player_token=True,
    ),
    StreamingProtocol.DASH: GvsPoTokenPolicy(
        required=True,
        recommended=True,
        not_required_with_player_token=True,
    ),
    StreamingProtocol.HLS: GvsPoTokenPolicy(
        required=False,
        recommended=True,
        not_required_with_player_token=True,
    ),
}

_IOS_GVS_POLICY = {
    StreamingProtocol.HTTPS: GvsPoTokenPolicy(
        required=True,
        recommended=True,
        not_required_with_player_token=True,
    ),
    # HLS livestreams require a PO token 30 seconds in.
    StreamingProtocol.HLS: GvsPoTokenPolicy(
        required=True,
        recommended=True,
        not_required_with_player_token=True,
    ),
}

_TV_SIMPLY_GVS_POLICY = {
    StreamingProtocol.HTTPS: GvsPoTokenPolicy(required=True, recommended=True),
    StreamingProtocol.DASH: GvsPoTokenPolicy(required=True, recommended=True),
    StreamingProtocol.HLS: GvsPoTokenPolicy(required=False, recommended=True),
}

_ANDROID_USER_AGENT = "com.google.android.youtube/20.10.38 (Linux; U; Android 11) gzip"

_CLIENT_DEFINITIONS: dict[YtClient, dict[str, Any]] = {
    YtClient.WEB: {
        "innertube_context": {"client": {
            "clientName": "WEB",
            "clientVersion": "2.20250925.01.00",
        }},
        "context_client_name": 1,
        "supports_cookies": True,
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.WEB_SAFARI: {
        "innertube_context": {"client": {
            "clientName": "WEB",
            "clientVersion": "2.20250925.01.00",
            "userAgent": (
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
                "(KHTML, like Gecko) Version/15.5 Safari/605.1.15,gzip(gfe)"
            ),
        }},
        "context_client_name": 1,
        "supports_cookies": True,
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.WEB_EMBEDDED: {
        "innertube_context": {"client": {
            "clientName": "WEB_EMBEDDED_PLAYER",
            "clientVersion": "1.20250923.21.00",
        }},
        "context_client_name": 56,
        "supports_cookies": True,
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.WEB_MUSIC: {
        "innertube_context": {"client": {
            "clientName": "WEB_REMIX",
            "clientVersion": "1.20250922.03.00",
        }},
        "context_client_name": 67,
        "innertube_host": "music.youtube.com",
        "supports_cookies": True,
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.WEB_CREATOR: {
        "innertube_context": {"client": {
            "clientName": "WEB_CREATOR",
            "clientVersion": "1.20250922.03.00",
        }},
        "context_client_name": 62,
        "supports_cookies": True,
        "require_auth": True,
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.ANDROID: {
        "innertube_context": {"client": {
            "clientName": "ANDROID",
            "clientVersion": "20.10.38",
            "androidSdkVersion": 30,
            "userAgent": _ANDROID_USER_AGENT,
            "osName": "Android",
            "osVersion": "11",
        }},
        "context_client_name": 3,
        "require_js_player": False,
        "gvs_po_token_policy": _ANDROID_GVS_POLICY,
        "player_po_token_policy": PlayerPoTokenPolicy(required=False, recommended=True),
    },
    YtClient.ANDROID_SDKLESS: {
        "innertube_context": {"client": {
            "clientName": "ANDROID",
            "clientVersion": "20.10.38",
            "userAgent": _ANDROID_USER_AGENT,
            "osName": "Android",
            "osVersion": "11",
        }},
        "context_client_name": 3,
        "require_js_player": False,
    },
    YtClient.ANDROID_VR: {
        "innertube_context": {"client": {
            "clientName": "ANDROID_VR",
            "clientVersion": "1.65.10",
            "deviceMake": "Oculus",
            "deviceModel": "Quest 3",
            "androidSdkVersion": 32,
            "userAgent": (
                "com.google.android.apps.youtube.vr.oculus/1.65.10 (Linux; U; Android 12L; "
                "eureka-user Build/SQ3A.220605.009.A1) gzip"
            ),
            "osName": "Android",
            "osVersion": "12L",
        }},
        "context_client_name": 28,
        "require_js_player": False,
    },
    YtClient.IOS: {
        "innertube_context": {"client": {
            "clientName": "IOS",
            "clientVersion": "20.10.4",
            "deviceMake": "Apple",
            "deviceModel": "iPhone16,2",
            "userAgent": (
                "com.google.ios.youtube/20.10.4 (iPhone16,2; U; CPU iOS 18_3_2 like Mac OS X;)"
            ),
            "osName": "iPhone",
            "osVersion": "18.3.2.22D82",
        }},
        "context_client_name": 5,
        "require_js_player": False,
        "gvs_po_token_policy": _IOS_GVS_POLICY,
        "player_po_token_policy": PlayerPoTokenPolicy(required=False, recommended=True),
    },
    YtClient.MWEB: {
        "innertube_context": {"client": {
            "clientName": "MWEB",
            "clientVersion": "2.20250925.01.00",
            "userAgent": (
                "Mozilla/5.0 (iPad; CPU OS 16_7_10 like Mac OS X) AppleWebKit/605.1.15 "
                "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1,gzip(gfe)"
            ),
        }},
        "context_client_name": 2,
        "supports_cookies": True,
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.TV: {
        "innertube_context": {"client": {
            "clientName": "TVHTML5",
            "clientVersion": "7.20250923.13.00",
            "userAgent": "Mozilla/5.0 (ChromiumStylePlatform) Cobalt/Version",
        }},
        "context_client_name": 7,
        "supports_cookies": True,
        "authenticated_user_agent": (
            "Mozilla/5.0 (ChromiumStylePlatform) Cobalt/25.lts.30.1034943-gold (unlike Gecko), "
            "Unknown_TV_Unknown_0/Unknown (Unknown, Unknown)"
        ),
        "gvs_po_token_policy": _WEB_GVS_POLICY,
    },
    YtClient.TV_SIMPLY: {
        "innertube_context": {"client": {
            "clientName": "TVHTML5_SIMPLY",
            "clientVersion": "1.0",
        }},
        "context_client_name": 75,
        "gvs_po_token_policy": _TV_SIMPLY_GVS_POLICY,
    },
    YtClient.TV_EMBEDDED: {
        "innertube_context": {"client": {
            "clientName": "TVHTML5_SIMPLY_EMBEDDED_PLAYER",
            "clientVersion": "2.0",
        }},
        "context_client_name": 85,
        "supports_cookies": True,
        "require_auth": True,
    },
}


def client_priority(client: YtClient) -> int:
    """Lower sorts first: family index in BASE_CLIENTS, embedded after the rest."""
    try:
        index = BASE_CLIENTS.index(client.base)
    except ValueError:
        index = -1
    priority = 10 * index
    return priority - 2 if client.is_embedded else priority - 3


def _build_innertube_clients() -> Mapping[YtClient, InnerTubeClient]:
    clients = {}
    for name, definition in _CLIENT_DEFINITIONS.items():
        definition = copy.deepcopy(definition)
        context = definition.pop("innertube_context")
        context["client"].setdefault("hl", PREFERRED_LOCALE)
        if name.is_embedded:
            context["thirdParty"] = dict(THIRD_PARTY)
        if "gvs_po_token_policy" in definition:
            definition["gvs_po_token_policy"] = MappingProxyType(definition["gvs_po_token_policy"])
        clients[name] = InnerTubeClient(
            name=name,
            innertube_context=context,
            priority=client_priority(name),
            **definition,
        )
    return MappingProxyType(clients)


INNERTUBE_CLIENTS: Mapping[YtClient, InnerTubeClient] = _build_innertube_clients()


def get_client(client: YtClient) -> InnerTubeClient:
    """Registry lookup. An unregistered key is a programming error."""
    return INNERTUBE_CLIENTS[client]


def ordered_by_priority(subset: Optional[Iterable[YtClient]] = None) -> tuple[InnerTubeClient, ...]:
    """Clients in try order (ascending priority, declaration order on ties)."""
    names = list(YtClient) if subset is None else list(dict.fromkeys(subset))
    return tuple(sorted((get_client(n) for n in names), key=lambda c: c.priority))


def personas() -> tuple[InnerTubeClient, ...]:
    return ordered_by_priority()
