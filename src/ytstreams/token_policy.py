"""PO token policies and the evaluator that gates client usability.

Policies are plain frozen values attached to each client. Evaluation is pure
and total: a protocol the client does not describe resolves to ``REQUIRED``
so an ungated stream is never silently treated as usable.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

from ytstreams.webpage import get_text, traverse

if TYPE_CHECKING:
    from ytstreams.clients import InnerTubeClient

PREMIUM_LOGO_ICON = "YOUTUBE_PREMIUM_LOGO"


class StreamingProtocol(enum.Enum):
    HTTPS = "https"
    DASH = "dash"
    HLS = "hls"


class TokenRequirement(enum.Enum):
    NOT_NEEDED = "not_needed"
    RECOMMENDED = "recommended"
    REQUIRED = "required"


@dataclass(frozen=True)
class BasePoTokenPolicy:
    required: bool = False
    # Fetch a token even when it is not required.
    recommended: bool = False
    not_required_for_premium: bool = False


@dataclass(frozen=True)
class GvsPoTokenPolicy(BasePoTokenPolicy):
    not_required_with_player_token: bool = False


@dataclass(frozen=True)
class PlayerPoTokenPolicy(BasePoTokenPolicy):
    pass


@dataclass(frozen=True)
class SubsPoTokenPolicy(BasePoTokenPolicy):
    pass


def default_gvs_policies() -> dict[StreamingProtocol, GvsPoTokenPolicy]:
    return {protocol: GvsPoTokenPolicy() for protocol in StreamingProtocol}


def evaluate_policy(
    policy: BasePoTokenPolicy,
    is_premium_subscriber: bool,
    has_player_token: bool = False,
) -> TokenRequirement:
    """Resolve one policy to a requirement.

    ``has_player_token`` only waives policies that carry the
    ``not_required_with_player_token`` flag (GVS policies).
    """
    if not policy.required:
        return TokenRequirement.RECOMMENDED if policy.recommended else TokenRequirement.NOT_NEEDED
    if policy.not_required_for_premium and is_premium_subscriber:
        return TokenRequirement.NOT_NEEDED
    if getattr(policy, "not_required_with_player_token", False) and has_player_token:
        return TokenRequirement.NOT_NEEDED
    return TokenRequirement.REQUIRED


def needs_token(
    client: InnerTubeClient,
    protocol: StreamingProtocol,
    is_premium_subscriber: bool,
    has_player_token: bool,
) -> TokenRequirement:
    """GVS (streaming) token requirement of *client* for *protocol*."""
    policy = client.gvs_po_token_policy.get(protocol)
    if policy is None:
        return TokenRequirement.REQUIRED
    return evaluate_policy(policy, is_premium_subscriber, has_player_token)


def needs_player_token(client: InnerTubeClient, is_premium_subscriber: bool) -> TokenRequirement:
    """Token requirement for calling the player endpoint itself."""
    return evaluate_policy(client.player_po_token_policy, is_premium_subscriber)


def needs_subs_token(client: InnerTubeClient, is_premium_subscriber: bool) -> TokenRequirement:
    return evaluate_policy(client.subs_po_token_policy, is_premium_subscriber)


def is_premium_subscriber(initial_data: Optional[Mapping[str, Any]], authenticated: bool) -> bool:
    """Detect a premium account from the topbar logo of the initial data.

    Only meaningful for cookie-authenticated sessions.
    """
    if not authenticated or not isinstance(initial_data, Mapping):
        return False
    logo = traverse(initial_data, ("topbar", "desktopTopbarRenderer", "logo", "topbarLogoRenderer"))
    if not isinstance(logo, Mapping):
        return False
    icon = logo.get("iconImage")
    if isinstance(icon, Mapping) and icon.get("iconType") == PREMIUM_LOGO_ICON:
        return True
    tooltip = get_text(logo, "tooltipText") or ""
    return "premium" in tooltip.lower()
