"""Entitlement resolution — does a bundle include a capability, and at which tier."""

from __future__ import annotations

from planmap.models import Bundle, Capability, Entitlement

NOT_INCLUDED = Entitlement(status="not_included")
INCLUDED_FLAT = Entitlement(status="included_flat")
INCLUDED_UNRESOLVED_TIER = Entitlement(status="included_unresolved_tier")

_BADGE_REPLACEMENTS = (
    ("Plan ", "P"),
    ("Standard", "Std"),
    ("Premium", "Prem"),
    ("Business / P1", "P1/Bus"),
)


def resolve(bundle: Bundle, capability: Capability) -> Entitlement:
    """Resolve the entitlement of one bundle to one capability.

    Inclusion comes from the bundle's capability_ids; tier depth comes from the
    capability's tier structure. If a bundle is listed by several tiers the
    first one in list order wins.
    """
    if capability.id not in bundle.capability_ids:
        return NOT_INCLUDED
    if capability.tier_structure is None:
        return INCLUDED_FLAT
    for tier in capability.tier_structure.tiers:
        if bundle.id in tier.included_in_bundle_ids:
            return Entitlement(status="included_at_tier", tier_name=tier.name)
    return INCLUDED_UNRESOLVED_TIER


def cell_label(entitlement: Entitlement) -> str:
    """Text for a comparison cell: "No", "Yes" or the resolved tier name."""
    if not entitlement.included:
        return "No"
    if entitlement.status == "included_at_tier" and entitlement.tier_name:
        return entitlement.tier_name
    return "Yes"


def condense_tier_name(name: str) -> str:
    """Shorten a tier name for compact badges ("Plan 2" -> "P2")."""
    for old, new in _BADGE_REPLACEMENTS:
        name = name.replace(old, new)
    return name
