"""Shared fixtures for core tests."""

from __future__ import annotations

import pytest
from planmap.auth import UserAccount
from planmap.catalog import CatalogStore
from planmap.models import Bundle, Capability, CatalogSnapshot, Tier, TierStructure


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the user's real session file and database."""
    monkeypatch.setenv("PLANMAP_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("PLANMAP_DB", raising=False)


@pytest.fixture
def tiered_capability() -> Capability:
    return Capability(
        id="mail",
        name="Mail",
        description="Hosted mailboxes",
        category="Productivity",
        tier_structure=TierStructure(
            title="Plan 1 vs Plan 2",
            tiers=[
                Tier(name="Plan 1", capability_statements=["50 GB mailbox"], included_in_bundle_ids=["basic"]),
                Tier(name="Plan 2", capability_statements=["100 GB mailbox", "Archiving"], included_in_bundle_ids=["pro"]),
            ],
        ),
    )


@pytest.fixture
def flat_capability() -> Capability:
    return Capability(id="chat", name="Chat", description="Team messaging", category="Voice & Collaboration")


@pytest.fixture
def basic_bundle() -> Bundle:
    return Bundle(
        id="basic",
        name="Basic",
        type="Business",
        monthly_price_usd="$6.00",
        monthly_price_inr="₹145",
        annual_price_usd="$72.00",
        annual_price_inr="₹1,740",
        capability_ids=["mail", "chat"],
    )


@pytest.fixture
def pro_bundle() -> Bundle:
    return Bundle(
        id="pro",
        name="Pro",
        monthly_price_usd="$22.00",
        monthly_price_inr="₹1,830",
        annual_price_usd="$264.00",
        annual_price_inr="₹21,960",
        capability_ids=["mail"],
    )


@pytest.fixture
def small_snapshot(tiered_capability, flat_capability, basic_bundle, pro_bundle) -> CatalogSnapshot:
    return CatalogSnapshot(
        capabilities=[tiered_capability, flat_capability],
        bundles=[basic_bundle, pro_bundle],
    )


@pytest.fixture
def store(small_snapshot) -> CatalogStore:
    return CatalogStore(small_snapshot)


@pytest.fixture
def admin() -> UserAccount:
    return UserAccount(id="adm-1", username="Alex", role="ADMIN", is_approved=True)


@pytest.fixture
def super_admin() -> UserAccount:
    return UserAccount(id="sa-1", username="SuperAdmin", role="SUPER_ADMIN", is_approved=True)
