"""Catalog data model — capabilities, tiers, bundles and the values derived from them.

Everything flows through these models: the store holds them, the resolver and
aggregator read them, the editor mutates copies of them and the exporters
render them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

Category = Literal[
    "Productivity",
    "Security",
    "Compliance",
    "Management",
    "Voice & Collaboration",
    "Windows & OS",
    "Employee Experience",
]

# Display order for matrices and exports
CATEGORIES: tuple[str, ...] = (
    "Productivity",
    "Security",
    "Compliance",
    "Management",
    "Voice & Collaboration",
    "Windows & OS",
    "Employee Experience",
)

BundleType = Literal["Business", "Enterprise", "Frontline", "Add-on"]
BillingFrequency = Literal["monthly", "annual"]


class Tier(BaseModel):
    name: str
    capability_statements: list[str] = Field(default_factory=list)
    included_in_bundle_ids: list[str] = Field(default_factory=list)


class TierStructure(BaseModel):
    title: str = "Standard vs Premium"
    tiers: list[Tier] = Field(default_factory=list)


class Capability(BaseModel):
    """One technical feature of the suite, optionally delivered at several tiers."""

    id: str = ""
    name: str = ""
    description: str = ""
    category: Category = "Productivity"
    documentation_link: str | None = None
    tier_structure: TierStructure | None = None

    def duplicate_tier_memberships(self) -> dict[str, list[str]]:
        """Bundle ids listed by more than one tier, mapped to the tier names that list them."""
        if self.tier_structure is None:
            return {}
        seen: dict[str, list[str]] = {}
        for tier in self.tier_structure.tiers:
            for bundle_id in tier.included_in_bundle_ids:
                seen.setdefault(bundle_id, []).append(tier.name)
        return {bid: names for bid, names in seen.items() if len(names) > 1}


class Bundle(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    type: BundleType = "Enterprise"
    monthly_price_usd: str = "$0.00"
    monthly_price_inr: str = "₹0"
    annual_price_usd: str = "$0.00"
    annual_price_inr: str = "₹0"
    accent_color: str = "#000000"
    capability_ids: list[str] = Field(default_factory=list)

    def price_strings(self, frequency: BillingFrequency = "monthly") -> tuple[str, str]:
        """Return the (USD, INR) price strings for a billing frequency."""
        if frequency == "annual":
            return self.annual_price_usd, self.annual_price_inr
        return self.monthly_price_usd, self.monthly_price_inr


class Entitlement(BaseModel):
    """How one bundle includes one capability."""

    model_config = ConfigDict(frozen=True)

    status: Literal["not_included", "included_flat", "included_at_tier", "included_unresolved_tier"]
    tier_name: str | None = None

    @property
    def included(self) -> bool:
        return self.status != "not_included"


class AggregateTotals(BaseModel):
    total_usd: float = 0.0
    total_inr: float = 0.0
    unique_capability_count: int = 0
    frequency: BillingFrequency = "monthly"


class CatalogSnapshot(BaseModel):
    """A complete, serializable copy of the catalog."""

    capabilities: list[Capability] = Field(default_factory=list)
    bundles: list[Bundle] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def get_capability(self, capability_id: str) -> Capability | None:
        return next((c for c in self.capabilities if c.id == capability_id), None)

    def get_bundle(self, bundle_id: str) -> Bundle | None:
        return next((b for b in self.bundles if b.id == bundle_id), None)

    def to_yaml(self) -> str:
        data = self.model_dump(exclude_none=True)
        return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(indent=indent, exclude_none=True)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> CatalogSnapshot:
        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> CatalogSnapshot:
        p = Path(path)
        text = p.read_text(encoding="utf-8")
        if p.suffix in (".yaml", ".yml"):
            return cls.from_yaml(text)
        return cls.model_validate_json(text)
