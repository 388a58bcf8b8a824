"""planmap — licensing plan comparison for subscription bundles."""

from planmap.aggregate import aggregate
from planmap.entitlement import resolve
from planmap.models import (
    CATEGORIES,
    AggregateTotals,
    Bundle,
    Capability,
    CatalogSnapshot,
    Entitlement,
    Tier,
    TierStructure,
)
from planmap.money import parse_money

__version__ = "0.1.0"

__all__ = [
    "AggregateTotals",
    "Bundle",
    "CATEGORIES",
    "Capability",
    "CatalogEditor",
    "CatalogSnapshot",
    "CatalogStore",
    "Entitlement",
    "LicensingAdvisor",
    "Tier",
    "TierStructure",
    "aggregate",
    "build_matrix",
    "open_store",
    "parse_money",
    "resolve",
]


def __getattr__(name: str):
    # Lazy imports for modules that touch the database or the LLM SDKs
    if name == "CatalogStore":
        from planmap.catalog import CatalogStore

        return CatalogStore
    if name == "open_store":
        from planmap.catalog import open_store

        return open_store
    if name == "CatalogEditor":
        from planmap.editor import CatalogEditor

        return CatalogEditor
    if name == "LicensingAdvisor":
        from planmap.advisor import LicensingAdvisor

        return LicensingAdvisor
    if name == "build_matrix":
        from planmap.matrix import build_matrix

        return build_matrix
    raise AttributeError(f"module 'planmap' has no attribute {name!r}")
