"""Comparison matrix — capability rows by category, one entitlement cell per selected bundle."""

from __future__ import annotations

from pydantic import BaseModel, Field

from planmap.entitlement import cell_label, resolve
from planmap.models import CATEGORIES, Bundle, Capability, Entitlement


class MatrixRow(BaseModel):
    category: str
    capability: Capability
    cells: list[Entitlement] = Field(default_factory=list)

    def labels(self) -> list[str]:
        return [cell_label(c) for c in self.cells]


class ComparisonMatrix(BaseModel):
    bundles: list[Bundle] = Field(default_factory=list)
    rows: list[MatrixRow] = Field(default_factory=list)

    def categories(self) -> list[str]:
        """Categories that have at least one row, in display order."""
        present = {r.category for r in self.rows}
        return [c for c in CATEGORIES if c in present]

    def rows_for(self, category: str) -> list[MatrixRow]:
        return [r for r in self.rows if r.category == category]


def matches(capability: Capability, term: str | None = None, category: str | None = None) -> bool:
    """Case-insensitive search over name and description, optionally limited to one category."""
    if category and category != "All" and capability.category != category:
        return False
    if term and term.strip():
        needle = term.strip().lower()
        return needle in capability.name.lower() or needle in capability.description.lower()
    return True


def build_matrix(
    capabilities: list[Capability],
    bundles: list[Bundle],
    term: str | None = None,
    category: str | None = None,
) -> ComparisonMatrix:
    """Build rows for capabilities included by at least one of the given bundles.

    Rows are grouped in category display order and keep catalog order within a
    category. A capability included by none of the bundles produces no row.
    """
    covered = {cid for b in bundles for cid in b.capability_ids}
    rows: list[MatrixRow] = []
    for cat in CATEGORIES:
        for cap in capabilities:
            if cap.category != cat or cap.id not in covered:
                continue
            if not matches(cap, term, category):
                continue
            rows.append(MatrixRow(category=cat, capability=cap, cells=[resolve(b, cap) for b in bundles]))
    return ComparisonMatrix(bundles=list(bundles), rows=rows)


def toggle_selection(selected_ids: list[str], bundle_id: str) -> list[str]:
    """Add or remove a bundle from a comparison selection; the last bundle cannot be removed."""
    if bundle_id in selected_ids:
        if len(selected_ids) > 1:
            return [bid for bid in selected_ids if bid != bundle_id]
        return list(selected_ids)
    return [*selected_ids, bundle_id]
