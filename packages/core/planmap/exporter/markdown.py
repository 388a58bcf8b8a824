"""Markdown comparison export, grouped by category."""

from __future__ import annotations

from planmap.aggregate import aggregate
from planmap.matrix import ComparisonMatrix
from planmap.money import format_money


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def render(matrix: ComparisonMatrix) -> str:
    names = [_cell(b.name) for b in matrix.bundles]
    header = "| Capability | " + " | ".join(names) + " |"
    divider = "|---|" + "---|" * len(names)
    prices = "| *Monthly (USD / INR)* | " + " | ".join(
        f"{b.monthly_price_usd} / {b.monthly_price_inr}" for b in matrix.bundles
    ) + " |"

    lines = ["# Plan Comparison", "", header, divider, prices]
    for category in matrix.categories():
        lines.append(f"| **{_cell(category)}** |" + " |" * len(names))
        for row in matrix.rows_for(category):
            cells = ["✓" if label == "Yes" else ("—" if label == "No" else _cell(label)) for label in row.labels()]
            lines.append(f"| {_cell(row.capability.name)} | " + " | ".join(cells) + " |")

    totals = aggregate(matrix.bundles)
    lines += [
        "",
        f"**Total monthly:** {format_money(totals.total_usd, 'USD')} / {format_money(totals.total_inr, 'INR')}  ",
        f"**Unique capabilities:** {totals.unique_capability_count}",
        "",
    ]
    return "\n".join(lines)
