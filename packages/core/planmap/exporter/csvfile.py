"""CSV comparison export: one row per capability covered by a selected bundle."""

from __future__ import annotations

import csv
import io

from planmap.matrix import ComparisonMatrix
from planmap.models import Bundle

FIXED_COLUMNS = ["Category", "Feature", "Description"]


def bundle_column(bundle: Bundle) -> str:
    return f"{bundle.name} ({bundle.monthly_price_usd}/{bundle.monthly_price_inr})"


def render(matrix: ComparisonMatrix) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(FIXED_COLUMNS + [bundle_column(b) for b in matrix.bundles])
    for row in matrix.rows:
        writer.writerow([row.category, row.capability.name, row.capability.description, *row.labels()])
    return buf.getvalue()
