"""JSON comparison export."""

from __future__ import annotations

import json

from planmap.aggregate import aggregate
from planmap.matrix import ComparisonMatrix


def render(matrix: ComparisonMatrix) -> str:
    data = {
        "bundles": [{"id": b.id, "name": b.name} for b in matrix.bundles],
        "rows": [
            {
                "category": row.category,
                "capability_id": row.capability.id,
                "capability": row.capability.name,
                "cells": dict(zip([b.id for b in matrix.bundles], row.labels())),
            }
            for row in matrix.rows
        ],
        "totals": aggregate(matrix.bundles).model_dump(),
    }
    return json.dumps(data, indent=2, ensure_ascii=False)
