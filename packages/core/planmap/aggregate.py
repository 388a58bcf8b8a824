"""Aggregate pricing and capability coverage across a selection of bundles."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from planmap.models import AggregateTotals, BillingFrequency, Bundle
from planmap.money import parse_money

log = logging.getLogger(__name__)


def union_capability_ids(bundles: Iterable[Bundle]) -> set[str]:
    ids: set[str] = set()
    for bundle in bundles:
        ids.update(bundle.capability_ids)
    return ids


def aggregate(bundles: Iterable[Bundle], frequency: BillingFrequency = "monthly") -> AggregateTotals:
    """Sum the recurring price of every bundle and count the distinct capabilities they cover."""
    selected = list(bundles)
    total_usd = 0.0
    total_inr = 0.0
    for bundle in selected:
        usd, inr = bundle.price_strings(frequency)
        total_usd += parse_money(usd)
        total_inr += parse_money(inr)

    totals = AggregateTotals(
        total_usd=round(total_usd, 2),
        total_inr=round(total_inr, 2),
        unique_capability_count=len(union_capability_ids(selected)),
        frequency=frequency,
    )
    log.debug("Aggregated %d bundles: %s", len(selected), totals)
    return totals
