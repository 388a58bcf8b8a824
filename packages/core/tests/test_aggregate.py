"""Tests for price and coverage aggregation."""

from __future__ import annotations

from planmap.aggregate import aggregate, union_capability_ids
from planmap.models import Bundle


class TestAggregate:
    def test_empty_selection(self):
        totals = aggregate([])
        assert totals.total_usd == 0
        assert totals.total_inr == 0
        assert totals.unique_capability_count == 0

    def test_monthly_sum(self, basic_bundle, pro_bundle):
        totals = aggregate([basic_bundle, pro_bundle])
        assert totals.total_usd == 28.0
        assert totals.total_inr == 1975.0
        assert totals.frequency == "monthly"

    def test_annual_sum(self, basic_bundle, pro_bundle):
        totals = aggregate([basic_bundle, pro_bundle], "annual")
        assert totals.total_usd == 336.0
        assert totals.total_inr == 23700.0

    def test_unique_capabilities_counted_once(self, basic_bundle, pro_bundle):
        # "mail" is in both bundles
        assert aggregate([basic_bundle, pro_bundle]).unique_capability_count == 2
        assert union_capability_ids([basic_bundle, pro_bundle]) == {"mail", "chat"}

    def test_unparseable_price_counts_as_zero(self, basic_bundle):
        custom = Bundle(id="e5", name="E5", monthly_price_usd="Contact us", monthly_price_inr="TBD")
        totals = aggregate([basic_bundle, custom])
        assert totals.total_usd == 6.0
        assert totals.total_inr == 145.0

    def test_default_catalog_totals(self):
        from planmap.catalog import default_snapshot

        snap = default_snapshot()
        selected = [snap.get_bundle(b) for b in ("m365-bp", "m365-e3", "m365-e5")]
        totals = aggregate(selected)
        assert totals.total_usd == 115.0
        assert totals.total_inr == 9610.0
