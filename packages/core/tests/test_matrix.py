"""Tests for the comparison matrix and bundle selection."""

from __future__ import annotations

from planmap.matrix import build_matrix, matches, toggle_selection


class TestBuildMatrix:
    def test_rows_only_for_covered_capabilities(self, tiered_capability, flat_capability, pro_bundle):
        matrix = build_matrix([tiered_capability, flat_capability], [pro_bundle])
        assert [r.capability.id for r in matrix.rows] == ["mail"]

    def test_rows_grouped_in_category_order(self, tiered_capability, flat_capability, basic_bundle):
        # Voice & Collaboration comes after Productivity regardless of catalog order
        matrix = build_matrix([flat_capability, tiered_capability], [basic_bundle])
        assert [r.category for r in matrix.rows] == ["Productivity", "Voice & Collaboration"]
        assert matrix.categories() == ["Productivity", "Voice & Collaboration"]

    def test_cells_follow_bundle_order(self, tiered_capability, flat_capability, basic_bundle, pro_bundle):
        matrix = build_matrix([tiered_capability, flat_capability], [pro_bundle, basic_bundle])
        rows = {r.capability.id: r.labels() for r in matrix.rows}
        assert rows["mail"] == ["Plan 2", "Plan 1"]
        assert rows["chat"] == ["No", "Yes"]

    def test_search_and_category_filters(self, tiered_capability, flat_capability, basic_bundle):
        caps = [tiered_capability, flat_capability]
        assert [r.capability.id for r in build_matrix(caps, [basic_bundle], term="MESSAG").rows] == ["chat"]
        assert [r.capability.id for r in build_matrix(caps, [basic_bundle], category="Productivity").rows] == ["mail"]
        assert len(build_matrix(caps, [basic_bundle], category="All").rows) == 2

    def test_no_bundles_no_rows(self, tiered_capability):
        assert build_matrix([tiered_capability], []).rows == []

    def test_matches_blank_term(self, flat_capability):
        assert matches(flat_capability, "   ")
        assert not matches(flat_capability, None, "Security")


class TestToggleSelection:
    def test_add(self):
        assert toggle_selection(["a"], "b") == ["a", "b"]

    def test_remove(self):
        assert toggle_selection(["a", "b"], "a") == ["b"]

    def test_last_bundle_stays(self):
        assert toggle_selection(["a"], "a") == ["a"]
