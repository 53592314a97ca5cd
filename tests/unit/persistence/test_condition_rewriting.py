"""Tests for dynamic attribute markers in query conditions."""

from eavrecord.infrastructure.persistence.eav.query import rewrite_condition


class TestRewriteCondition:

    def test_no_markers(self):
        assert rewrite_condition("name = :name") == ("name = :name", [])

    def test_single_marker(self):
        condition, names = rewrite_condition("::color = :color")
        assert condition == "eav_color.value = :color"
        assert names == ["color"]

    def test_repeated_markers_join_once(self):
        condition, names = rewrite_condition("::weight > 10 AND ::weight < 20 OR ::color IS NULL")
        assert condition == "eav_weight.value > 10 AND eav_weight.value < 20 OR eav_color.value IS NULL"
        assert names == ["weight", "color"]

    def test_bind_parameters_are_untouched(self):
        condition, names = rewrite_condition("::size IN (:small, :large)")
        assert condition == "eav_size.value IN (:small, :large)"
        assert names == ["size"]
