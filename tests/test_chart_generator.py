"""Tests for redmine_dashboard.core.chart_generator."""

from __future__ import annotations

from redmine_dashboard.core.chart_generator import generate_bar_chart, generate_stacked_chart


class TestGenerateBarChart:
    """Chart generator should produce valid PNG bytes or None."""

    def test_returns_png_bytes(self) -> None:
        result = generate_bar_chart(["Alpha", "Beta"], [3, 5], title="Issues by project")
        assert result is not None
        assert isinstance(result, bytes)
        # PNG magic bytes
        assert result[:4] == b"\x89PNG"

    def test_returns_none_for_empty(self) -> None:
        assert generate_bar_chart([], []) is None

    def test_returns_none_for_all_zero(self) -> None:
        assert generate_bar_chart(["Alpha"], [0]) is None

    def test_dark_mode_produces_png(self) -> None:
        result = generate_bar_chart(["High", "Low"], [1, 2], dark=True)
        assert result is not None
        assert result[:4] == b"\x89PNG"

    def test_custom_dpi(self) -> None:
        lo = generate_bar_chart(["a", "b", "c"], [1, 2, 3], dpi=72)
        hi = generate_bar_chart(["a", "b", "c"], [1, 2, 3], dpi=200)
        assert lo is not None and hi is not None
        # Higher DPI → more bytes
        assert len(hi) > len(lo)

    def test_many_bars_cycle_colours(self) -> None:
        labels = [f"2024-01-{d:02d}" for d in range(1, 13)]
        assert generate_bar_chart(labels, list(range(1, 13))) is not None


class TestGenerateStackedChart:
    def test_returns_png_bytes(self) -> None:
        data = {"Alpha": {"仕様": 2, "N/A": 1}, "Beta": {"実装": 4}}
        result = generate_stacked_chart(data, title="FJN error type")
        assert result is not None
        assert result[:4] == b"\x89PNG"

    def test_returns_none_for_empty(self) -> None:
        assert generate_stacked_chart({}) is None
        assert generate_stacked_chart({"Alpha": {}}) is None
        assert generate_stacked_chart({"Alpha": {"x": 0}}) is None

    def test_dark_mode(self) -> None:
        assert generate_stacked_chart({"Alpha": {"x": 1}}, dark=True) is not None
