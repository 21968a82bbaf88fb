"""
Unit tests for terminal formatting.

Run with: pytest klimakur_model/test_formatter.py -v
"""

import pytest

from .formatter import (
    colorize,
    fmt_bn_nok,
    fmt_mt,
    fmt_number,
    fmt_pct,
    kv_block,
    progress_bar,
    supports_color,
    table,
    title,
)


class TestNumbers:
    """Tests for Norwegian number formatting."""

    @pytest.mark.parametrize("value,decimals,expected", [
        (12345.678, 1, "12 345,7"),
        (0, 0, "0"),
        (1500, 0, "1 500"),
        (-2.5, 2, "-2,50"),
        (1234567.0, 0, "1 234 567"),
    ])
    def test_fmt_number(self, value, decimals, expected):
        assert fmt_number(value, decimals) == expected

    @pytest.mark.parametrize("value", [None, float("nan"), float("inf")])
    def test_not_available(self, value):
        assert fmt_number(value) == "N/A"

    def test_units(self):
        assert fmt_mt(1.234) == "1,23 Mt"
        assert fmt_bn_nok(12.5) == "12,50 mrd kr"
        assert fmt_pct(71.24) == "71,2 %"


class TestPrimitives:
    """Tests for box-drawing primitives."""

    def test_title_width(self):
        assert len(title("Klimakur", width=40)) == 40

    def test_kv_block_aligned(self):
        lines = kv_block([("Target", "70"), ("Selected measures", "61")]).split("\n")
        assert lines[0].index(" 70") == lines[1].index(" 61")

    def test_table(self):
        text = table(["Sector", "Mt"], [["Jordbruk", "1,20"], ["CCS"]], aligns=['l', 'r'])
        lines = text.split("\n")
        assert len(lines) == 6
        assert len({len(line) for line in lines}) == 1
        assert "Jordbruk" in lines[3]

    def test_empty_table(self):
        assert table([], []) == ""

    def test_progress_bar_clamped(self):
        assert progress_bar(150, width=10) == "[" + "█" * 10 + "]  100,0 %"
        assert progress_bar(-5, width=10).startswith("[" + "░" * 10 + "]")

    def test_progress_bar_reference_share(self):
        bar = progress_bar(50, width=10, reference_percent=30)
        assert bar.startswith("[▓▓▓██░░░░░]")

    def test_reference_never_exceeds_fill(self):
        bar = progress_bar(20, width=10, reference_percent=80)
        assert bar.startswith("[▓▓░░░░░░░░]")


class TestColor:
    """Tests for ANSI post-processing."""

    def test_colorize_adds_codes(self):
        assert "\033[" in colorize(title("Klimakur"))

    def test_plain_lines_untouched(self):
        assert colorize("plain text") == "plain text"

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert supports_color() is False
