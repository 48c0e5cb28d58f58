"""Tests for kroner/øre conversion and price formatting."""

import pytest
from shared.money import format_kroner, to_kroner, to_ore


class TestConversion:
    @pytest.mark.parametrize("kroner, ore", [(399, 39900), (0, 0), (12.345, 1235), (0.005, 1), (79.99, 7999)])
    def test_to_ore(self, kroner, ore):
        assert to_ore(kroner) == ore

    def test_to_kroner(self):
        assert to_kroner(47800) == 478
        assert to_kroner(None) == 0


class TestFormatting:
    @pytest.mark.parametrize(
        "amount, expected",
        [(399, "399,-"), (1234, "1 234,-"), (1234567, "1 234 567,-"), (0, "0,-"), (478.5, "479,-")],
    )
    def test_format_kroner(self, amount, expected):
        assert format_kroner(amount) == expected

    def test_groups_with_plain_space(self):
        assert format_kroner(12000) == "12" + " " + "000,-"
        assert "\xa0" not in format_kroner(1234567)
