"""Tests for labels, gradients and sentiment colors."""

import re

import pytest

from netmap.core.styling import gradient_from_id, initials, line_color
from netmap.models.network import Interaction

HSL = re.compile(r"^hsl\((\d+), (\d+)%, (\d+)%\)$")


def interactions(*sentiments):
    return [Interaction(person_id="c1", sentiment=s) for s in sentiments]


class TestInitials:
    """Test two-letter labels."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Alice Smith", "AS"),
            ("alice smith", "AS"),
            ("Bob", "BO"),
            ("X", "X"),
            ("Mary Ann Lee", "MA"),
            ("  Carol   Jones  ", "CJ"),
            ("", "?"),
            ("   ", "?"),
        ],
    )
    def test_initials(self, name, expected):
        assert initials(name) == expected

    def test_none(self):
        assert initials(None) == "?"


class TestGradient:
    """Test id-derived gradient pairs."""

    def test_deterministic(self):
        assert gradient_from_id("c1") == gradient_from_id("c1")

    def test_format_and_ranges(self):
        for node_id in ("c1", "c2", "alice", "contact-1234"):
            start, end = gradient_from_id(node_id)
            for color in (start, end):
                hue, sat, light = map(int, HSL.match(color).groups())
                assert 0 <= hue < 360
                assert 70 <= sat < 95
                assert 45 <= light < 70


class TestLineColor:
    """Test sentiment-weighted edge colors."""

    def test_no_interactions(self):
        assert line_color([]) == "#000000"

    @pytest.mark.parametrize(
        "sentiment, expected",
        [("good", "#22c55e"), ("bad", "#ef4444"), ("neutral", "#6b7280")],
    )
    def test_unanimous(self, sentiment, expected):
        assert line_color(interactions(sentiment)) == expected
        assert line_color(interactions(sentiment, sentiment, sentiment)) == expected

    def test_even_mix_rounds_halves_up(self):
        assert line_color(interactions("good", "bad")) == "rgb(137, 133, 81)"

    def test_weighted_mix(self):
        # 3 good, 1 neutral: 0.75 * green + 0.25 * gray
        assert line_color(interactions("good", "good", "good", "neutral")) == "rgb(52, 176, 103)"
