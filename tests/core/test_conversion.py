"""Tests for flexconf.core.conversion."""

from datetime import timedelta
from decimal import Decimal
from enum import Enum
from pathlib import Path

import pytest

from flexconf.core.conversion import parse_timedelta, to_type, zero_value


class Color(Enum):
    RED = 1
    GREEN = 2


class TestToType:
    """Test conversion of configuration strings."""

    @pytest.mark.parametrize(
        "text,target,expected",
        [
            ("42", int, 42),
            (" 42 ", int, 42),
            ("1.5", float, 1.5),
            ("1.50", Decimal, Decimal("1.50")),
            ("true", bool, True),
            ("FALSE", bool, False),
            ("text", str, "text"),
            ("RED", Color, Color.RED),
            ("2", Color, Color.GREEN),
            ("/tmp/x", Path, Path("/tmp/x")),
        ],
    )
    def test_valid_values(self, text, target, expected):
        assert to_type(text, target) == expected

    @pytest.mark.parametrize(
        "text,target,expected",
        [
            ("abc", int, 0),
            ("1.5", int, 0),
            ("abc", float, 0.0),
            ("abc", Decimal, Decimal(0)),
            ("yes", bool, False),
            ("1", bool, False),
            ("later", timedelta, timedelta(0)),
            ("BLUE", Color, None),
        ],
    )
    def test_invalid_values_give_zero(self, text, target, expected):
        assert to_type(text, target) == expected

    def test_none_gives_zero(self):
        assert to_type(None, int) == 0
        assert to_type(None, str) == ""
        assert to_type(None, Path) is None

    def test_zero_value(self):
        assert zero_value(bool) is False
        assert zero_value(Color) is None


class TestParseTimedelta:
    """Test the [-][d.]hh:mm[:ss[.fffffff]] duration format."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("00:05", timedelta(minutes=5)),
            ("01:02:03", timedelta(hours=1, minutes=2, seconds=3)),
            ("2.03:00:00", timedelta(days=2, hours=3)),
            ("00:00:01.5", timedelta(seconds=1, microseconds=500000)),
            ("-00:01:00", -timedelta(minutes=1)),
            ("3", timedelta(days=3)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_timedelta(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "24:00:00", "00:60", "1:2:3:4"])
    def test_invalid(self, text):
        assert parse_timedelta(text) is None
