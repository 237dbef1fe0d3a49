import pytest

from prepigo.application.scheduling.steps import parse_steps


@pytest.mark.parametrize(
    "text,expected",
    [
        ("1 10", [1.0, 10.0]),
        ("10m 1h 1d", [10.0, 60.0, 1440.0]),
        ("1.5h", [90.0]),
        ("30s", [1.0]),
        ("120s", [2.0]),
        ("  5   15 ", [5.0, 15.0]),
        ("abc", [1.0]),
    ],
)
def test_parse_steps(text, expected):
    assert parse_steps(text) == expected


@pytest.mark.parametrize("text", ["", "   ", None])
def test_empty_steps(text):
    assert parse_steps(text) == []
