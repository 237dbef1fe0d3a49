"""Learning-step parsing."""

import re

from prepigo.domain.constants import MINUTES_PER_DAY

_NUMBER = re.compile(r"^\d+(\.\d+)?")


def parse_steps(text: str | None) -> list[float]:
    """
    Parse a step string such as "1 10" or "10m 1h 1d" into minutes.

    Suffixes: d (days), h (hours), s (seconds, at least one minute),
    m or none (minutes). Tokens without a leading number count as one minute.
    """
    if not text:
        return []

    steps: list[float] = []
    for token in text.split():
        match = _NUMBER.match(token)
        if not match:
            steps.append(1.0)
            continue

        value = float(match.group(0))
        if token.endswith("d"):
            steps.append(value * MINUTES_PER_DAY)
        elif token.endswith("h"):
            steps.append(value * 60)
        elif token.endswith("s"):
            steps.append(max(1.0, value / 60))
        else:
            steps.append(value)
    return steps
