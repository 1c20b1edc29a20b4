from __future__ import annotations

from dataclasses import dataclass
import math


@dataclass(frozen=True)
class Threshold:
    label: str
    minimum: float
    # Strict thresholds admit only values above the minimum.
    strict: bool = False

    def admits(self, value: float) -> bool:
        return value > self.minimum if self.strict else value >= self.minimum


def grade(value: float, thresholds: tuple[Threshold, ...], default: str) -> str:
    # Ordered first-match cascade, highest band first.
    for threshold in thresholds:
        if threshold.admits(value):
            return threshold.label
    return default


def round_half_up(value: float) -> int:
    # Percentages round .5 upwards rather than to the nearest even integer.
    return int(math.floor(value + 0.5))
