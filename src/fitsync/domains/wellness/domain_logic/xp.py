"""Experience points and levels.

Level ``n`` starts at ``(n - 1)**2 * 100`` XP, so each level needs more XP
than the one before.
"""

from __future__ import annotations

import math
from typing import Literal

XpSource = Literal["workout", "steps", "meal", "sleep"]

_NAMED_INTENSITY = {"beginner": 1.0, "intermediate": 1.5, "advanced": 2.0}


def intensity_multiplier(intensity: float | str | None) -> float:
    """Map a 1-10 intensity (or a beginner/intermediate/advanced label) to 1, 1.5 or 2."""
    if intensity is None:
        return 1.0
    if isinstance(intensity, str):
        return _NAMED_INTENSITY.get(intensity.strip().lower(), 1.0)
    if intensity <= 3:
        return 1.0
    if intensity <= 6:
        return 1.5
    return 2.0


def sleep_xp(hours: float) -> int:
    if 7 <= hours <= 9:
        return 30
    if 5 <= hours < 7:
        return 15
    if hours > 9:
        return 20
    return 5


def calculate_xp_for_activity(
    kind: XpSource,
    duration_minutes: float = 0,
    intensity: float | str | None = None,
    steps: float = 0,
    sleep_hours: float = 0,
) -> int:
    """XP for one logged event.

    workout: 50 + 10 per full hour + round(20 * intensity multiplier)
    steps:   1 per 200 steps
    meal:    10
    sleep:   30 for 7-9 h, 15 for 5-7 h, 20 above 9 h, else 5
    """
    if kind == "workout":
        return 50 + math.floor(duration_minutes / 60) * 10 + round(20 * intensity_multiplier(intensity))
    if kind == "steps":
        return math.floor(steps / 200)
    if kind == "meal":
        return 10
    if kind == "sleep":
        return sleep_xp(sleep_hours)
    raise ValueError(f"Unknown XP source: {kind!r}")


def calculate_level(total_xp: float) -> int:
    return math.floor(math.sqrt(max(total_xp, 0) / 100)) + 1


def xp_to_next_level(total_xp: float) -> int:
    return math.ceil(calculate_level(total_xp) ** 2 * 100 - total_xp)


def level_progress(total_xp: float) -> float:
    """Percent progress from the current level's start toward the next level."""
    level = calculate_level(total_xp)
    start = (level - 1) ** 2 * 100
    end = level ** 2 * 100
    return max(0.0, min(100.0, (total_xp - start) / (end - start) * 100))
