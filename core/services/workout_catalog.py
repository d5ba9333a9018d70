"""Static workout tables used as the baseline for every inferred field."""

from __future__ import annotations

from enum import Enum


class WorkoutType(str, Enum):
    STRENGTH = "strength"
    CONDITIONING = "conditioning"
    HYBRID = "hybrid"
    AGILITY = "agility"


INTENSITIES = ("low", "medium", "high", "max")
REASONING_SOURCES = ("calendar", "history", "preferences", "pattern", "availability")

DEFAULT_WORKOUT_TYPE = WorkoutType.STRENGTH

BASELINE_DURATION: dict[WorkoutType, int] = {
    WorkoutType.STRENGTH: 60,
    WorkoutType.CONDITIONING: 45,
    WorkoutType.HYBRID: 75,
    WorkoutType.AGILITY: 30,
}

BASELINE_EQUIPMENT: dict[WorkoutType, list[str]] = {
    WorkoutType.STRENGTH: ["barbell", "dumbbells", "bench", "squat-rack"],
    WorkoutType.CONDITIONING: ["rowing-machine", "bike", "treadmill"],
    WorkoutType.HYBRID: ["kettlebells", "medicine-ball", "battle-ropes"],
    WorkoutType.AGILITY: ["cones", "ladder", "hurdles"],
}

# 0 = Sunday
WEEKDAY_INTENSITY: dict[int, str] = {
    0: "low",
    1: "medium",
    2: "high",
    3: "medium",
    4: "high",
    5: "medium",
    6: "low",
}

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

TYPE_DISPLAY_NAMES: dict[WorkoutType, str] = {
    WorkoutType.STRENGTH: "Strength Training",
    WorkoutType.CONDITIONING: "Conditioning",
    WorkoutType.HYBRID: "Hybrid Workout",
    WorkoutType.AGILITY: "Agility Drills",
}

DEFAULT_PROFILE_INTENSITY: dict[WorkoutType, str] = {t: "medium" for t in WorkoutType}

# Team ids that mean "no specific team"
TEAM_SENTINELS = frozenset({"all", "personal"})


def coerce_workout_type(value) -> WorkoutType | None:
    """Return the WorkoutType for a raw value, or None when it is not recognised."""
    if isinstance(value, WorkoutType):
        return value
    try:
        return WorkoutType(str(value).strip().lower())
    except ValueError:
        return None


def is_intensity(value) -> bool:
    return isinstance(value, str) and value in INTENSITIES


def weekday_index(d) -> int:
    """Sunday-based weekday index (0 = Sunday ... 6 = Saturday)."""
    return (d.weekday() + 1) % 7


def weekday_name(d) -> str:
    return WEEKDAY_NAMES[weekday_index(d)]
