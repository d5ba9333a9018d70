"""Per-user learned preference profile and its persisted document form."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from core.services.workout_catalog import BASELINE_DURATION, DEFAULT_PROFILE_INTENSITY, WorkoutType
from core.validators import PreferenceDocument


@dataclass
class PreferredTime:
    day_of_week: int
    start_time: str
    workout_type: Optional[WorkoutType] = None


@dataclass
class PreferenceProfile:
    user_id: str
    default_duration: dict[WorkoutType, int] = field(default_factory=dict)
    default_intensity: dict[WorkoutType, str] = field(default_factory=dict)
    preferred_times: list[PreferredTime] = field(default_factory=list)
    preferred_equipment: list[str] = field(default_factory=list)
    recent_teams: list[str] = field(default_factory=list)
    recent_workout_types: list[WorkoutType] = field(default_factory=list)
    auto_select_team: bool = True
    auto_select_players: bool = True
    workout_counts: dict[WorkoutType, int] = field(default_factory=dict)

    def snapshot(self) -> "PreferenceProfile":
        return copy.deepcopy(self)


def create_default_profile(user_id: str) -> PreferenceProfile:
    """Static defaults used when a user has no stored profile yet."""
    return PreferenceProfile(
        user_id=user_id,
        default_duration=dict(BASELINE_DURATION),
        default_intensity=dict(DEFAULT_PROFILE_INTENSITY),
    )


def profile_to_document(profile: PreferenceProfile) -> dict[str, Any]:
    """Serialize a profile to plain JSON types. Inverse of `profile_from_document`."""
    return {
        "user_id": profile.user_id,
        "default_duration": {t.value: int(v) for t, v in profile.default_duration.items()},
        "default_intensity": {t.value: v for t, v in profile.default_intensity.items()},
        "preferred_times": [
            {
                "day_of_week": p.day_of_week,
                "start_time": p.start_time,
                "workout_type": p.workout_type.value if p.workout_type else None,
            }
            for p in profile.preferred_times
        ],
        "preferred_equipment": list(profile.preferred_equipment),
        "recent_teams": list(profile.recent_teams),
        "recent_workout_types": [t.value for t in profile.recent_workout_types],
        "auto_select_team": profile.auto_select_team,
        "auto_select_players": profile.auto_select_players,
        "workout_counts": {t.value: int(v) for t, v in profile.workout_counts.items()},
    }


def profile_from_document(document: Any) -> PreferenceProfile:
    """Parse a stored document. Raises ValueError (pydantic.ValidationError) if malformed."""
    doc = PreferenceDocument.model_validate(document)
    return PreferenceProfile(
        user_id=doc.user_id,
        default_duration=dict(doc.default_duration),
        default_intensity=dict(doc.default_intensity),
        preferred_times=[
            PreferredTime(day_of_week=p.day_of_week, start_time=p.start_time, workout_type=p.workout_type)
            for p in doc.preferred_times
        ],
        preferred_equipment=list(doc.preferred_equipment),
        recent_teams=list(doc.recent_teams),
        recent_workout_types=list(doc.recent_workout_types),
        auto_select_team=doc.auto_select_team,
        auto_select_players=doc.auto_select_players,
        workout_counts=dict(doc.workout_counts),
    )
