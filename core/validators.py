"""Pydantic validation models for persisted preference documents and session saves."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.services.workout_catalog import WorkoutType

IntensityLiteral = Literal["low", "medium", "high", "max"]

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class PreferredTimeDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day_of_week: int = Field(ge=0, le=6)
    start_time: str = Field(pattern=_TIME_PATTERN)
    workout_type: Optional[WorkoutType] = None


class PreferenceDocument(BaseModel):
    """Full structure of a stored/exported preference profile.

    Validation is all-or-nothing: a document either parses completely or is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(min_length=1, max_length=200)
    default_duration: dict[WorkoutType, int] = Field(default_factory=dict)
    default_intensity: dict[WorkoutType, IntensityLiteral] = Field(default_factory=dict)
    preferred_times: list[PreferredTimeDocument] = Field(default_factory=list)
    preferred_equipment: list[str] = Field(default_factory=list, max_length=10)
    recent_teams: list[str] = Field(default_factory=list, max_length=5)
    recent_workout_types: list[WorkoutType] = Field(default_factory=list, max_length=5)
    auto_select_team: bool = True
    auto_select_players: bool = True
    workout_counts: dict[WorkoutType, int] = Field(default_factory=dict)

    @field_validator("default_duration")
    @classmethod
    def positive_durations(cls, v):
        for workout_type, minutes in v.items():
            if minutes <= 0:
                raise ValueError(f"default_duration[{workout_type.value}] must be positive")
        return v

    @field_validator("workout_counts")
    @classmethod
    def non_negative_counts(cls, v):
        if any(count < 0 for count in v.values()):
            raise ValueError("workout_counts must be non-negative")
        return v

    @field_validator("recent_teams", "recent_workout_types", "preferred_equipment")
    @classmethod
    def no_duplicates(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("list entries must be unique")
        return v


class SessionSaveInput(BaseModel):
    """Final values of a confirmed session, as observed by the learner."""

    type: WorkoutType
    duration: Optional[int] = Field(default=None, gt=0, le=600)
    intensity: Optional[IntensityLiteral] = None
    team_id: Optional[str] = None
    time: Optional[str] = Field(default=None, pattern=_TIME_PATTERN)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    equipment: list[str] = Field(default_factory=list)

    @field_validator("equipment")
    @classmethod
    def strip_blank_equipment(cls, v):
        return [item.strip() for item in v if item and item.strip()]
