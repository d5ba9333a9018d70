from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from core.services.workout_catalog import WorkoutType

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeSlotIn(BaseModel):
    start: str = Field(pattern=HHMM)
    end: str = ""
    duration: int = Field(default=0, ge=0)


class CalendarEventIn(BaseModel):
    id: str
    kind: Literal["game", "practice", "training", "meeting", "medical"]
    start: dt_datetime
    end: Optional[dt_datetime] = None
    title: str = ""
    team_id: Optional[str] = None


class CalendarContextIn(BaseModel):
    selected_date: Optional[dt_date] = None
    selected_time_slot: Optional[TimeSlotIn] = None
    existing_events: list[CalendarEventIn] = Field(default_factory=list)
    viewing_team_id: Optional[str] = None


class HistoricalRecordIn(BaseModel):
    workout_type: WorkoutType
    day_of_week: int = Field(ge=0, le=6)
    frequency: float = Field(ge=0)
    time_of_day: str = ""
    duration: int = Field(default=0, ge=0)
    equipment: list[str] = Field(default_factory=list)
    team_id: Optional[str] = None


class FacilityTimeSlotIn(BaseModel):
    start: str = Field(pattern=HHMM)
    end: str = Field(pattern=HHMM)
    available: bool = True


class FacilityAvailabilityIn(BaseModel):
    facility_id: str
    facility_name: str = ""
    date: dt_date
    equipment: list[str] = Field(default_factory=list)
    time_slots: list[FacilityTimeSlotIn] = Field(default_factory=list)


class TeamIn(BaseModel):
    id: str
    name: str = ""
    player_ids: list[str] = Field(default_factory=list)


class PlayerIn(BaseModel):
    id: str
    name: str = ""
    unavailable: bool = False


class SmartDefaultsRequest(BaseModel):
    user_id: Optional[str] = None
    workout_type: Optional[WorkoutType] = None
    current_team_id: Optional[str] = None
    teams: list[TeamIn] = Field(default_factory=list)
    players: list[PlayerIn] = Field(default_factory=list)
    calendar: Optional[CalendarContextIn] = None
    history: list[HistoricalRecordIn] = Field(default_factory=list)
    facilities: list[FacilityAvailabilityIn] = Field(default_factory=list)


class ReasoningOut(BaseModel):
    field: str
    reason: str
    confidence: int = Field(ge=0, le=100)
    source: Literal["calendar", "history", "preferences", "pattern", "availability"]


class SmartDefaultsOut(BaseModel):
    name: str
    type: WorkoutType
    date: str
    time: str
    duration: int
    assigned_team_ids: list[str]
    assigned_player_ids: list[str]
    intensity: str
    equipment: list[str]
    tags: list[str]
    confidence: int = Field(ge=0, le=100)
    reasoning: list[ReasoningOut]
    top_reasons: list[ReasoningOut] = Field(default_factory=list)


class ApplyDefaultsRequest(BaseModel):
    context: SmartDefaultsRequest = Field(default_factory=SmartDefaultsRequest)
    form: dict[str, Any] = Field(default_factory=dict)


class ImportResult(BaseModel):
    imported: bool


class PreferenceStatsOut(BaseModel):
    total_workouts: int
    average_duration: int
    favorite_workout_type: Optional[WorkoutType] = None
    preferred_intensity: str
