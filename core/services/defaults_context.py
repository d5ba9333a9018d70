"""Context assembly for smart-default inference.

A `DefaultsContext` is an immutable snapshot of every signal available to one
resolution cycle: calendar state, historical frequency records, the user's
preference profile, facility availability and roster data. Any of these may
be missing; collaborator records that cannot be parsed are dropped so that a
single bad row never fails a cycle.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

from core.services.preference_profile import PreferenceProfile, profile_from_document
from core.services.workout_catalog import coerce_workout_type, WorkoutType

logger = logging.getLogger(__name__)

_UNPADDED_TIME = re.compile(r"^\d:[0-5]\d$")


class Clock(Protocol):
    def now(self) -> dt.datetime: ...


class SystemClock:
    def now(self) -> dt.datetime:
        return dt.datetime.now()


@dataclass(frozen=True)
class FixedClock:
    instant: dt.datetime

    def now(self) -> dt.datetime:
        return self.instant


@dataclass(frozen=True)
class TimeSlot:
    start: str  # "HH:MM"
    end: str = ""
    duration: int = 0  # minutes


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    kind: str  # game | practice | training | meeting | medical
    start: dt.datetime
    end: Optional[dt.datetime] = None
    title: str = ""
    team_id: Optional[str] = None


@dataclass(frozen=True)
class CalendarContext:
    selected_date: Optional[dt.date] = None
    selected_time_slot: Optional[TimeSlot] = None
    existing_events: tuple[CalendarEvent, ...] = ()
    viewing_team_id: Optional[str] = None


@dataclass(frozen=True)
class HistoricalRecord:
    workout_type: WorkoutType
    day_of_week: int  # 0 = Sunday
    frequency: float
    time_of_day: str = ""
    duration: int = 0
    equipment: tuple[str, ...] = ()
    team_id: Optional[str] = None


@dataclass(frozen=True)
class FacilityTimeSlot:
    start: str
    end: str
    available: bool = True


@dataclass(frozen=True)
class FacilityAvailability:
    facility_id: str
    date: str  # "YYYY-MM-DD"
    equipment: tuple[str, ...] = ()
    time_slots: tuple[FacilityTimeSlot, ...] = ()
    facility_name: str = ""


@dataclass(frozen=True)
class Team:
    id: str
    name: str = ""
    player_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Player:
    id: str
    name: str = ""
    unavailable: bool = False


@dataclass(frozen=True)
class DefaultsContext:
    now: dt.datetime
    workout_type: Optional[WorkoutType] = None
    current_team_id: Optional[str] = None
    teams: tuple[Team, ...] = ()
    players: tuple[Player, ...] = ()
    calendar: Optional[CalendarContext] = None
    history: tuple[HistoricalRecord, ...] = ()
    facilities: tuple[FacilityAvailability, ...] = ()
    profile: Optional[PreferenceProfile] = None

    @property
    def today(self) -> dt.date:
        return self.now.date()

    def team(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    def player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)


def _get(obj: Any, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if isinstance(obj, dict):
            if key in obj:
                return obj[key]
        elif hasattr(obj, key):
            return getattr(obj, key)
    return default


def _hhmm(value: Any) -> str:
    """Zero-pad "9:00" to "09:00" so slot times compare correctly as strings."""
    text = str(value).strip()
    return f"0{text}" if _UNPADDED_TIME.match(text) else text


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value else None


def _coerce_date(value: Any) -> Optional[dt.date]:
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value)[:10])


def _coerce_datetime(value: Any) -> Optional[dt.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time())
    return dt.datetime.fromisoformat(str(value))


_RECORD_ERRORS = (TypeError, ValueError, KeyError, AttributeError, OverflowError)


def _collect(raw: Any, parse, label: str) -> tuple:
    if not raw:
        return ()
    if isinstance(raw, (str, bytes, dict)) or not isinstance(raw, Iterable):
        logger.debug("ignoring %s signal that is not a list: %r", label, type(raw).__name__)
        return ()
    out = []
    for item in raw:
        try:
            out.append(parse(item))
        except _RECORD_ERRORS as exc:
            logger.debug("dropping malformed %s record: %s", label, exc)
    return tuple(out)


def _parse_time_slot(raw: Any) -> Optional[TimeSlot]:
    if raw is None:
        return None
    if isinstance(raw, TimeSlot):
        return raw
    start = _get(raw, "start")
    if not start:
        return None
    return TimeSlot(start=_hhmm(start), end=_hhmm(_get(raw, "end", default="") or ""), duration=int(_get(raw, "duration", default=0) or 0))


def _parse_event(raw: Any) -> CalendarEvent:
    if isinstance(raw, CalendarEvent):
        return raw
    start = _coerce_datetime(_get(raw, "start"))
    if start is None:
        raise ValueError("event has no start")
    return CalendarEvent(
        id=str(_get(raw, "id", default="")),
        kind=str(_get(raw, "kind", "type", default="")),
        start=start,
        end=_coerce_datetime(_get(raw, "end")),
        title=str(_get(raw, "title", default="") or ""),
        team_id=_get(raw, "team_id"),
    )


def _parse_calendar(raw: Any) -> Optional[CalendarContext]:
    if raw is None:
        return None
    if isinstance(raw, CalendarContext):
        return raw
    try:
        selected_date = _coerce_date(_get(raw, "selected_date"))
    except _RECORD_ERRORS:
        selected_date = None
    try:
        slot = _parse_time_slot(_get(raw, "selected_time_slot"))
    except _RECORD_ERRORS:
        slot = None
    return CalendarContext(
        selected_date=selected_date,
        selected_time_slot=slot,
        existing_events=_collect(_get(raw, "existing_events"), _parse_event, "calendar event"),
        viewing_team_id=_optional_str(_get(raw, "viewing_team_id")),
    )


def _parse_history(raw: Any) -> HistoricalRecord:
    if isinstance(raw, HistoricalRecord):
        return raw
    workout_type = coerce_workout_type(_get(raw, "workout_type", "type"))
    if workout_type is None:
        raise ValueError("unknown workout type")
    day = int(_get(raw, "day_of_week"))
    if not 0 <= day <= 6:
        raise ValueError("day_of_week out of range")
    frequency = float(_get(raw, "frequency", default=0) or 0)
    if not math.isfinite(frequency) or frequency < 0:
        raise ValueError("frequency must be a finite, non-negative number")
    return HistoricalRecord(
        workout_type=workout_type,
        day_of_week=day,
        frequency=frequency,
        time_of_day=str(_get(raw, "time_of_day", default="") or ""),
        duration=int(_get(raw, "duration", default=0) or 0),
        equipment=tuple(_get(raw, "equipment", default=()) or ()),
        team_id=_get(raw, "team_id"),
    )


def _parse_facility_slot(raw: Any) -> FacilityTimeSlot:
    if isinstance(raw, FacilityTimeSlot):
        return raw
    return FacilityTimeSlot(start=_hhmm(_get(raw, "start")), end=_hhmm(_get(raw, "end")), available=bool(_get(raw, "available", default=False)))


def _parse_facility(raw: Any) -> FacilityAvailability:
    if isinstance(raw, FacilityAvailability):
        return raw
    day = _coerce_date(_get(raw, "date"))
    if day is None:
        raise ValueError("facility availability has no date")
    return FacilityAvailability(
        facility_id=str(_get(raw, "facility_id", default="")),
        facility_name=str(_get(raw, "facility_name", default="") or ""),
        date=day.isoformat(),
        equipment=tuple(str(e) for e in (_get(raw, "equipment", default=()) or ())),
        time_slots=_collect(_get(raw, "time_slots"), _parse_facility_slot, "facility slot"),
    )


def _parse_team(raw: Any) -> Team:
    if isinstance(raw, Team):
        return raw
    return Team(
        id=str(_get(raw, "id")),
        name=str(_get(raw, "name", default="") or ""),
        player_ids=tuple(str(p) for p in (_get(raw, "player_ids", "players", default=()) or ())),
    )


def _parse_player(raw: Any) -> Player:
    if isinstance(raw, Player):
        return raw
    unavailable = bool(_get(raw, "unavailable", default=False)) or bool(_get(raw, "injury_status", default=None))
    return Player(id=str(_get(raw, "id")), name=str(_get(raw, "name", default="") or ""), unavailable=unavailable)


def _parse_profile(raw: Any) -> Optional[PreferenceProfile]:
    if raw is None:
        return None
    if isinstance(raw, PreferenceProfile):
        return raw.snapshot()
    try:
        return profile_from_document(raw)
    except ValueError as exc:
        logger.warning("ignoring malformed preference profile in context: %s", exc)
        return None


def assemble_context(
    clock: Clock,
    *,
    workout_type: Any = None,
    current_team_id: Optional[str] = None,
    teams: Optional[Iterable[Any]] = None,
    players: Optional[Iterable[Any]] = None,
    calendar: Any = None,
    history: Optional[Iterable[Any]] = None,
    facilities: Optional[Iterable[Any]] = None,
    profile: Any = None,
) -> DefaultsContext:
    """Build one immutable context snapshot. No input is required."""
    return DefaultsContext(
        now=clock.now(),
        workout_type=coerce_workout_type(workout_type) if workout_type else None,
        current_team_id=_optional_str(current_team_id),
        teams=_collect(teams, _parse_team, "team"),
        players=_collect(players, _parse_player, "player"),
        calendar=_parse_calendar(calendar),
        history=_collect(history, _parse_history, "history"),
        facilities=_collect(facilities, _parse_facility, "facility"),
        profile=_parse_profile(profile),
    )
