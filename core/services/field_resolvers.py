"""Per-field resolvers for session smart defaults.

Every resolver has the same shape: ``(context, resolved) -> ResolvedField``,
where ``resolved`` holds the values of fields resolved earlier in the
pipeline. Resolvers are pure: they read the context snapshot and never
raise on missing signals, falling back to the static tables in
``workout_catalog`` instead.

Precedence, highest first:

- type:       explicit type > weekday history > static default
- time/date:  calendar slot > preferred time > clock
- duration:   calendar slot > profile default > baseline table
- intensity:  profile default > game next day > weekday table
- equipment:  preferred subset > facility subset > baseline table
- assignment: current team > calendar team > most recent team
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Optional

from core.services.defaults_context import DefaultsContext
from core.services.workout_catalog import (
    BASELINE_DURATION,
    BASELINE_EQUIPMENT,
    DEFAULT_WORKOUT_TYPE,
    TEAM_SENTINELS,
    WEEKDAY_INTENSITY,
    WorkoutType,
    is_intensity,
    weekday_index,
    weekday_name,
)


@dataclass(frozen=True)
class DefaultReasoning:
    field: str
    reason: str
    confidence: int
    source: str  # calendar | history | preferences | pattern | availability


@dataclass(frozen=True)
class ResolvedField:
    value: Any
    confidence: Optional[int] = None
    reasoning: tuple[DefaultReasoning, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Assignment:
    team_ids: tuple[str, ...] = ()
    player_ids: tuple[str, ...] = ()


def resolve_type(ctx: DefaultsContext, resolved: dict[str, Any]) -> ResolvedField:
    if ctx.workout_type is not None:
        return ResolvedField(ctx.workout_type, 100)

    today_index = weekday_index(ctx.today)
    totals: dict[WorkoutType, float] = {}
    for record in ctx.history:
        if record.day_of_week == today_index:
            totals[record.workout_type] = totals.get(record.workout_type, 0) + record.frequency

    if not totals:
        return ResolvedField(DEFAULT_WORKOUT_TYPE, 50)

    # max() keeps the first of equal totals, i.e. the earliest record
    winner = max(totals, key=lambda t: totals[t])
    confidence = int(max(0, min(80, 50 + 5 * totals[winner])))
    reason = DefaultReasoning("type", f"Most common workout type on {weekday_name(ctx.today)}s", confidence, "history")
    return ResolvedField(winner, confidence, (reason,))


def resolve_time(ctx: DefaultsContext, resolved: dict[str, Any]) -> ResolvedField:
    """Resolve ``(time, date)``; date is an ISO ``YYYY-MM-DD`` string."""
    calendar = ctx.calendar
    if calendar is not None and calendar.selected_time_slot is not None:
        day = calendar.selected_date or ctx.today
        reason = DefaultReasoning("time", "Using selected calendar time slot", 95, "calendar")
        return ResolvedField((calendar.selected_time_slot.start, day.isoformat()), 95, (reason,))

    workout_type = resolved.get("type")
    if ctx.profile is not None:
        today_index = weekday_index(ctx.today)
        preferred = next(
            (
                p
                for p in ctx.profile.preferred_times
                if p.day_of_week == today_index and (p.workout_type is None or p.workout_type == workout_type)
            ),
            None,
        )
        if preferred is not None:
            reason = DefaultReasoning("time", f"Your preferred {weekday_name(ctx.today)} workout time", 75, "preferences")
            return ResolvedField((preferred.start_time, ctx.today.isoformat()), 75, (reason,))

    return ResolvedField((ctx.now.strftime("%H:%M"), ctx.today.isoformat()), 30)


def resolve_duration(ctx: DefaultsContext, resolved: dict[str, Any]) -> ResolvedField:
    # A calendar slot is a hard constraint and outranks a learned default.
    calendar = ctx.calendar
    if calendar is not None and calendar.selected_time_slot is not None and calendar.selected_time_slot.duration > 0:
        reason = DefaultReasoning("duration", "Fits selected calendar slot", 90, "calendar")
        return ResolvedField(calendar.selected_time_slot.duration, 90, (reason,))

    workout_type = resolved.get("type", DEFAULT_WORKOUT_TYPE)
    if ctx.profile is not None:
        minutes = ctx.profile.default_duration.get(workout_type)
        if minutes and minutes > 0:
            reason = DefaultReasoning("duration", f"Your default {workout_type.value} workout duration", 85, "preferences")
            return ResolvedField(int(minutes), 85, (reason,))

    return ResolvedField(BASELINE_DURATION[workout_type], 60)


def resolve_intensity(ctx: DefaultsContext, resolved: dict[str, Any]) -> ResolvedField:
    workout_type = resolved.get("type", DEFAULT_WORKOUT_TYPE)
    day = dt.date.fromisoformat(resolved["date"]) if resolved.get("date") else ctx.today

    result = ResolvedField(WEEKDAY_INTENSITY[weekday_index(day)], 60)

    if ctx.calendar is not None:
        tomorrow = day + dt.timedelta(days=1)
        if any(e.kind == "game" and e.start.date() == tomorrow for e in ctx.calendar.existing_events):
            reason = DefaultReasoning("intensity", "Game tomorrow - recovery focus", 85, "calendar")
            result = ResolvedField("low", 85, (reason,))

    # Learned default is applied last and replaces the game-day override.
    if ctx.profile is not None:
        learned = ctx.profile.default_intensity.get(workout_type)
        if is_intensity(learned):
            reason = DefaultReasoning("intensity", f"Your default {workout_type.value} intensity", 80, "preferences")
            result = ResolvedField(learned, 80, (reason,))

    return result


def _facility_equipment(ctx: DefaultsContext, day: str, time: str):
    for facility in ctx.facilities:
        if facility.date != day:
            continue
        for slot in facility.time_slots:
            if slot.available and slot.start <= time < slot.end:
                return facility
    return None


def resolve_equipment(ctx: DefaultsContext, resolved: dict[str, Any]) -> ResolvedField:
    workout_type = resolved.get("type", DEFAULT_WORKOUT_TYPE)
    equipment = list(BASELINE_EQUIPMENT[workout_type])
    result = ResolvedField(tuple(equipment))

    day, time = resolved.get("date"), resolved.get("time")
    if day and time:
        facility = _facility_equipment(ctx, day, time)
        if facility is not None:
            available = [e for e in equipment if e in facility.equipment]
            if available:
                equipment = available
                label = facility.facility_name or facility.facility_id
                reason = DefaultReasoning("equipment", f"Available at {label}", 80, "availability")
                result = ResolvedField(tuple(equipment), 80, (reason,))

    if ctx.profile is not None and ctx.profile.preferred_equipment:
        preferred = [e for e in equipment if e in ctx.profile.preferred_equipment]
        if preferred:
            reason = DefaultReasoning("equipment", "Your preferred equipment", 85, "preferences")
            result = ResolvedField(tuple(preferred), 85, (reason,))

    return result


def _resolve_team(ctx: DefaultsContext) -> tuple[Optional[str], Optional[DefaultReasoning]]:
    if ctx.current_team_id and ctx.current_team_id not in TEAM_SENTINELS:
        return ctx.current_team_id, DefaultReasoning("assigned_team_ids", "Currently viewing this team", 90, "pattern")
    if ctx.calendar is not None and ctx.calendar.viewing_team_id:
        return ctx.calendar.viewing_team_id, DefaultReasoning("assigned_team_ids", "Team context from calendar view", 85, "calendar")
    if ctx.profile is not None and ctx.profile.recent_teams:
        return ctx.profile.recent_teams[0], DefaultReasoning("assigned_team_ids", "Most recently used team", 70, "history")
    return None, None


def resolve_assignment(ctx: DefaultsContext, resolved: dict[str, Any], max_players: int = 15) -> ResolvedField:
    profile = ctx.profile
    if profile is not None and not profile.auto_select_team:
        return ResolvedField(Assignment())

    team_id, team_reason = _resolve_team(ctx)
    if team_id is None:
        return ResolvedField(Assignment())

    reasons = [team_reason]
    player_ids: list[str] = []
    team = ctx.team(team_id)
    if team is not None and (profile is None or profile.auto_select_players):
        for pid in team.player_ids:
            player = ctx.player(pid)
            if player is not None and not player.unavailable:
                player_ids.append(pid)
        player_ids = player_ids[:max_players]
        if player_ids:
            label = team.name or team.id
            reasons.append(
                DefaultReasoning("assigned_player_ids", f"{len(player_ids)} available players from {label}", 75, "pattern")
            )

    return ResolvedField(Assignment((team_id,), tuple(player_ids)), team_reason.confidence, tuple(reasons))
