"""Smart defaults pipeline: resolve every field, aggregate, name the session.

The pipeline is total. Whatever the context holds (including nothing at all)
it returns a fully populated `SmartDefaults` with an overall confidence in
[0, 100] and the reasoning entries of every heuristic that fired.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Optional

from core.services.defaults_context import DefaultsContext
from core.services.field_resolvers import (
    Assignment,
    DefaultReasoning,
    ResolvedField,
    resolve_assignment,
    resolve_duration,
    resolve_equipment,
    resolve_intensity,
    resolve_time,
    resolve_type,
)
from core.services.workout_catalog import TYPE_DISPLAY_NAMES, WorkoutType, weekday_name

logger = logging.getLogger(__name__)

NO_SIGNAL_CONFIDENCE = 50


@dataclass(frozen=True)
class SmartDefaults:
    name: str
    type: WorkoutType
    date: str
    time: str
    duration: int
    assigned_team_ids: tuple[str, ...]
    assigned_player_ids: tuple[str, ...]
    intensity: str
    equipment: tuple[str, ...]
    tags: tuple[str, ...]
    confidence: int
    reasoning: tuple[DefaultReasoning, ...]

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["type"] = self.type.value
        for key in ("assigned_team_ids", "assigned_player_ids", "equipment", "tags"):
            out[key] = list(out[key])
        out["reasoning"] = [asdict(r) for r in self.reasoning]
        return out


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def overall_confidence(reasoning: list[DefaultReasoning]) -> int:
    """Mean of produced confidences, or 50 when no heuristic fired."""
    if not reasoning:
        return NO_SIGNAL_CONFIDENCE
    mean = sum(r.confidence for r in reasoning) / len(reasoning)
    return max(0, min(100, _round_half_up(mean)))


def synthesize_name(team_name: Optional[str], workout_type: WorkoutType, date: str) -> str:
    day = dt.date.fromisoformat(date)
    return f"{team_name or 'Team'} {TYPE_DISPLAY_NAMES[workout_type]} - {day:%b} {day.day}"


def aggregate(ctx: DefaultsContext, fields: dict[str, ResolvedField]) -> SmartDefaults:
    reasoning: list[DefaultReasoning] = []
    for resolved in fields.values():
        reasoning.extend(resolved.reasoning)

    workout_type: WorkoutType = fields["type"].value
    time, date = fields["time"].value
    intensity: str = fields["intensity"].value
    assignment: Assignment = fields["assignment"].value

    team = ctx.team(assignment.team_ids[0]) if assignment.team_ids else None
    day = dt.date.fromisoformat(date)

    return SmartDefaults(
        name=synthesize_name(team.name if team else None, workout_type, date),
        type=workout_type,
        date=date,
        time=time,
        duration=fields["duration"].value,
        assigned_team_ids=assignment.team_ids,
        assigned_player_ids=assignment.player_ids,
        intensity=intensity,
        equipment=fields["equipment"].value,
        tags=(workout_type.value, intensity, weekday_name(day).lower()),
        confidence=overall_confidence(reasoning),
        reasoning=tuple(reasoning),
    )


def resolve_fields(ctx: DefaultsContext, max_players: int = 15) -> dict[str, ResolvedField]:
    """Run the resolvers in dependency order, feeding each the values resolved so far."""
    fields: dict[str, ResolvedField] = {}
    resolved: dict[str, Any] = {}

    fields["type"] = resolve_type(ctx, resolved)
    resolved["type"] = fields["type"].value

    fields["time"] = resolve_time(ctx, resolved)
    resolved["time"], resolved["date"] = fields["time"].value

    fields["duration"] = resolve_duration(ctx, resolved)
    resolved["duration"] = fields["duration"].value

    fields["intensity"] = resolve_intensity(ctx, resolved)
    resolved["intensity"] = fields["intensity"].value

    fields["equipment"] = resolve_equipment(ctx, resolved)
    resolved["equipment"] = fields["equipment"].value

    fields["assignment"] = resolve_assignment(ctx, resolved, max_players=max_players)
    return fields


def compute_smart_defaults(ctx: DefaultsContext, max_players: int = 15) -> SmartDefaults:
    defaults = aggregate(ctx, resolve_fields(ctx, max_players=max_players))
    logger.debug(
        "smart defaults computed",
        extra={"ctx_type": defaults.type.value, "ctx_confidence": defaults.confidence, "ctx_reasons": len(defaults.reasoning)},
    )
    return defaults


_LIST_FIELDS = ("assigned_team_ids", "assigned_player_ids", "equipment", "tags")
_SCALAR_FIELDS = ("name", "type", "date", "time", "duration", "intensity")


def apply_defaults(form_data: dict[str, Any], defaults: Optional[SmartDefaults]) -> dict[str, Any]:
    """Merge explicit form input over inferred defaults, field by field.

    Explicit non-empty values win. Empty or falsy values count as "not set" and
    are backfilled. Keys the defaults know nothing about pass through untouched.
    """
    merged = dict(form_data)
    if defaults is None:
        return merged
    inferred = defaults.to_dict()
    for key in _SCALAR_FIELDS:
        if not merged.get(key):
            merged[key] = inferred[key]
    for key in _LIST_FIELDS:
        if not merged.get(key):
            merged[key] = inferred[key]
    return merged


def top_reasons(defaults: SmartDefaults, limit: int = 3) -> list[DefaultReasoning]:
    """Highest-confidence reasoning entries, stable for ties."""
    return sorted(defaults.reasoning, key=lambda r: r.confidence, reverse=True)[:limit]
