"""Preference learning from confirmed session saves.

Each save updates the user's profile in a fixed order:

1. recent workout types / teams (most-recent-first, de-duplicated, capped)
2. per-type default duration via EMA: ``new = round(old * 0.7 + observed * 0.3)``
3. per-type default intensity, promoted only after 3 mismatching saves
4. preferred time for (day of week, type), upserted
5. preferred equipment, union in insertion order, keeping the newest 10

A failing step is logged and skipped; it never fails the save itself.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional

from core.services.preference_profile import PreferenceProfile, PreferredTime
from core.services.preference_store import PreferenceManager
from core.services.workout_catalog import BASELINE_DURATION, DEFAULT_PROFILE_INTENSITY
from core.validators import SessionSaveInput

logger = logging.getLogger(__name__)

RECENT_CAP = 5
EQUIPMENT_CAP = 10


def push_recent(items: list, value, cap: int = RECENT_CAP) -> list:
    """Move ``value`` to the front, drop duplicates, keep at most ``cap`` items."""
    return ([value] + [v for v in items if v != value])[:cap]


def ema_duration(old: int, observed: int, weight: float = 0.3) -> int:
    # decimal keeps .5 cases exact, 45 * 0.7 is 31.499... as a float
    w = Decimal(str(weight))
    value = Decimal(old) * (1 - w) + Decimal(observed) * w
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def merge_equipment(existing: list[str], observed: list[str], cap: int = EQUIPMENT_CAP) -> list[str]:
    merged = list(existing)
    for item in observed:
        if item not in merged:
            merged.append(item)
    # oldest entries fall off the front
    return merged[-cap:]


def _learn_recents(profile: PreferenceProfile, save: SessionSaveInput) -> None:
    profile.recent_workout_types = push_recent(profile.recent_workout_types, save.type)
    if save.team_id:
        profile.recent_teams = push_recent(profile.recent_teams, save.team_id)
    profile.workout_counts[save.type] = profile.workout_counts.get(save.type, 0) + 1


def _learn_duration(profile: PreferenceProfile, save: SessionSaveInput, weight: float) -> None:
    if not save.duration:
        return
    old = profile.default_duration.get(save.type) or BASELINE_DURATION[save.type]
    profile.default_duration[save.type] = ema_duration(old, save.duration, weight)


def _learn_intensity(
    profile: PreferenceProfile,
    save: SessionSaveInput,
    manager: PreferenceManager,
    user_id: str,
    threshold: int,
) -> None:
    if not save.intensity:
        return
    current = profile.default_intensity.get(save.type, DEFAULT_PROFILE_INTENSITY[save.type])
    key = (user_id, save.type.value, save.intensity)
    if save.intensity == current:
        return
    count = manager.counters.get(*key) + 1
    if count >= threshold:
        profile.default_intensity[save.type] = save.intensity
        manager.counters.set(*key, 0)
        logger.info(
            "default intensity promoted",
            extra={"ctx_user_id": user_id, "ctx_type": save.type.value, "ctx_intensity": save.intensity},
        )
    else:
        manager.counters.set(*key, count)


def _learn_time(profile: PreferenceProfile, save: SessionSaveInput) -> None:
    if not save.time or save.day_of_week is None:
        return
    for entry in profile.preferred_times:
        if entry.day_of_week == save.day_of_week and entry.workout_type == save.type:
            entry.start_time = save.time
            return
    profile.preferred_times.append(PreferredTime(save.day_of_week, save.time, save.type))


def _learn_equipment(profile: PreferenceProfile, save: SessionSaveInput) -> None:
    if save.equipment:
        profile.preferred_equipment = merge_equipment(profile.preferred_equipment, save.equipment)


def _run_step(name: str, user_id: str, step: Callable[[], None]) -> None:
    try:
        step()
    except Exception:
        logger.exception("preference learning step failed", extra={"ctx_step": name, "ctx_user_id": user_id})


def learn_from_save(
    manager: PreferenceManager,
    user_id: str,
    observed: SessionSaveInput | dict[str, Any],
    *,
    ema_weight: float = 0.3,
    promotion_threshold: int = 3,
) -> Optional[PreferenceProfile]:
    """Fold one confirmed save into the user's profile and persist it.

    Returns the updated profile, or None when the observation could not be parsed.
    """
    try:
        save = observed if isinstance(observed, SessionSaveInput) else SessionSaveInput.model_validate(observed)
    except ValueError as exc:
        logger.warning("ignoring unparseable session save", extra={"ctx_user_id": user_id, "ctx_error": str(exc)})
        return None

    profile = manager.get_or_create_preferences(user_id)

    _run_step("recents", user_id, lambda: _learn_recents(profile, save))
    _run_step("duration", user_id, lambda: _learn_duration(profile, save, ema_weight))
    _run_step("intensity", user_id, lambda: _learn_intensity(profile, save, manager, user_id, promotion_threshold))
    _run_step("preferred_time", user_id, lambda: _learn_time(profile, save))
    _run_step("equipment", user_id, lambda: _learn_equipment(profile, save))

    manager.save_preferences(user_id, profile)
    return profile
