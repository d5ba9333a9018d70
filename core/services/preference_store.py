"""Preference persistence: stores, counters and the preference manager.

Profiles are stored as versionless JSON documents keyed by user id. The
manager is the only place that parses them; a document that fails
validation is reported as "no profile" and never raised to the caller.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from collections import Counter
from dataclasses import dataclass
from statistics import mean
from typing import Any, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from core.db import session_scope
from core.models import IntensityMismatchCounter, SmartDefaultProfile
from core.services.preference_profile import (
    PreferenceProfile,
    create_default_profile,
    profile_from_document,
    profile_to_document,
)
from core.services.workout_catalog import WorkoutType

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    def get(self, user_id: str) -> Optional[dict[str, Any]]: ...

    def set(self, user_id: str, document: dict[str, Any]) -> None: ...

    def delete(self, user_id: str) -> None: ...


class IntensityCounterStore(Protocol):
    def get(self, user_id: str, workout_type: str, intensity: str) -> int: ...

    def set(self, user_id: str, workout_type: str, intensity: str, count: int) -> None: ...

    def clear_user(self, user_id: str) -> None: ...


class InMemoryPreferenceStore:
    def __init__(self) -> None:
        self._documents: dict[str, Any] = {}

    def get(self, user_id: str) -> Optional[dict[str, Any]]:
        doc = self._documents.get(user_id)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, user_id: str, document: dict[str, Any]) -> None:
        self._documents[user_id] = copy.deepcopy(document)

    def delete(self, user_id: str) -> None:
        self._documents.pop(user_id, None)


class InMemoryIntensityCounterStore:
    def __init__(self) -> None:
        self._counts: dict[tuple[str, str, str], int] = {}

    def get(self, user_id: str, workout_type: str, intensity: str) -> int:
        return self._counts.get((user_id, workout_type, intensity), 0)

    def set(self, user_id: str, workout_type: str, intensity: str, count: int) -> None:
        self._counts[(user_id, workout_type, intensity)] = count

    def clear_user(self, user_id: str) -> None:
        for key in [k for k in self._counts if k[0] == user_id]:
            del self._counts[key]


class SqlPreferenceStore:
    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._factory = session_factory

    def get(self, user_id: str) -> Optional[dict[str, Any]]:
        with session_scope(self._factory) as s:
            row = s.execute(select(SmartDefaultProfile).where(SmartDefaultProfile.user_id == user_id)).scalar_one_or_none()
            return copy.deepcopy(row.document) if row is not None else None

    def set(self, user_id: str, document: dict[str, Any]) -> None:
        with session_scope(self._factory) as s:
            row = s.execute(select(SmartDefaultProfile).where(SmartDefaultProfile.user_id == user_id)).scalar_one_or_none()
            if row is None:
                s.add(SmartDefaultProfile(user_id=user_id, document=copy.deepcopy(document)))
            else:
                row.document = copy.deepcopy(document)

    def delete(self, user_id: str) -> None:
        with session_scope(self._factory) as s:
            s.execute(delete(SmartDefaultProfile).where(SmartDefaultProfile.user_id == user_id))


class SqlIntensityCounterStore:
    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._factory = session_factory

    def _row(self, s, user_id: str, workout_type: str, intensity: str) -> Optional[IntensityMismatchCounter]:
        return s.execute(
            select(IntensityMismatchCounter).where(
                IntensityMismatchCounter.user_id == user_id,
                IntensityMismatchCounter.workout_type == workout_type,
                IntensityMismatchCounter.intensity == intensity,
            )
        ).scalar_one_or_none()

    def get(self, user_id: str, workout_type: str, intensity: str) -> int:
        with session_scope(self._factory) as s:
            row = self._row(s, user_id, workout_type, intensity)
            return row.count if row is not None else 0

    def set(self, user_id: str, workout_type: str, intensity: str, count: int) -> None:
        with session_scope(self._factory) as s:
            row = self._row(s, user_id, workout_type, intensity)
            if row is None:
                s.add(IntensityMismatchCounter(user_id=user_id, workout_type=workout_type, intensity=intensity, count=count))
            else:
                row.count = count

    def clear_user(self, user_id: str) -> None:
        with session_scope(self._factory) as s:
            s.execute(delete(IntensityMismatchCounter).where(IntensityMismatchCounter.user_id == user_id))


@dataclass
class PreferenceStats:
    total_workouts: int
    average_duration: int
    favorite_workout_type: Optional[WorkoutType]
    preferred_intensity: str


class PreferenceManager:
    """Reads and writes preference profiles through an opaque key-value store."""

    def __init__(self, store: PreferenceStore, counters: IntensityCounterStore) -> None:
        self.store = store
        self.counters = counters

    def get_preferences(self, user_id: str) -> Optional[PreferenceProfile]:
        raw = self.store.get(user_id)
        if raw is None:
            return None
        try:
            return profile_from_document(raw)
        except ValueError as exc:
            logger.warning("stored preference profile is malformed, treating as absent", extra={"ctx_user_id": user_id, "ctx_error": str(exc)})
            return None

    def get_or_create_preferences(self, user_id: str) -> PreferenceProfile:
        profile = self.get_preferences(user_id)
        if profile is None:
            profile = create_default_profile(user_id)
            self.save_preferences(user_id, profile)
        return profile

    def save_preferences(self, user_id: str, profile: PreferenceProfile) -> None:
        document = profile_to_document(profile)
        document["user_id"] = user_id
        self.store.set(user_id, document)
        logger.info("preference profile saved", extra={"ctx_user_id": user_id})

    def reset_preferences(self, user_id: str) -> None:
        self.store.delete(user_id)
        self.counters.clear_user(user_id)
        logger.info("preference profile reset", extra={"ctx_user_id": user_id})

    def export_preferences(self, user_id: str) -> Optional[str]:
        profile = self.get_preferences(user_id)
        if profile is None:
            return None
        return json.dumps(profile_to_document(profile), indent=2, sort_keys=True)

    def import_preferences(self, user_id: str, payload: str) -> bool:
        """Replace the stored profile with an exported document.

        The whole document is validated before anything is written; on any
        validation failure the existing profile is left untouched.
        """
        try:
            profile = profile_from_document(json.loads(payload))
        except (TypeError, ValueError) as exc:
            logger.warning("preference import rejected", extra={"ctx_user_id": user_id, "ctx_error": str(exc)})
            return False
        profile.user_id = user_id
        self.store.set(user_id, profile_to_document(profile))
        logger.info("preference profile imported", extra={"ctx_user_id": user_id})
        return True

    def preference_stats(self, user_id: str) -> PreferenceStats:
        profile = self.get_preferences(user_id) or create_default_profile(user_id)

        counts = {t: c for t, c in profile.workout_counts.items() if c > 0}
        favorite = None
        if counts:
            best = max(counts.values())
            tied = [t for t, c in counts.items() if c == best]
            recent = [t for t in profile.recent_workout_types if t in tied]
            favorite = recent[0] if recent else tied[0]

        durations = [d for d in profile.default_duration.values() if d > 0]
        intensities = Counter(profile.default_intensity.values())

        return PreferenceStats(
            total_workouts=sum(counts.values()),
            average_duration=int(math.floor(mean(durations) + 0.5)) if durations else 0,
            favorite_workout_type=favorite,
            preferred_intensity=intensities.most_common(1)[0][0] if intensities else "medium",
        )
