from __future__ import annotations

from functools import lru_cache

from core.services.defaults_context import Clock, SystemClock
from core.services.preference_store import PreferenceManager, SqlIntensityCounterStore, SqlPreferenceStore


@lru_cache(maxsize=1)
def get_preference_manager() -> PreferenceManager:
    return PreferenceManager(SqlPreferenceStore(), SqlIntensityCounterStore())


def get_clock() -> Clock:
    return SystemClock()
