from __future__ import annotations

import sys

from core.db import create_schema
from core.services.preference_store import PreferenceManager, SqlIntensityCounterStore, SqlPreferenceStore


def main(argv: list[str] | None = None) -> int:
    user_ids = list(sys.argv[1:] if argv is None else argv)
    if not user_ids:
        print("usage: python3 scripts/reset_preferences.py USER_ID [USER_ID ...]")
        return 2

    create_schema()
    manager = PreferenceManager(SqlPreferenceStore(), SqlIntensityCounterStore())
    for user_id in user_ids:
        existed = manager.get_preferences(user_id) is not None
        manager.reset_preferences(user_id)
        print(f"user_id={user_id} profile_existed={existed} reset=ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
