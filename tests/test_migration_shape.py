from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from core.config import get_settings
from core.models import Base

MIGRATION = Path("alembic/versions/20261019_0001_smart_default_preferences.py")


def test_required_tables_present_in_migration():
    text = MIGRATION.read_text(encoding="utf-8")
    for t in Base.metadata.tables:
        assert f'"{t}"' in text


def test_migrations_avoid_postgres_now_function_for_portability():
    migrations_dir = Path("alembic/versions")
    for migration_file in migrations_dir.glob("*.py"):
        text = migration_file.read_text(encoding="utf-8").lower()
        assert "now()" not in text, f"Non-portable now() found in {migration_file.name}"


def test_alembic_upgrade_head_succeeds_on_sqlite(tmp_path, monkeypatch):
    db_path = tmp_path / "migration_smoke.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()

    command.upgrade(Config("alembic.ini"), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert {"smart_default_profiles", "intensity_mismatch_counters"} <= tables
        columns = {c["name"] for c in inspector.get_columns("smart_default_profiles")}
        assert columns == {"id", "user_id", "document", "updated_at"}
    finally:
        engine.dispose()
