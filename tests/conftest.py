from __future__ import annotations

import pytest

from core.config import get_settings
from core.db import reset_engine


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    reset_engine()
    yield
    get_settings.cache_clear()
    reset_engine()
