from __future__ import annotations

from typing import Iterator

import pytest

from socadmin.apps.api.deps import clear_auth_cache
from socadmin.core.config import get_settings


@pytest.fixture(autouse=True)
def reset_cached_state() -> Iterator[None]:
    # Settings and cached principals are process-wide; start every test clean.
    get_settings.cache_clear()
    clear_auth_cache()
    yield
    get_settings.cache_clear()
    clear_auth_cache()
