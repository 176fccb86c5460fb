import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle counters and the user stats cache live in the default cache.
    cache.clear()
    yield
    cache.clear()
