"""
pytest fixtures shared across all test modules.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from monitoring.metrics import CacheMetrics  # noqa: E402
from story_service import CachedStoryService  # noqa: E402
from test_utils import ContextFactory, FakeClock  # noqa: E402
from utils.cache import ContextCache  # noqa: E402


@pytest.fixture()
def clock():
    """Return a FakeClock starting at t=1000ms."""
    return FakeClock()


@pytest.fixture()
def metrics():
    return CacheMetrics()


@pytest.fixture()
def cache(clock, metrics):
    """Return a ContextCache with a 100ms TTL, 2-entry bound and fake clock."""
    return ContextCache(ttl_ms=100, max_entries=2, clock=clock, metrics=metrics)


@pytest.fixture()
def context():
    return ContextFactory.create()


@pytest.fixture()
def service(cache):
    """Return a CachedStoryService whose generators are MagicMocks."""
    segment_gen = MagicMock(side_effect=lambda ctx: f"segment for {ctx.user_id}")
    choice_gen = MagicMock(side_effect=lambda ctx: ["Go left", "Go right"])
    return CachedStoryService(cache, segment_gen, choice_gen)
