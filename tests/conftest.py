"""
Shared pytest fixtures for spindle tests.

This module provides:
- Settings cache reset for test isolation
- A pool factory that shuts every pool down after the test
- A builder factory that shuts its pool and guard pools down after the test

Usage:
    def test_something(make_pool):
        pool = make_pool(core_pool_size=2)
        ...
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from spindle.core.settings import SpindleSettings, clear_settings_cache
from spindle.execution.builder import ThreadBuilder
from spindle.execution.pool import ScheduledWorkerPool


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Each test reads settings from a clean cache and without SPINDLE_* leakage."""
    for key in list(os.environ):
        if key.startswith("SPINDLE_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> SpindleSettings:
    """Defaults, with no .env file lookup."""
    return SpindleSettings(_env_file=None)


# =============================================================================
# Pools and builders
# =============================================================================


@pytest.fixture
def make_pool() -> Generator[Callable[..., ScheduledWorkerPool], None, None]:
    pools: list[ScheduledWorkerPool] = []

    def _make(core_pool_size: int = 1, **kwargs) -> ScheduledWorkerPool:
        pool = ScheduledWorkerPool(core_pool_size, **kwargs)
        pools.append(pool)
        return pool

    yield _make
    for pool in pools:
        pool.shutdown_now()
        pool.await_termination(2.0)


@pytest.fixture
def make_builder(settings: SpindleSettings) -> Generator[Callable[..., ThreadBuilder], None, None]:
    builders: list[ThreadBuilder] = []

    def _make(core_pool_size: int | None = None, **overrides) -> ThreadBuilder:
        effective = settings.model_copy(update=overrides) if overrides else settings
        builder = ThreadBuilder(core_pool_size, settings=effective)
        builders.append(builder)
        return builder

    yield _make
    for builder in builders:
        if builder.result is not None:
            builder.result.shutdown(now=True)
            builder.result.pool.await_termination(2.0)
