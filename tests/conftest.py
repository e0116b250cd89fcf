"""Shared test fixtures for pkgcache.

Provides an isolated XDG environment, a controllable clock, ready-made
stores on both backends, and a Typer CLI runner. These fixtures are
discovered by pytest automatically.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pkgcache.cache import CacheStore, DiskBoard, MemoryBoard
from pkgcache.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Drop the global OutputManager so stale CliRunner streams are not reused."""
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def disk_store(tmp_path: Path, clock: FakeClock) -> CacheStore:
    """A store on a DiskBoard rooted in tmp_path, driven by the fake clock."""
    store = CacheStore(backend=DiskBoard(tmp_path / "boards"), clock=clock)
    yield store
    store.close()


@pytest.fixture
def memory_store(clock: FakeClock) -> CacheStore:
    """A store on a MemoryBoard, driven by the fake clock."""
    store = CacheStore(backend=MemoryBoard(), clock=clock)
    yield store
    store.close()


@pytest.fixture(params=["disk", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path, clock: FakeClock) -> CacheStore:
    """Run the test once per backend."""
    if request.param == "disk":
        backend = DiskBoard(tmp_path / "boards")
    else:
        backend = MemoryBoard()
    s = CacheStore(backend=backend, clock=clock)
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME and XDG_CACHE_HOME into tmp_path.

    Clears the PKGCACHE_* environment variables and forces the XDG layout
    so paths are the same on every platform.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setattr("pkgcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for var in ["PKGCACHE_DIR", "PKGCACHE_MAX_AGE"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_app():
    """The root Typer app with every built-in command registered."""
    from pkgcache.app import app, register_commands

    register_commands()
    return app
