"""Test configuration and fixtures."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from workflow_engine.engine.history.service import HistoryQueryService
from workflow_engine.engine.history.store import HistoryLog
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.engine.runtime import InMemoryProcessEngine


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock() -> TickingClock:
    """Provide a deterministic clock."""
    return TickingClock(datetime(2026, 1, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    """Provide a temporary history file location."""
    return tmp_path / "engine_state" / "history.json"


@pytest.fixture
def history_log() -> HistoryLog:
    """Provide an in-memory history log."""
    return HistoryLog()


@pytest.fixture
def engine(history_log: HistoryLog, clock: TickingClock) -> InMemoryProcessEngine:
    """Provide an engine with the default definitions and delegates."""
    return InMemoryProcessEngine(history_log, clock=clock)


@pytest.fixture
def history_service(history_log: HistoryLog) -> HistoryQueryService:
    return HistoryQueryService(history_log)


@pytest.fixture
def launcher(engine: InMemoryProcessEngine) -> ProcessLaunchService:
    return ProcessLaunchService(engine)
