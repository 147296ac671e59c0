"""Append-only history log with optional JSON persistence.

The engine collects the records produced by one start/complete call into a
:class:`HistoryBatch` and commits it in one step. Readers always get a
snapshot, so queries may run while the engine is committing.

When a path is given the file is the source of truth: every read and commit
reloads it under the lock, so several logs (a CLI run and a server, say) can
share one file. Commits are written to a temporary file and moved into place.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from workflow_engine.engine.history.records import (
    HistoricActivityInstance,
    HistoricProcessInstance,
    HistoricRecord,
    HistoricTaskInstance,
    HistoricVariableInstance,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=HistoricRecord)

_KINDS: dict[str, type[HistoricRecord]] = {
    "process_instances": HistoricProcessInstance,
    "activity_instances": HistoricActivityInstance,
    "task_instances": HistoricTaskInstance,
    "variable_instances": HistoricVariableInstance,
}

_Records = dict[str, list[HistoricRecord]]
_Positions = dict[str, tuple[str, int]]


def _kind_of(record: HistoricRecord) -> str:
    for kind, model in _KINDS.items():
        if isinstance(record, model):
            return kind
    raise TypeError(f"Not a historic record: {type(record).__name__}")


def _empty() -> _Records:
    return {kind: [] for kind in _KINDS}


def _index(records: _Records) -> _Positions:
    return {
        record.id: (kind, idx)
        for kind, items in records.items()
        for idx, record in enumerate(items)
    }


@dataclass
class HistoryBatch:
    """Records produced by one engine transaction, in production order.

    Putting a record whose id is already in the batch replaces it in place.
    """

    _records: dict[str, HistoricRecord] = field(default_factory=dict)

    def put(self, record: HistoricRecord) -> None:
        self._records[record.id] = record

    def records(self) -> list[HistoricRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)


class HistoryLog:
    """Thread-safe store for the four historic record kinds.

    Existing records may only be replaced by their end-timestamped version;
    anything else is appended. A commit that fails validation or cannot be
    written leaves both the log and the file unchanged.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._records: _Records = _empty()
        self._positions: _Positions = {}
        with self._lock:
            self._refresh_unlocked()

    def _load_unlocked(self, path: Path) -> _Records | None:
        if not path.exists():
            return _empty()
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("History file is not valid JSON", extra={"path": str(path)})
            return None
        if not isinstance(raw, dict):
            logger.warning("History file has unexpected shape", extra={"path": str(path)})
            return None
        return {
            kind: [model.model_validate(item) for item in raw.get(kind) or []]
            for kind, model in _KINDS.items()
        }

    def _refresh_unlocked(self) -> None:
        # An unreadable file keeps whatever this log already holds.
        if self._path is None:
            return
        loaded = self._load_unlocked(self._path)
        if loaded is not None:
            self._records, self._positions = loaded, _index(loaded)

    def _save_unlocked(self, records: _Records) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            kind: [r.model_dump(mode="json") for r in items] for kind, items in records.items()
        }
        tmp = self._path.with_name(
            f".{self._path.name}.{os.getpid()}.{threading.get_ident()}.tmp"
        )
        try:
            tmp.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )
            os.replace(tmp, self._path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def _check_replacement(self, current: HistoricRecord, new: HistoricRecord) -> None:
        if current.end_time is not None:
            raise ValueError(f"Historic record {current.id} is already ended")
        if new.end_time is None:
            raise ValueError(f"Historic record {current.id} may only be replaced to end it")
        if current.start_time != new.start_time or type(current) is not type(new):
            raise ValueError(f"Historic record {current.id} payload cannot change")

    def commit(self, batch: HistoryBatch) -> None:
        with self._lock:
            self._refresh_unlocked()
            records = {kind: list(items) for kind, items in self._records.items()}
            positions = dict(self._positions)
            for record in batch.records():
                position = positions.get(record.id)
                if position is None:
                    kind = _kind_of(record)
                    positions[record.id] = (kind, len(records[kind]))
                    records[kind].append(record)
                    continue
                kind, idx = position
                self._check_replacement(records[kind][idx], record)
                records[kind][idx] = record

            self._save_unlocked(records)
            self._records, self._positions = records, positions
        logger.debug("History batch committed", extra={"records": len(batch)})

    def find(self, model: type[R], record_id: str) -> R | None:
        with self._lock:
            self._refresh_unlocked()
            position = self._positions.get(record_id)
            if position is None:
                return None
            kind, idx = position
            record = self._records[kind][idx]
        return record if isinstance(record, model) else None

    def _snapshot(self, kind: str) -> tuple[HistoricRecord, ...]:
        with self._lock:
            self._refresh_unlocked()
            return tuple(self._records[kind])

    def historic_process_instances(self) -> tuple[HistoricProcessInstance, ...]:
        return self._snapshot("process_instances")  # type: ignore[return-value]

    def historic_activity_instances(self) -> tuple[HistoricActivityInstance, ...]:
        return self._snapshot("activity_instances")  # type: ignore[return-value]

    def historic_task_instances(self) -> tuple[HistoricTaskInstance, ...]:
        return self._snapshot("task_instances")  # type: ignore[return-value]

    def historic_variable_instances(self) -> tuple[HistoricVariableInstance, ...]:
        return self._snapshot("variable_instances")  # type: ignore[return-value]
