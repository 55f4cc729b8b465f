"""
progress_board.py

Queue view as plain records: one `QueueRow` per enqueued task, indexed by
`ref_idx`, changed only through `ProgressEvent`s.  The terminal loop owns
the updates; the web page reads snapshots from its own thread.
"""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass

from events import ProgressEvent


@dataclass
class QueueRow:
    name: str
    progress: float = 0.0
    failed: bool = False

    @property
    def finished(self) -> bool:
        return self.failed or self.progress >= 1.0


class ProgressBoard:
    def __init__(self) -> None:
        self._rows: list[QueueRow] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rows)

    # ---------------------------------------------------------------- rows
    def next_ref(self) -> int:
        """`ref_idx` the next appended row will get."""
        return len(self._rows)

    def add(self, name: str) -> int:
        with self._lock:
            self._rows.append(QueueRow(name))
            return len(self._rows) - 1

    def apply(self, event: ProgressEvent) -> QueueRow:
        with self._lock:
            row = self._rows[event.ref_idx]
            if event.progress is None:
                row.failed = True
            elif not row.failed:
                row.progress = event.progress
            return row

    # ------------------------------------------------------------- queries
    def all_finished(self) -> bool:
        with self._lock:
            return all(r.finished for r in self._rows)

    def failed_count(self) -> int:
        with self._lock:
            return sum(r.failed for r in self._rows)

    def snapshot(self) -> list[dict]:
        with self._lock:
            return [dict(asdict(r), ref_idx=i) for i, r in enumerate(self._rows)]
