from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterable

from lockerbay.core.entities.event import Event
from lockerbay.core.repositories.event_publisher import EventPublisher

logger = logging.getLogger(__name__)


class JsonlEventLog:
    """Append-only JSON-lines file. One record per line."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch(exist_ok=True)
        self._lock = threading.Lock()

    def append(self, record: dict[str, Any]) -> None:
        line = json.dumps(record, sort_keys=True) + "\n"
        with self._lock, self._path.open("a", encoding="utf-8") as f:
            f.write(line)

    def load_all(self) -> Iterable[dict[str, Any]]:
        with self._path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield json.loads(line)

    def load_by_locker(self, locker_id: str):
        return (e for e in self.load_all() if e["locker_id"] == locker_id)


class JsonlEventPublisherImpl(EventPublisher):
    """
    Event publisher backed by an append-only JSONL log.

    Downstream transports (push, device bridge) tail the file; delivery and retries are theirs.
    """

    def __init__(self, *, file_path: str | Path) -> None:
        self._log = JsonlEventLog(Path(file_path))

    def publish(self, event: Event) -> None:
        self._log.append(self._event_to_record(event))
        logger.debug("Published %s for locker %s", event.type.value, event.locker_id)

    @property
    def log(self) -> JsonlEventLog:
        return self._log

    @staticmethod
    def _event_to_record(event: Event) -> dict[str, Any]:
        """
        Normalize datetimes and enums for persistence
        """
        record = asdict(event)
        record["event_id"] = str(event.event_id)
        record["occurred_at"] = event.occurred_at.isoformat()
        record["type"] = event.type.value

        return record
