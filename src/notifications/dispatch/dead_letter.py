"""Dead-letter sinks for jobs that exhausted their retries.

Entries are kept for manual inspection and replay; nothing consumes them
automatically.
"""

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class DeadLetterSink(ABC):
    @abstractmethod
    def add(self, entry: dict) -> None: ...

    @abstractmethod
    def list_entries(self) -> list[dict]: ...


class InMemoryDeadLetterSink(DeadLetterSink):
    def __init__(self):
        self._entries: list[dict] = []
        self._lock = threading.Lock()

    def add(self, entry: dict) -> None:
        with self._lock:
            self._entries.append(entry)

    def list_entries(self) -> list[dict]:
        with self._lock:
            return list(self._entries)

    @property
    def entries(self) -> list[dict]:
        return self.list_entries()


class JsonLinesDeadLetterSink(DeadLetterSink):
    """Appends one JSON document per line to ``path``."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def add(self, entry: dict) -> None:
        line = json.dumps(entry, default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        logger.info("Dead-letter entry written", path=str(self.path), job_id=entry.get("original_job_id"))

    def list_entries(self) -> list[dict]:
        with self._lock:
            if not self.path.exists():
                return []
            with self.path.open(encoding="utf-8") as fh:
                return [json.loads(line) for line in fh if line.strip()]
