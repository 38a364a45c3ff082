#!/usr/bin/env python3
"""
Thrash Window Store - Time-pruned signature logs, one per category.

Each category keeps two sequences:
- window: append-only entries, pruned by age before every count
- tail: the most recent N entries, never time-pruned (failure density)

WindowStore is the in-memory implementation and the interface the Detector
depends on. FileWindowStore persists one JSON file per category and holds an
exclusive flock for the whole load/modify/save cycle, so concurrent hook
invocations serialize instead of dropping each other's entries.
"""

import fcntl
import json
import logging
import os
import shutil
import tempfile
from collections import Counter, deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from _thrash_events import EventCategory, StoreIOError

logger = logging.getLogger(__name__)

DEFAULT_TAIL_SIZE = 10
LOCK_FILENAME = ".lock"

Match = Union[str, Callable[[str], bool]]


@dataclass(frozen=True)
class WindowEntry:
    timestamp: float
    category: str
    signature: str
    failed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "WindowEntry":
        return cls(
            timestamp=float(data["timestamp"]),
            category=str(data["category"]),
            signature=str(data["signature"]),
            failed=bool(data.get("failed", False)),
        )


def _key(category) -> str:
    return category.value if isinstance(category, EventCategory) else str(category)


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class WindowStore:
    """In-memory window store."""

    def __init__(self, tail_size: int = DEFAULT_TAIL_SIZE):
        self.tail_size = max(1, int(tail_size))
        self._window: dict[str, list[WindowEntry]] = {}
        self._tail: dict[str, deque] = {}

    def _ensure(self, key: str) -> None:
        self._window.setdefault(key, [])
        self._tail.setdefault(key, deque(maxlen=self.tail_size))

    def append(
        self, category, signature: str, timestamp: float, failed: bool = False
    ) -> WindowEntry:
        key = _key(category)
        self._ensure(key)
        entry = WindowEntry(float(timestamp), key, signature, failed)
        self._window[key].append(entry)
        self._tail[key].append(entry)
        return entry

    def resize_tail(self, tail_size: int) -> None:
        """Change the tail capacity, keeping the most recent entries."""
        self.tail_size = max(1, int(tail_size))
        self._tail = {
            key: deque(entries, maxlen=self.tail_size) for key, entries in self._tail.items()
        }

    def prune(self, now: float, window_duration: float, category=None) -> int:
        """Drop windowed entries older than now - window_duration.

        Returns:
            Number of entries removed
        """
        cutoff = now - window_duration
        keys = [_key(category)] if category is not None else list(self._window)
        removed = 0
        for key in keys:
            if key not in self._window:
                continue
            entries = self._window[key]
            kept = [e for e in entries if e.timestamp >= cutoff]
            removed += len(entries) - len(kept)
            self._window[key] = kept
        return removed

    def count(self, category, match: Match) -> int:
        """Count windowed entries whose signature equals or satisfies match."""
        predicate = match if callable(match) else (lambda sig: sig == match)
        return sum(1 for e in self._window.get(_key(category), []) if predicate(e.signature))

    def tail(self, category, n: int) -> list[WindowEntry]:
        """Most recent n entries regardless of the time window."""
        if n <= 0:
            return []
        return list(self._tail.get(_key(category), ()))[-n:]

    def entries(self, category) -> list[WindowEntry]:
        return list(self._window.get(_key(category), []))

    def categories(self) -> list[str]:
        return sorted(set(self._window) | set(self._tail))

    def stats(self, top: int = 3) -> dict:
        """Summarize windowed counts, top signatures, and tail failures."""
        summary = {}
        for key in self.categories():
            window = self._window.get(key, [])
            tail = self._tail.get(key, ())
            summary[key] = {
                "windowed": len(window),
                "top": Counter(e.signature for e in window).most_common(top),
                "tail": len(tail),
                "tail_failed": sum(1 for e in tail if e.failed),
            }
        return summary

    def clear(self) -> None:
        self._window.clear()
        self._tail.clear()

    @contextmanager
    def session(self) -> Iterator["WindowStore"]:
        """Scope of one detector invocation. Nothing to load or save here."""
        yield self

    # Serialization helpers shared with the file-backed store

    def _dump(self, key: str) -> dict:
        return {
            "window": [asdict(e) for e in self._window.get(key, [])],
            "tail": [asdict(e) for e in self._tail.get(key, ())],
        }

    def _restore(self, key: str, data: dict) -> None:
        self._window[key] = [WindowEntry.from_dict(e) for e in data.get("window", [])]
        self._tail[key] = deque(
            (WindowEntry.from_dict(e) for e in data.get("tail", [])),
            maxlen=self.tail_size,
        )


# =============================================================================
# FILE-BACKED STORE
# =============================================================================


class FileWindowStore(WindowStore):
    """Window store persisted as one JSON file per category."""

    def __init__(self, state_dir, tail_size: int = DEFAULT_TAIL_SIZE):
        super().__init__(tail_size)
        self.state_dir = Path(state_dir)

    def category_file(self, category) -> Path:
        return self.state_dir / f"{_key(category)}.json"

    def _acquire_lock(self) -> Optional[int]:
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            lock_fd = os.open(str(self.state_dir / LOCK_FILENAME), os.O_CREAT | os.O_RDWR)
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            return lock_fd
        except OSError as e:
            logger.warning("thrash store: lock unavailable in %s: %s", self.state_dir, e)
            return None

    @staticmethod
    def _release_lock(lock_fd: Optional[int]) -> None:
        if lock_fd is None:
            return
        fcntl.flock(lock_fd, fcntl.LOCK_UN)
        os.close(lock_fd)

    def _read_category(self, key: str) -> dict:
        path = self.state_dir / f"{key}.json"
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            raise StoreIOError(f"{path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreIOError(f"{path}: expected an object")
        return data

    def load(self) -> None:
        """Replace in-memory state with what is on disk.

        Unreadable categories start empty for this call.
        """
        self.clear()
        if not self.state_dir.is_dir():
            return
        for category in EventCategory:
            key = category.value
            if not self.category_file(key).exists():
                continue
            try:
                self._restore(key, self._read_category(key))
            except (StoreIOError, KeyError, TypeError, ValueError) as e:
                logger.warning("thrash store: discarding unreadable log %s: %s", key, e)
                self._window.pop(key, None)
                self._tail.pop(key, None)

    def _write_category(self, key: str) -> None:
        path = self.state_dir / f"{key}.json"
        fd, tmp_path = tempfile.mkstemp(dir=self.state_dir, suffix=".json.tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._dump(key), f)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def save(self) -> None:
        """Write every category atomically. Failures are logged, not raised."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("thrash store: cannot create %s: %s", self.state_dir, e)
            return
        for key in self.categories():
            try:
                self._write_category(key)
            except (OSError, TypeError, ValueError) as e:
                logger.warning("thrash store: failed to persist %s: %s", key, e)

    @contextmanager
    def session(self) -> Iterator["FileWindowStore"]:
        """Lock, load, yield, save, unlock."""
        lock_fd = self._acquire_lock()
        try:
            self.load()
            yield self
            self.save()
        finally:
            self._release_lock(lock_fd)


def reset_state_dir(state_dir) -> bool:
    """Remove the whole state directory. Returns True if something was removed."""
    path = Path(state_dir)
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True
