"""Per-user crop history, written when farmers report what they grew."""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Tuple

from ..schemas import CropHistory
from .config import get_config


MAX_CROPS = 10


class CropHistoryStore(ABC):
    """Keeps the most recent ``MAX_CROPS`` crops per user for ``ttl_seconds``."""

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl_seconds = max(1, int(ttl_seconds))

    def _expired(self, recorded_at: int) -> bool:
        return recorded_at + self._ttl_seconds <= int(time.time())

    @abstractmethod
    def get(self, user_id: str) -> Optional[CropHistory]:
        raise NotImplementedError

    @abstractmethod
    def record(self, user_id: str, history: CropHistory) -> None:
        """Replace the stored history for ``user_id``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, user_id: str) -> None:
        raise NotImplementedError


def _trim(history: CropHistory) -> CropHistory:
    if len(history.previous_crops) <= MAX_CROPS:
        return history
    return history.model_copy(update={"previous_crops": history.previous_crops[:MAX_CROPS]})


class InMemoryCropHistoryStore(CropHistoryStore):
    def __init__(self, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self._items: Dict[str, Tuple[CropHistory, int]] = {}
        self._lock = Lock()

    def get(self, user_id: str) -> Optional[CropHistory]:
        with self._lock:
            entry = self._items.get(user_id)
            if entry is None:
                return None
            if self._expired(entry[1]):
                del self._items[user_id]
                return None
            return entry[0]

    def record(self, user_id: str, history: CropHistory) -> None:
        with self._lock:
            self._items[user_id] = (_trim(history), int(time.time()))

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._items.pop(user_id, None)


class SqliteCropHistoryStore(CropHistoryStore):
    """One row per crop, ordered most recent first, plus a per-user header row."""

    def __init__(self, path: Path, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self._path = Path(path)
        self._lock = Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS crop_history_users (
                    user_id TEXT PRIMARY KEY,
                    last_harvest TEXT,
                    recorded_at INTEGER NOT NULL
                );
                CREATE TABLE IF NOT EXISTS crop_history_crops (
                    user_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    crop TEXT NOT NULL,
                    PRIMARY KEY (user_id, position)
                );
                """
            )

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path)

    def get(self, user_id: str) -> Optional[CropHistory]:
        with self._lock, self._connect() as conn:
            header = conn.execute(
                "SELECT last_harvest, recorded_at FROM crop_history_users WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            if header is None:
                return None
            last_harvest, recorded_at = header
            if self._expired(recorded_at):
                self._delete(conn, user_id)
                return None
            crops = [
                row[0]
                for row in conn.execute(
                    "SELECT crop FROM crop_history_crops WHERE user_id = ? ORDER BY position",
                    (user_id,),
                )
            ]
        return CropHistory(
            previous_crops=crops,
            last_harvest=date.fromisoformat(last_harvest) if last_harvest else None,
        )

    def record(self, user_id: str, history: CropHistory) -> None:
        history = _trim(history)
        last_harvest = history.last_harvest.isoformat() if history.last_harvest else None
        with self._lock, self._connect() as conn:
            self._delete(conn, user_id)
            conn.execute(
                "INSERT INTO crop_history_users (user_id, last_harvest, recorded_at) VALUES (?, ?, ?)",
                (user_id, last_harvest, int(time.time())),
            )
            conn.executemany(
                "INSERT INTO crop_history_crops (user_id, position, crop) VALUES (?, ?, ?)",
                [(user_id, position, crop) for position, crop in enumerate(history.previous_crops)],
            )

    def delete(self, user_id: str) -> None:
        with self._lock, self._connect() as conn:
            self._delete(conn, user_id)

    @staticmethod
    def _delete(conn: sqlite3.Connection, user_id: str) -> None:
        conn.execute("DELETE FROM crop_history_crops WHERE user_id = ?", (user_id,))
        conn.execute("DELETE FROM crop_history_users WHERE user_id = ?", (user_id,))


def build_history_store() -> CropHistoryStore:
    cfg = get_config()
    ttl_seconds = int(cfg.history_store_ttl_days) * 86400
    if (cfg.history_store or "memory").lower() == "sqlite":
        path = Path(cfg.history_store_path or Path.cwd() / ".cache" / "crop_history.sqlite3")
        return SqliteCropHistoryStore(path=path, ttl_seconds=ttl_seconds)
    return InMemoryCropHistoryStore(ttl_seconds=ttl_seconds)
