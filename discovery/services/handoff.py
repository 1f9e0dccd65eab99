"""
Transient hand-off of generated events across the page transition.

The loading page writes the generated list into a page-scoped storage slot
just before navigating; the results page reads it once and deletes it. If the
slot is empty (direct navigation, stale storage, timeout-forced transition)
the results page runs discovery itself.

Storage is session-scoped and comes in two flavours, mirroring browser
session storage: in-memory (default) and SQLite (when HANDOFF_DB_PATH is set,
so a hand-off survives a restart between the two requests).
"""

import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from discovery.config import get_settings
from discovery.models import EventList, GeneratedEvent

logger = logging.getLogger(__name__)

HANDOFF_KEY = "generatedEvents"


class HandoffAlreadyWrittenError(RuntimeError):
    """Raised when a hand-off slot is written twice in one attempt."""


class PageStorage(Protocol):
    """Minimal key/value interface of browser session storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryPageStorage:
    """Page storage kept in process memory. Lost on restart."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class SQLitePageStorage:
    """Page storage persisted in a SQLite table, one scope per session."""

    def __init__(self, db_path: str | Path, scope: str):
        self.db_path = Path(db_path)
        self.scope = scope
        self._init_db()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS page_storage (
                    scope TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (scope, key)
                )
            """)
            conn.commit()

    def get_item(self, key: str) -> str | None:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM page_storage WHERE scope = ? AND key = ?",
                (self.scope, key),
            ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO page_storage (scope, key, value) VALUES (?, ?, ?)",
                (self.scope, key, value),
            )
            conn.commit()

    def remove_item(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "DELETE FROM page_storage WHERE scope = ? AND key = ?",
                (self.scope, key),
            )
            conn.commit()


class TransientHandoff:
    """Single-write, single-read-then-clear slot for a generated event list.

    Usage:
        handoff = TransientHandoff(storage)
        handoff.write(events)          # loading page, once per attempt
        events = handoff.take()        # results page, returns None if empty
    """

    def __init__(self, storage: PageStorage, key: str = HANDOFF_KEY):
        self.storage = storage
        self.key = key
        self._written = False

    @property
    def written(self) -> bool:
        """Whether this slot was written through this handle."""
        return self._written

    def write(self, events: list[GeneratedEvent]) -> None:
        """Store the event list. Allowed once per handle (one attempt)."""
        if self._written:
            raise HandoffAlreadyWrittenError(f"Hand-off '{self.key}' was already written")
        self.storage.set_item(self.key, EventList.dump_json(events, by_alias=True).decode())
        self._written = True
        logger.debug("[Handoff] Written | key=%s events=%d", self.key, len(events))

    def clear(self) -> None:
        """Drop whatever an earlier attempt left in the slot."""
        if self.storage.get_item(self.key) is not None:
            self.storage.remove_item(self.key)
            logger.debug("[Handoff] Cleared stale slot | key=%s", self.key)

    def take(self) -> list[GeneratedEvent] | None:
        """Read and clear the slot.

        Returns:
            The stored events, or None when nothing usable was stored. An
            unreadable payload is cleared and reported as None so the caller
            runs discovery itself.
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            logger.debug("[Handoff] Empty | key=%s", self.key)
            return None

        self.storage.remove_item(self.key)
        try:
            events = EventList.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable hand-off payload: %s", e)
            return None

        if not events:
            return None

        logger.debug("[Handoff] Taken | key=%s events=%d", self.key, len(events))
        return events


class HandoffStoreManager:
    """
    Hands out session-scoped page storage.

    Falls back to in-memory storage when no database path is configured.
    """

    def __init__(self, db_path: str | Path | None = None, use_persistence: bool | None = None):
        settings = get_settings()
        self.db_path = str(db_path or settings.handoff_db_path)

        if use_persistence is None:
            self._use_persistence = bool(self.db_path)
        else:
            self._use_persistence = use_persistence and bool(self.db_path)

        self._memory: dict[str, InMemoryPageStorage] = {}

        if self._use_persistence:
            logger.info("Hand-off storage initialized with SQLite persistence: %s", self.db_path)
        else:
            logger.info("Hand-off storage initialized in non-persisted (in-memory) mode")

    @property
    def is_persistent(self) -> bool:
        return self._use_persistence

    def get_storage(self, session_id: str) -> PageStorage:
        """Get the page storage for a browser session."""
        if self._use_persistence:
            return SQLitePageStorage(self.db_path, scope=session_id)
        if session_id not in self._memory:
            self._memory[session_id] = InMemoryPageStorage()
        return self._memory[session_id]

    def get_handoff(self, session_id: str) -> TransientHandoff:
        """Get a fresh hand-off handle over the session's storage."""
        return TransientHandoff(self.get_storage(session_id))

    def release(self, session_id: str) -> bool:
        """Drop a session's in-memory storage once nothing is left in it.

        Returns:
            True if the storage was dropped
        """
        storage = self._memory.get(session_id)
        if storage is None or len(storage):
            return False
        del self._memory[session_id]
        return True

    def __len__(self) -> int:
        return len(self._memory)


# Global manager instance
_manager: HandoffStoreManager | None = None


def get_handoff_manager() -> HandoffStoreManager:
    """Get the global hand-off storage manager."""
    global _manager
    if _manager is None:
        _manager = HandoffStoreManager()
    return _manager


def init_handoff_manager(
    db_path: str | Path | None = None,
    use_persistence: bool | None = None,
) -> HandoffStoreManager:
    """Initialize the global hand-off manager with custom settings."""
    global _manager
    _manager = HandoffStoreManager(db_path=db_path, use_persistence=use_persistence)
    return _manager
