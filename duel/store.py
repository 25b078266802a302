"""Session persistence boundary and its in-memory and JSON-file backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
import json
import logging
from pathlib import Path
import threading
from typing import Any, Self

from filelock import FileLock, Timeout

from .errors import ConcurrentUpdateError, DuplicateCodeError, SessionNotFoundError, StorageError
from .serialize import json_dumps
from .session import Session

logger = logging.getLogger(__name__)

Records = dict[str, dict[str, Any]]

DEFAULT_LOCK_TIMEOUT_S = 10.0


class SessionStore(ABC):
    """Create, find, update and delete session records keyed by game code.

    Stores have an explicit lifecycle: ``open()`` before use, ``close()`` when
    done (or use the store as a context manager). Records handed out are
    copies, so a caller mutating a session has no effect until ``save``.

    ``save`` enforces optimistic concurrency: the session's ``version`` must
    match the stored one, and a successful save bumps it.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> Self:
        with self._lock:
            if not self._open:
                self._on_open()
                self._open = True
        return self

    def close(self) -> None:
        with self._lock:
            if self._open:
                self._on_close()
                self._open = False

    def __enter__(self) -> Self:
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def find_by_code(self, code: str) -> Session | None:
        with self._transaction():
            record = self._read_records().get(code)
        return Session.from_dict(record) if record is not None else None

    def insert(self, session: Session) -> Session:
        with self._transaction():
            records = self._read_records()
            if session.code in records:
                raise DuplicateCodeError(session.code)
            stored = session.copy()
            stored.version = 1
            records[stored.code] = stored.to_dict()
            self._write_records(records)
        return stored

    def save(self, session: Session) -> Session:
        with self._transaction():
            records = self._read_records()
            current = records.get(session.code)
            if current is None:
                raise SessionNotFoundError(session.code)
            current_version = int(current.get("version", 0))
            if current_version != session.version:
                raise ConcurrentUpdateError(session.code, session.version, current_version)
            stored = session.copy()
            stored.version = current_version + 1
            records[stored.code] = stored.to_dict()
            self._write_records(records)
        return stored

    def delete_by_code(self, code: str) -> bool:
        with self._transaction():
            records = self._read_records()
            if records.pop(code, None) is None:
                return False
            self._write_records(records)
        return True

    def codes(self) -> list[str]:
        with self._transaction():
            return sorted(self._read_records())

    def _ensure_open(self) -> None:
        if not self._open:
            raise StorageError(f"{self.__class__.__name__} is not open")

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            self._ensure_open()
            with self._exclusive():
                yield

    def _exclusive(self) -> AbstractContextManager[None]:
        """Hook for backends shared between processes; held around each operation."""
        return nullcontext()

    def _on_open(self) -> None:
        """Hook for backends that acquire resources on open."""

    def _on_close(self) -> None:
        """Hook for backends that release resources on close."""

    @abstractmethod
    def _read_records(self) -> Records:
        """Return the full code -> wire record mapping."""

    @abstractmethod
    def _write_records(self, records: Records) -> None:
        """Persist the full mapping after a change."""


class InMemorySessionStore(SessionStore):
    """Process-local store; sessions vanish on restart."""

    def __init__(self) -> None:
        super().__init__()
        self._records: Records = {}

    def _on_close(self) -> None:
        self._records.clear()

    def _read_records(self) -> Records:
        return dict(self._records)

    def _write_records(self, records: Records) -> None:
        self._records = records


class JsonFileSessionStore(SessionStore):
    """Simple JSON file-backed session store.

    The whole document is rewritten through a temp file and an atomic rename
    on every change. Every operation holds a lock file next to the document,
    so several processes can share one path and the version check in ``save``
    sees their writes.
    """

    def __init__(self, path: str | Path, *, lock_timeout: float = DEFAULT_LOCK_TIMEOUT_S) -> None:
        super().__init__()
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        self._file_lock = FileLock(self.lock_path, timeout=lock_timeout)

    def _on_open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._exclusive():
                if not self.path.exists():
                    self._write_records({})
        except OSError as exc:
            raise StorageError(f"Could not open session file {self.path}: {exc}") from exc
        logger.info("Session store opened at %s.", self.path)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        try:
            self._file_lock.acquire()
        except Timeout as exc:
            raise StorageError(f"Timed out waiting for lock {self.lock_path}") from exc
        try:
            yield
        finally:
            self._file_lock.release()

    def _read_records(self) -> Records:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Could not read session file {self.path}: {exc}") from exc
        sessions = raw.get("sessions") if isinstance(raw, dict) else None
        if not isinstance(sessions, dict):
            raise StorageError(f"Session file {self.path} is malformed")
        return sessions

    def _write_records(self, records: Records) -> None:
        payload = {"version": 1, "sessions": records}
        temp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            temp.write_text(json_dumps(payload, indent=2), encoding="utf-8")
            temp.replace(self.path)
        except OSError as exc:
            raise StorageError(f"Could not write session file {self.path}: {exc}") from exc
