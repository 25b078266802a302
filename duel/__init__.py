"""Core of the polled two-player session server."""

from .codes import CodeAllocator
from .errors import (
    CodeSpaceExhaustedError,
    ConcurrentUpdateError,
    DuelError,
    DuplicateCodeError,
    GameFullError,
    InvalidStatusError,
    SessionNotFoundError,
    StorageError,
)
from .liveness import LivenessPolicy, StaleSessionSweeper
from .locks import CodeLocks
from .manager import SessionManager
from .session import OpponentLeft, Outcome, PlayerStatus, Role, Session, SessionState
from .store import InMemorySessionStore, JsonFileSessionStore, SessionStore

__all__ = [
    "CodeAllocator",
    "CodeLocks",
    "CodeSpaceExhaustedError",
    "ConcurrentUpdateError",
    "DuelError",
    "DuplicateCodeError",
    "GameFullError",
    "InMemorySessionStore",
    "InvalidStatusError",
    "JsonFileSessionStore",
    "LivenessPolicy",
    "OpponentLeft",
    "Outcome",
    "PlayerStatus",
    "Role",
    "Session",
    "SessionManager",
    "SessionNotFoundError",
    "SessionState",
    "SessionStore",
    "StaleSessionSweeper",
    "StorageError",
]
