"""Structured exceptions raised by the session core."""

from __future__ import annotations

from typing import Any


class DuelError(Exception):
    """Base class for session-core exceptions.

    ``code`` is the plain-text token the transport sends back to clients and
    ``status_code`` is the HTTP status it maps to.
    """

    code = "error:internal"
    status_code = 500

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "code": self.code, "message": str(self)}


class SessionNotFoundError(DuelError):
    """Raised when no session exists for a game code."""

    code = "error:game_does_not_exist"
    status_code = 404

    def __init__(self, game_code: str):
        self.game_code = game_code
        super().__init__(f"No session with code {game_code}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["game_code"] = self.game_code
        return payload


class GameFullError(DuelError):
    """Raised when a guest tries to join a session whose guest slot is taken."""

    code = "error:game_full"
    status_code = 403

    def __init__(self, game_code: str, guest_nickname: str | None = None):
        self.game_code = game_code
        self.guest_nickname = guest_nickname
        super().__init__(f"Session {game_code} already has a guest")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"game_code": self.game_code, "guest_nickname": self.guest_nickname})
        return payload


class InvalidStatusError(DuelError):
    """Raised when a player status other than ready/exit is submitted."""

    code = "error:invalid_status"
    status_code = 400

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown player status {status!r}")


class StorageError(DuelError):
    """Raised when the session store cannot complete a read or write."""

    code = "error:storage_failure"
    status_code = 500


class DuplicateCodeError(StorageError):
    """Raised by ``insert`` when the code is already taken in the store."""

    def __init__(self, game_code: str):
        self.game_code = game_code
        super().__init__(f"A session with code {game_code} already exists")


class ConcurrentUpdateError(DuelError):
    """Raised when a save races another writer on the same session."""

    code = "error:concurrent_update"
    status_code = 409

    def __init__(self, game_code: str, expected_version: int, actual_version: int):
        self.game_code = game_code
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Session {game_code} changed underneath this write "
            f"(expected version {expected_version}, found {actual_version})"
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            {
                "game_code": self.game_code,
                "expected_version": self.expected_version,
                "actual_version": self.actual_version,
            }
        )
        return payload


class CodeSpaceExhaustedError(DuelError):
    """Raised when no free game code was found within the attempt budget."""

    code = "error:no_free_game_id"
    status_code = 503

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No free game code after {attempts} attempts")
