"""Session record, player roles and the tagged outcome of a state read."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Mapping, Self

from .serialize import format_timestamp, parse_timestamp

NICKNAME_MAX_LENGTH = 20
CODE_LENGTH = 4


class Role(str, Enum):
    """The two participant slots of a session."""

    HOST = "host"
    GUEST = "guest"

    @property
    def opponent(self) -> "Role":
        return Role.GUEST if self is Role.HOST else Role.HOST

    @classmethod
    def from_is_host_flag(cls, flag: str | bool) -> "Role":
        """Map the ``isHost`` path flag onto a role; only ``"true"`` means host."""
        if isinstance(flag, bool):
            return cls.HOST if flag else cls.GUEST
        return cls.HOST if flag == "true" else cls.GUEST


class PlayerStatus(str, Enum):
    """Statuses a player may post between rounds."""

    READY = "ready"
    EXIT = "exit"


def truncate_nickname(nickname: str, max_length: int = NICKNAME_MAX_LENGTH) -> str:
    return nickname[:max_length]


@dataclass
class Session:
    """One match between a host and an optional guest.

    Per-role fields are read and written through the role-indexed helpers so
    the state machine never branches on which side is acting.
    """

    code: str
    host_nickname: str
    guest_nickname: str | None = None
    host_choice: str | None = None
    guest_choice: str | None = None
    host_ready: bool = False
    guest_ready: bool = False
    host_last_ping: datetime | None = None
    guest_last_ping: datetime | None = None
    version: int = 0

    WIRE_FIELDS: ClassVar[dict[str, str]] = {
        "code": "gameID",
        "host_nickname": "nicknameHost",
        "guest_nickname": "nicknameGuest",
        "host_choice": "choiceHost",
        "guest_choice": "choiceGuest",
        "host_ready": "readyHost",
        "guest_ready": "readyGuest",
        "host_last_ping": "lastPingHost",
        "guest_last_ping": "lastPingGuest",
        "version": "version",
    }

    @classmethod
    def create(cls, code: str, host_nickname: str, now: datetime) -> Self:
        """Build a fresh session waiting for a guest."""
        return cls(code=code, host_nickname=host_nickname, host_last_ping=now)

    @property
    def has_guest(self) -> bool:
        return self.guest_nickname is not None

    def nickname(self, role: Role) -> str | None:
        return getattr(self, f"{role.value}_nickname")

    def choice(self, role: Role) -> str | None:
        return getattr(self, f"{role.value}_choice")

    def set_choice(self, role: Role, choice: str | None) -> None:
        setattr(self, f"{role.value}_choice", choice)

    def ready(self, role: Role) -> bool:
        return getattr(self, f"{role.value}_ready")

    def set_ready(self, role: Role, ready: bool) -> None:
        setattr(self, f"{role.value}_ready", ready)

    def last_ping(self, role: Role) -> datetime | None:
        return getattr(self, f"{role.value}_last_ping")

    def touch(self, role: Role, now: datetime) -> None:
        """Record that ``role`` was just heard from."""
        setattr(self, f"{role.value}_last_ping", now)

    def seat_guest(self, nickname: str, now: datetime) -> None:
        self.guest_nickname = nickname
        self.guest_choice = None
        self.guest_ready = False
        self.guest_last_ping = now

    def reset_round(self) -> None:
        """Clear both choices and both ready flags."""
        for role in Role:
            self.set_choice(role, None)
            self.set_ready(role, False)

    def vacate_guest_slot(self) -> None:
        """Remove the guest and reset the round; the host's fields are kept."""
        self.reset_round()
        self.guest_nickname = None
        self.guest_last_ping = None

    def copy(self) -> Self:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Return the record using the wire field names clients expect."""
        payload: dict[str, Any] = {}
        for attr, wire_name in self.WIRE_FIELDS.items():
            value = getattr(self, attr)
            if isinstance(value, datetime):
                value = format_timestamp(value)
            payload[wire_name] = value
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a session from its wire representation."""
        return cls(
            code=str(data["gameID"]),
            host_nickname=str(data["nicknameHost"]),
            guest_nickname=data.get("nicknameGuest"),
            host_choice=data.get("choiceHost"),
            guest_choice=data.get("choiceGuest"),
            host_ready=bool(data.get("readyHost", False)),
            guest_ready=bool(data.get("readyGuest", False)),
            host_last_ping=parse_timestamp(data.get("lastPingHost")),
            guest_last_ping=parse_timestamp(data.get("lastPingGuest")),
            version=int(data.get("version", 0)),
        )


@dataclass(frozen=True)
class SessionState:
    """Outcome carrying the current session record."""

    session: Session


@dataclass(frozen=True)
class OpponentLeft:
    """Outcome signalling that the session no longer exists for the caller."""

    game_code: str

    SENTINEL: ClassVar[str] = "player_left"


Outcome = SessionState | OpponentLeft
