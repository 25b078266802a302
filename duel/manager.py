"""Session state machine: create, join, choose, poll, ready-up and exit."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import logging

from .codes import CodeAllocator
from .errors import CodeSpaceExhaustedError, DuplicateCodeError, GameFullError, InvalidStatusError, SessionNotFoundError
from .liveness import LivenessPolicy
from .locks import CodeLocks
from .session import (
    NICKNAME_MAX_LENGTH,
    OpponentLeft,
    Outcome,
    PlayerStatus,
    Role,
    Session,
    SessionState,
    truncate_nickname,
)
from .store import SessionStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SessionManager:
    """Owns every transition of a session record.

    A session is logically ``WaitingForGuest`` (no guest), ``Active`` (guest
    seated) or gone from the store. Rounds are not stored; they are implied by
    the choice and ready fields and end when both players are ready.

    Each transition loads the record, mutates it and saves it while holding
    the lock for that game code; the store's version check catches writers in
    other processes.

    Guest requests against an empty guest slot (an evicted or departed guest
    still polling) return the session untouched.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        allocator: CodeAllocator | None = None,
        liveness: LivenessPolicy | None = None,
        clock: Clock | None = None,
        locks: CodeLocks | None = None,
        nickname_max_length: int = NICKNAME_MAX_LENGTH,
    ) -> None:
        self.store = store
        self.allocator = allocator or CodeAllocator(store)
        self.liveness = liveness or LivenessPolicy()
        self.clock = clock or utc_now
        self.locks = locks or CodeLocks()
        self.nickname_max_length = nickname_max_length

    def create_session(self, nickname: str) -> Session:
        """Create a session hosted by ``nickname`` under a fresh code."""
        host_nickname = truncate_nickname(nickname, self.nickname_max_length)
        logger.info("Received create game request for host %s.", host_nickname)

        # allocate() only checks the code was free when it looked; insert is
        # the authoritative uniqueness check.
        for _ in range(self.allocator.max_attempts):
            code = self.allocator.allocate()
            session = Session.create(code, host_nickname, self.clock())
            try:
                stored = self.store.insert(session)
            except DuplicateCodeError:
                logger.info("Game ID %s: taken by a concurrent create, drawing again.", code)
                continue
            logger.info("Game ID %s: created game for host '%s'.", code, host_nickname)
            return stored
        raise CodeSpaceExhaustedError(self.allocator.max_attempts)

    def join_session(self, code: str, nickname: str) -> Session:
        """Seat ``nickname`` as the guest of session ``code``."""
        guest_nickname = truncate_nickname(nickname, self.nickname_max_length)
        logger.info("Received request from %s to join game %s.", guest_nickname, code)
        with self.locks.hold(code):
            session = self._load(code)
            if session.has_guest:
                logger.info("Game ID %s: guest '%s' tried to join a game that is already full.", code, guest_nickname)
                raise GameFullError(code, session.guest_nickname)
            session.seat_guest(guest_nickname, self.clock())
            stored = self.store.save(session)
        logger.info("Game ID %s: guest '%s' joined '%s's game.", code, guest_nickname, stored.host_nickname)
        return stored

    def submit_choice(self, code: str, role: Role, choice: str) -> Session:
        """Record ``role``'s choice for the current round.

        The token is stored as given; the move set is up to the clients.
        """
        with self.locks.hold(code):
            session = self._load(code)
            if not self._is_seated(session, role):
                return session
            session.set_choice(role, choice)
            session.touch(role, self.clock())
            stored = self.store.save(session)
        logger.info("Game ID %s: %s '%s' chose '%s'.", code, role.value, stored.nickname(role), choice)
        return stored

    def get_state(self, code: str, role: Role) -> Outcome:
        """Poll the session as ``role``, checking whether the opponent is still there."""
        with self.locks.hold(code):
            session = self._load(code)
            if not self._is_seated(session, role):
                return SessionState(session)
            now = self.clock()
            session.touch(role, now)
            opponent = role.opponent
            if self.liveness.is_stale(session.last_ping(opponent), now):
                logger.info("Game ID %s: %s timed out.", code, opponent.value)
                return self._remove_player(session, opponent)
            return SessionState(self.store.save(session))

    def set_player_status(self, code: str, role: Role, status: PlayerStatus | str) -> Outcome:
        """Mark ``role`` ready for the next round, or take it out of the session."""
        status = _coerce_status(status)
        with self.locks.hold(code):
            session = self._load(code)
            if not self._is_seated(session, role):
                return SessionState(session)
            if status is PlayerStatus.EXIT:
                logger.info("Game ID %s: %s '%s' left.", code, role.value, session.nickname(role))
                return self._remove_player(session, role)

            session.set_ready(role, True)
            session.touch(role, self.clock())
            if all(session.ready(each) for each in Role):
                logger.info("Game ID %s: both players ready, starting a new round.", code)
                session.reset_round()
            return SessionState(self.store.save(session))

    def get_session(self, code: str) -> Session:
        """Look up a session without refreshing pings or checking liveness."""
        return self._load(code)

    def sweep_stale(self) -> tuple[int, int]:
        """Apply the liveness check to every stored session.

        Returns ``(sessions_deleted, guests_evicted)``.
        """
        deleted = evicted = 0
        for code in self.store.codes():
            with self.locks.hold(code):
                session = self.store.find_by_code(code)
                if session is None:
                    continue
                now = self.clock()
                if self.liveness.is_stale(session.last_ping(Role.HOST), now):
                    self._remove_player(session, Role.HOST)
                    deleted += 1
                elif self.liveness.is_stale(session.last_ping(Role.GUEST), now):
                    self._remove_player(session, Role.GUEST)
                    evicted += 1
        if deleted or evicted:
            logger.info("Sweep removed %d sessions and evicted %d guests.", deleted, evicted)
        return deleted, evicted

    def _load(self, code: str) -> Session:
        session = self.store.find_by_code(code)
        if session is None:
            logger.info("Game ID %s: game does not exist.", code)
            raise SessionNotFoundError(code)
        return session

    def _is_seated(self, session: Session, role: Role) -> bool:
        # A guest call on an empty slot (e.g. after eviction) must not leave
        # a stray ping, choice or ready flag behind.
        if role is Role.GUEST and not session.has_guest:
            logger.info("Game ID %s: ignoring guest request, no guest is seated.", session.code)
            return False
        return True

    def _remove_player(self, session: Session, departed: Role) -> Outcome:
        # The host owns the session: losing the host ends it, losing the
        # guest only frees the slot.
        if departed is Role.HOST:
            self.store.delete_by_code(session.code)
            logger.info("Game ID %s: host left, game deleted.", session.code)
            return OpponentLeft(session.code)
        session.vacate_guest_slot()
        return SessionState(self.store.save(session))


def _coerce_status(status: PlayerStatus | str) -> PlayerStatus:
    try:
        return PlayerStatus(status)
    except ValueError as exc:
        raise InvalidStatusError(str(status)) from exc
