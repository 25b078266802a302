"""Random allocation of short numeric game codes."""

from __future__ import annotations

import logging
import random

from .errors import CodeSpaceExhaustedError
from .session import CODE_LENGTH
from .store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 1000


class CodeAllocator:
    """Draw zero-padded codes uniformly until one is free in the store.

    Codes are only unique among sessions still in the store, so a deleted
    session's code can be handed out again. The number of draws is capped:
    once most of the code space is in use the allocator gives up with
    ``CodeSpaceExhaustedError`` rather than spinning.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        rng: random.Random | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        length: int = CODE_LENGTH,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.store = store
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts
        self.length = length

    @property
    def code_space(self) -> int:
        return 10**self.length

    def candidate(self) -> str:
        return str(self.rng.randrange(self.code_space)).zfill(self.length)

    def allocate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            code = self.candidate()
            if self.store.find_by_code(code) is None:
                if attempt > 1:
                    logger.debug("Allocated game code %s after %d draws.", code, attempt)
                return code
        logger.warning("Gave up allocating a game code after %d draws.", self.max_attempts)
        raise CodeSpaceExhaustedError(self.max_attempts)
