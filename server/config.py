"""Environment-driven server settings."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping, Self

from duel.codes import DEFAULT_MAX_ATTEMPTS
from duel.liveness import DEFAULT_TIMEOUT_MS
from duel.session import NICKNAME_MAX_LENGTH

STORE_MEMORY = "memory"
STORE_JSON = "json"
SUPPORTED_STORES = {STORE_MEMORY, STORE_JSON}


def _int_setting(env: Mapping[str, str], name: str, default: int, *, minimum: int = 1) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer; received {raw!r}.") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}; received {value}.")
    return value


def _float_setting(env: Mapping[str, str], name: str) -> float | None:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number; received {raw!r}.") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive; received {value}.")
    return value


@dataclass(frozen=True)
class Settings:
    """Server configuration, read once at startup."""

    host: str = "0.0.0.0"
    port: int = 8080
    store: str = STORE_MEMORY
    store_path: Path = Path("server/data/sessions.json")
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    nickname_max_length: int = NICKNAME_MAX_LENGTH
    code_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    sweep_interval_s: float | None = None
    allowed_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Self:
        env = os.environ if env is None else env
        store = env.get("DUEL_STORE", STORE_MEMORY).strip().lower()
        if store not in SUPPORTED_STORES:
            raise ValueError(f"DUEL_STORE must be one of {sorted(SUPPORTED_STORES)}; received {store!r}.")
        origins = tuple(origin.strip() for origin in env.get("ALLOWED_ORIGINS", "*").split(",") if origin.strip())
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=_int_setting(env, "PORT", 8080),
            store=store,
            store_path=Path(env.get("DUEL_STORE_PATH", "server/data/sessions.json")),
            timeout_ms=_int_setting(env, "DUEL_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            nickname_max_length=_int_setting(env, "DUEL_NICKNAME_MAX", NICKNAME_MAX_LENGTH),
            code_max_attempts=_int_setting(env, "DUEL_CODE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            sweep_interval_s=_float_setting(env, "DUEL_SWEEP_INTERVAL_S"),
            allowed_origins=origins or ("*",),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
