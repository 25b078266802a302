"""FastAPI server exposing the polled two-player session API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.convertors import Convertor, register_url_convertor
from starlette.exceptions import HTTPException as StarletteHTTPException

from duel import (
    CodeAllocator,
    CodeSpaceExhaustedError,
    DuelError,
    InMemorySessionStore,
    JsonFileSessionStore,
    LivenessPolicy,
    OpponentLeft,
    Outcome,
    Role,
    SessionManager,
    StaleSessionSweeper,
    StorageError,
)
from duel.store import SessionStore
from server.config import STORE_JSON, Settings
from server.schemas import SessionResponse

VERSION = "1.0.1"
CREATE_FAILED = "error:could_not_create_game"

logger = logging.getLogger(__name__)


class SegmentConvertor(Convertor[str]):
    """Path parameter that stops at the first comma, for ``/{a},{b}`` routes."""

    regex = "[^/,]+"

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        return str(value)


class RestConvertor(SegmentConvertor):
    """Trailing free-text parameter; may hold commas and decoded slashes."""

    regex = ".+"


register_url_convertor("segment", SegmentConvertor())
register_url_convertor("rest", RestConvertor())


def build_store(settings: Settings) -> SessionStore:
    if settings.store == STORE_JSON:
        return JsonFileSessionStore(settings.store_path)
    return InMemorySessionStore()


def build_manager(settings: Settings) -> SessionManager:
    """Wire a manager and its collaborators from settings."""
    store = build_store(settings)
    return SessionManager(
        store,
        allocator=CodeAllocator(store, max_attempts=settings.code_max_attempts),
        liveness=LivenessPolicy(timeout_ms=settings.timeout_ms),
        nickname_max_length=settings.nickname_max_length,
    )


def get_manager(request: Request) -> SessionManager:
    return request.app.state.manager


router = APIRouter()


def _http_error(exc: DuelError) -> HTTPException:
    logger.debug("Request failed: %s", exc.to_dict())
    return HTTPException(status_code=exc.status_code, detail=exc.code)


def _outcome_payload(outcome: Outcome) -> Any:
    if isinstance(outcome, OpponentLeft):
        return PlainTextResponse(OpponentLeft.SENTINEL)
    return outcome.session.to_dict()


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Hello, world!"


@router.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return Response(status_code=204)


@router.get("/version", response_class=PlainTextResponse)
def version() -> str:
    """Return the server version."""
    return VERSION


@router.post("/create/{nickname:rest}", status_code=201, response_model=SessionResponse)
def create_game(nickname: str, manager: SessionManager = Depends(get_manager)) -> dict[str, Any]:
    """Create a session hosted by ``nickname`` under a fresh 4-digit code."""
    try:
        session = manager.create_session(nickname)
    except CodeSpaceExhaustedError as exc:
        raise _http_error(exc) from exc
    except StorageError as exc:
        logger.error("Could not create game for host %r: %s", nickname, exc)
        raise HTTPException(status_code=500, detail=CREATE_FAILED) from exc
    return session.to_dict()


@router.get("/join/{game_id:segment},{nickname:rest}", response_model=SessionResponse)
def join_game(game_id: str, nickname: str, manager: SessionManager = Depends(get_manager)) -> dict[str, Any]:
    """Seat ``nickname`` as the guest of an existing session."""
    try:
        session = manager.join_session(game_id, nickname)
    except DuelError as exc:
        raise _http_error(exc) from exc
    return session.to_dict()


@router.post("/choice/{game_id:segment},{is_host:segment},{choice:rest}", response_model=SessionResponse)
def submit_choice(
    game_id: str,
    is_host: str,
    choice: str,
    manager: SessionManager = Depends(get_manager),
) -> dict[str, Any]:
    """Record a player's choice for the current round."""
    try:
        session = manager.submit_choice(game_id, Role.from_is_host_flag(is_host), choice)
    except DuelError as exc:
        raise _http_error(exc) from exc
    return session.to_dict()


@router.get(
    "/getState/{game_id:segment},{is_host}",
    response_model=None,
    responses={200: {"model": SessionResponse, "description": "Session, or the text `player_left`."}},
)
def get_state(game_id: str, is_host: str, manager: SessionManager = Depends(get_manager)) -> Any:
    """Poll the session; also evicts or reports an opponent that went silent."""
    try:
        outcome = manager.get_state(game_id, Role.from_is_host_flag(is_host))
    except DuelError as exc:
        raise _http_error(exc) from exc
    return _outcome_payload(outcome)


@router.post(
    "/playerStatus/{game_id:segment},{is_host:segment},{status}",
    response_model=None,
    responses={200: {"model": SessionResponse, "description": "Session, or the text `player_left`."}},
)
def player_status(
    game_id: str,
    is_host: str,
    status: str,
    manager: SessionManager = Depends(get_manager),
) -> Any:
    """Mark a player ready for the next round, or remove them with ``exit``."""
    try:
        outcome = manager.set_player_status(game_id, Role.from_is_host_flag(is_host), status)
    except DuelError as exc:
        raise _http_error(exc) from exc
    return _outcome_payload(outcome)


async def plain_text_http_error(_: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    """Send error details as bare text tokens, e.g. ``error:game_full``."""
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def create_app(manager: SessionManager | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        manager: Optional SessionManager (built from settings if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application whose lifespan opens and closes the manager's store
    """
    settings = settings or Settings.from_env()
    manager = manager or build_manager(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        manager.store.open()
        sweeper = None
        if settings.sweep_interval_s is not None:
            sweeper = StaleSessionSweeper(manager, settings.sweep_interval_s)
            sweeper.start()
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.stop()
            manager.store.close()

    app = FastAPI(title="Duel Session API", version=VERSION, lifespan=lifespan)
    app.state.manager = manager
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, plain_text_http_error)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from server.logging_config import get_logging_config

    app_settings = app.state.settings
    uvicorn.run(app, host=app_settings.host, port=app_settings.port, log_config=get_logging_config(app_settings.log_level))
