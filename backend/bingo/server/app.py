from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from bingo.logic.enums import ErrorCode
from bingo.logic.exceptions import AuthorizationError, BingoError, StateConflictError
from bingo.logic.exceptions import ValidationError as InvalidInputError
from bingo.logic.game import GameSession
from bingo.messaging.router import MessageRouter
from bingo.server.settings import BingoServerSettings
from bingo.server.types import LoginRequest, TermRequest
from bingo.server.websocket import websocket_endpoint
from bingo.session.manager import SessionManager
from shared.auth.operator_token import check_operator_password, issue_operator_token, verify_operator_token
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from bingo.logic.game import GameStateView

_MAX_REQUEST_BODY_SIZE = 4096
_BEARER_PREFIX = "Bearer "

T = TypeVar("T", bound=BaseModel)


def _error_response(error: BingoError) -> JSONResponse:
    if isinstance(error, AuthorizationError):
        status_code = 401
    elif isinstance(error, StateConflictError):
        status_code = 409
    else:
        status_code = 400
    return JSONResponse({"error": error.message, "code": error.code.value}, status_code=status_code)


def _state_response(view: GameStateView, status_code: int = 200) -> JSONResponse:
    return JSONResponse(view.model_dump(mode="json"), status_code=status_code)


async def _parse_body(request: Request, model: type[T]) -> T | JSONResponse:
    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)
        body = json.loads(raw_body)
        return model(**body)
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        return JSONResponse({"error": "Invalid request body"}, status_code=400)


def _require_operator(request: Request) -> None:
    settings: BingoServerSettings = request.app.state.settings
    header = request.headers.get("authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        raise AuthorizationError("Missing operator token")
    token = verify_operator_token(
        header.removeprefix(_BEARER_PREFIX).strip(),
        settings.operator_password,
        max_ttl_seconds=settings.operator_token_ttl_seconds,
    )
    if token is None:
        raise AuthorizationError("Invalid or expired operator token")


def _operator_route(
    handler: Callable[[Request], Awaitable[JSONResponse]],
) -> Callable[[Request], Awaitable[JSONResponse]]:
    """Wrap an operator handler with token verification and BingoError mapping."""

    async def wrapped(request: Request) -> JSONResponse:
        try:
            _require_operator(request)
            return await handler(request)
        except BingoError as e:
            logger.info("operator request rejected", path=request.url.path, code=e.code, reason=e.message)
            return _error_response(e)

    return wrapped


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def game_state(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return _state_response(await session_manager.snapshot())


async def leaderboard(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    entries = await session_manager.leaderboard()
    return JSONResponse({"leaderboard": [entry.model_dump(mode="json") for entry in entries]})


async def login(request: Request) -> JSONResponse:
    settings: BingoServerSettings = request.app.state.settings
    parsed = await _parse_body(request, LoginRequest)
    if isinstance(parsed, JSONResponse):
        return parsed
    if not check_operator_password(parsed.password, settings.operator_password):
        logger.warning("operator login failed")
        return _error_response(AuthorizationError("Invalid password"))
    token = issue_operator_token(settings.operator_password, settings.operator_token_ttl_seconds)
    logger.info("operator logged in")
    return JSONResponse({"token": token, "expires_in": settings.operator_token_ttl_seconds})


async def list_terms(request: Request) -> JSONResponse:
    return await game_state(request)


async def add_term(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    parsed = await _parse_body(request, TermRequest)
    if isinstance(parsed, JSONResponse):
        return parsed
    return _state_response(await session_manager.add_term(parsed.term), status_code=201)


async def remove_term(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    raw_index: str = request.path_params["index"]
    try:
        index = int(raw_index)
    except ValueError:
        raise InvalidInputError(f"Invalid term index: {raw_index}", code=ErrorCode.INVALID_INDEX) from None
    return _state_response(await session_manager.remove_term(index))


async def announce(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    parsed = await _parse_body(request, TermRequest)
    if isinstance(parsed, JSONResponse):
        return parsed
    return _state_response(await session_manager.announce(parsed.term))


async def unannounce(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    parsed = await _parse_body(request, TermRequest)
    if isinstance(parsed, JSONResponse):
        return parsed
    return _state_response(await session_manager.unannounce(parsed.term))


async def reset(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return _state_response(await session_manager.reset())


def create_app(
    settings: BingoServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = BingoServerSettings()  # ty: ignore[missing-argument]

    if session_manager is None:
        game = GameSession(settings.game_settings(), terms=settings.initial_terms)
        session_manager = SessionManager(game)

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/game-state", game_state, methods=["GET"]),
        Route("/api/leaderboard", leaderboard, methods=["GET"]),
        Route("/api/admin/login", login, methods=["POST"]),
        Route("/api/admin/terms", _operator_route(list_terms), methods=["GET"]),
        Route("/api/admin/terms", _operator_route(add_term), methods=["POST"]),
        Route("/api/admin/terms/{index}", _operator_route(remove_term), methods=["DELETE"]),
        Route("/api/admin/announce", _operator_route(announce), methods=["POST"]),
        Route("/api/admin/unannounce", _operator_route(unannounce), methods=["POST"]),
        Route("/api/admin/reset", _operator_route(reset), methods=["POST"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        session_manager.cancel_all_pending_reverts()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("bingo server ready", terms=len(settings.initial_terms))
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = BingoServerSettings()  # ty: ignore[missing-argument]
    setup_logging(_settings.log_dir)
    return create_app(settings=_settings)
