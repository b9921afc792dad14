"""FastAPI app: create, join, start, eliminate, guess, reset lobbies."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import (
    CreateLobbyRequest,
    CreateLobbyResponse,
    EliminateResponse,
    GuessRequest,
    JoinLobbyRequest,
    JoinLobbyResponse,
    LobbyPublic,
    PlayerStateResponse,
    ResetRequest,
    TargetRequest,
    UpdateSettingsRequest,
    lobby_to_public,
    player_state_to_response,
)
from undercover.config import get_settings
from undercover.errors import (
    CatalogExhausted,
    Forbidden,
    InvalidPhase,
    LobbyError,
    NotFound,
    PlayerCountMismatch,
    StorageError,
    ValidationFailed,
)
from undercover.lobby import LobbyManager
from undercover.rules import LobbyStatus
from undercover.store import InMemoryLobbyStore

settings = get_settings()
logging.basicConfig(level=settings.log_level_value, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

vocab = settings.vocab
manager = LobbyManager(InMemoryLobbyStore(), settings=settings)

app = FastAPI(title="Undercover API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = (
    (NotFound, 404),
    (Forbidden, 403),
    (InvalidPhase, 409),
    (ValidationFailed, 400),
    (PlayerCountMismatch, 400),
    (CatalogExhausted, 409),
    (StorageError, 503),
)


def _status_for(exc: LobbyError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 400


@app.exception_handler(LobbyError)
async def lobby_error_handler(request: Request, exc: LobbyError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content={"error": exc.code, "detail": exc.message})


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/lobbies", response_model=CreateLobbyResponse, tags=["Lobbies"], summary="Create lobby")
def create_lobby(body: CreateLobbyRequest):
    """Create a lobby; the caller becomes host. Returns the host reclaim code once."""
    result = manager.create_lobby(body.host_name, body.counts())
    return CreateLobbyResponse(
        lobby_code=result.lobby.code,
        player_id=result.host_player.id,
        host_secret=result.host_secret,
        lobby=lobby_to_public(result.lobby, vocab),
    )


@app.get("/lobbies/{code}", response_model=LobbyPublic, tags=["Lobbies"], summary="Get lobby")
def get_lobby(code: str):
    """Public lobby state. Players who stopped polling are dropped while waiting."""
    lobby = manager.get_lobby(code)
    if lobby.status == LobbyStatus.WAITING and manager.prune_inactive(code):
        lobby = manager.get_lobby(code)
    return lobby_to_public(lobby, vocab)


@app.post("/lobbies/{code}/join", response_model=JoinLobbyResponse, tags=["Lobbies"], summary="Join lobby")
def join_lobby(code: str, body: JoinLobbyRequest):
    result = manager.join_lobby(code, body.name, body.host_secret)
    return JoinLobbyResponse(
        lobby_code=result.lobby.code,
        player_id=result.player.id,
        is_current_host=result.lobby.is_current_host(result.player.id),
        lobby=lobby_to_public(result.lobby, vocab),
    )


@app.get(
    "/lobbies/{code}/players/{player_id}",
    response_model=PlayerStateResponse,
    tags=["Players"],
    summary="My state",
)
def get_player_state(code: str, player_id: str):
    """The player's own role and word. Also refreshes their heartbeat."""
    state = manager.get_player_state(code, player_id)
    return player_state_to_response(state, vocab)


@app.post("/lobbies/{code}/kick", response_model=LobbyPublic, tags=["Lobbies"], summary="Remove player")
def kick_from_lobby(code: str, body: TargetRequest):
    lobby = manager.kick_from_lobby(code, body.host_id, body.target_id)
    return lobby_to_public(lobby, vocab)


@app.put("/lobbies/{code}/settings", response_model=LobbyPublic, tags=["Lobbies"], summary="Update role counts")
def update_settings(code: str, body: UpdateSettingsRequest):
    lobby = manager.update_settings(code, body.host_id, body.counts())
    return lobby_to_public(lobby, vocab)


@app.post("/lobbies/{code}/start", response_model=LobbyPublic, tags=["Game"], summary="Start game")
def start_game(code: str):
    lobby = manager.start_game(code)
    return lobby_to_public(lobby, vocab)


@app.post("/lobbies/{code}/eliminate", response_model=EliminateResponse, tags=["Game"], summary="Eliminate player")
def eliminate(code: str, body: TargetRequest):
    result = manager.eliminate(code, body.host_id, body.target_id)
    return EliminateResponse(
        guess_triggered=result.guess_triggered,
        lobby=lobby_to_public(result.lobby, vocab),
    )


@app.post("/lobbies/{code}/guess", response_model=LobbyPublic, tags=["Game"], summary="Submit last guess")
def submit_guess(code: str, body: GuessRequest):
    lobby = manager.submit_guess(code, body.player_id, body.guess)
    return lobby_to_public(lobby, vocab)


@app.post("/lobbies/{code}/reset", response_model=LobbyPublic, tags=["Game"], summary="Reset lobby")
def reset_lobby(code: str, body: ResetRequest):
    lobby = manager.reset_lobby(code, body.host_id)
    return lobby_to_public(lobby, vocab)
