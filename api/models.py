"""Pydantic request/response models for the API."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from undercover.lobby import PlayerState
from undercover.rules import LobbyStatus, Vocabulary
from undercover.state import Lobby, Player
from undercover.talk_order import speaking_order

MAX_PLAYER_NAME_LENGTH = 50


class RoleCountsBody(BaseModel):
    """
    Role counts. Accepts either naming scheme: civilians/undercovers/mr_whites
    or legits/clones/blinds. Values are coerced server-side; junk counts as 0.
    """

    model_config = ConfigDict(populate_by_name=True)

    primary: Any = Field(default=None, validation_alias=AliasChoices("primary", "civilians", "legits"))
    decoy: Any = Field(default=None, validation_alias=AliasChoices("decoy", "undercovers", "clones"))
    wordless: Any = Field(
        default=None,
        validation_alias=AliasChoices("wordless", "mr_whites", "mrWhites", "blinds"),
    )

    def counts(self) -> dict[str, Any]:
        return {"primary": self.primary, "decoy": self.decoy, "wordless": self.wordless}


class CreateLobbyRequest(RoleCountsBody):
    """Body for POST /lobbies."""

    host_name: str | None = Field(
        default=None,
        max_length=MAX_PLAYER_NAME_LENGTH,
        validation_alias=AliasChoices("host_name", "username"),
    )


class JoinLobbyRequest(BaseModel):
    """Body for POST /lobbies/{code}/join."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(
        default=None,
        max_length=MAX_PLAYER_NAME_LENGTH,
        validation_alias=AliasChoices("name", "username"),
    )
    host_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("host_secret", "host_code", "hostCode"),
        description="Lobby host code; makes the joiner the current host",
    )


class UpdateSettingsRequest(RoleCountsBody):
    host_id: str


class TargetRequest(BaseModel):
    """Host action on another player (kick or eliminate)."""

    host_id: str
    target_id: str


class ResetRequest(BaseModel):
    host_id: str


class GuessRequest(BaseModel):
    player_id: str
    guess: str


class RoleCountsPublic(BaseModel):
    primary: int
    decoy: int
    wordless: int
    total: int


class PlayerPublic(BaseModel):
    """Player as shown to everyone: role only revealed once out (or when the game is over)."""

    id: str
    name: str
    is_host: bool
    is_current_host: bool
    is_eliminated: bool
    talk_order: int | None = None
    role: str | None = None
    role_label: str | None = None


class LobbyPublic(BaseModel):
    """Public lobby state for GET /lobbies/{code}. Never carries the host secret or words."""

    code: str
    status: str
    host_id: str
    winner: str | None = Field(default=None, description="Winning faction when finished")
    winner_label: str | None = None
    pending_guesser_id: str | None = None
    settings: RoleCountsPublic
    players: list[PlayerPublic]
    speaking_order: list[str] = Field(default_factory=list, description="Alive player ids in turn order")


class CreateLobbyResponse(BaseModel):
    lobby_code: str
    player_id: str
    host_secret: str
    lobby: LobbyPublic


class JoinLobbyResponse(BaseModel):
    lobby_code: str
    player_id: str
    is_current_host: bool
    lobby: LobbyPublic


class PlayerPrivate(BaseModel):
    """A player's own view: includes their role and word."""

    id: str
    name: str
    role: str | None = None
    role_label: str | None = None
    word: str | None = None
    is_host: bool
    is_current_host: bool
    is_eliminated: bool
    talk_order: int | None = None


class PlayerStateResponse(BaseModel):
    lobby_status: str
    winner: str | None = None
    winner_label: str | None = None
    player: PlayerPrivate


class EliminateResponse(BaseModel):
    guess_triggered: bool
    lobby: LobbyPublic


def _player_public(lobby: Lobby, p: Player, vocab: Vocabulary) -> PlayerPublic:
    reveal = p.is_eliminated or lobby.status == LobbyStatus.FINISHED
    role = p.role if reveal else None
    return PlayerPublic(
        id=p.id,
        name=p.name,
        is_host=p.is_host,
        is_current_host=lobby.is_current_host(p.id),
        is_eliminated=p.is_eliminated,
        talk_order=p.talk_order if lobby.status != LobbyStatus.WAITING else None,
        role=role.value if role else None,
        role_label=vocab.role_label(role),
    )


def lobby_to_public(lobby: Lobby, vocab: Vocabulary) -> LobbyPublic:
    """Build public response from Lobby; hides roles of alive players until the game ends."""
    in_round = lobby.status != LobbyStatus.WAITING
    return LobbyPublic(
        code=lobby.code,
        status=lobby.status.value,
        host_id=lobby.host_id,
        winner=lobby.winner.value if lobby.winner else None,
        winner_label=vocab.faction_label(lobby.winner),
        pending_guesser_id=lobby.pending_guesser_id,
        settings=RoleCountsPublic(
            primary=lobby.settings.primary,
            decoy=lobby.settings.decoy,
            wordless=lobby.settings.wordless,
            total=lobby.settings.total,
        ),
        players=[_player_public(lobby, p, vocab) for p in lobby.players],
        speaking_order=[p.id for p in speaking_order(lobby.players)] if in_round else [],
    )


def player_state_to_response(state: PlayerState, vocab: Vocabulary) -> PlayerStateResponse:
    p = state.player
    return PlayerStateResponse(
        lobby_status=state.lobby_status.value,
        winner=state.winner.value if state.winner else None,
        winner_label=vocab.faction_label(state.winner),
        player=PlayerPrivate(
            id=p.id,
            name=p.name,
            role=p.role.value if p.role else None,
            role_label=vocab.role_label(p.role),
            word=p.word,
            is_host=p.is_host,
            is_current_host=state.is_current_host,
            is_eliminated=p.is_eliminated,
            talk_order=p.talk_order if state.lobby_status != LobbyStatus.WAITING else None,
        ),
    )
