"""Lobby and game-state engine for Undercover."""

from undercover.engine import (
    alive_factions,
    check_auto_win,
    eliminate_player,
    reset_round,
    start_round,
    submit_guess,
)
from undercover.errors import LobbyError
from undercover.lobby import (
    CreateResult,
    EliminationResult,
    JoinResult,
    LobbyManager,
    PlayerState,
)
from undercover.rules import LobbyStatus, Role
from undercover.state import Lobby, Player, RoleCounts
from undercover.store import InMemoryLobbyStore, LobbyStore

__all__ = [
    "alive_factions",
    "check_auto_win",
    "eliminate_player",
    "reset_round",
    "start_round",
    "submit_guess",
    "LobbyError",
    "CreateResult",
    "EliminationResult",
    "JoinResult",
    "LobbyManager",
    "PlayerState",
    "LobbyStatus",
    "Role",
    "Lobby",
    "Player",
    "RoleCounts",
    "InMemoryLobbyStore",
    "LobbyStore",
]
