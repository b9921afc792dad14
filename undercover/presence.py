"""Heartbeats and pre-game pruning of players who went away."""

import copy
from dataclasses import replace

from undercover.errors import PlayerNotFound
from undercover.rules import LobbyStatus
from undercover.state import Lobby, Player


def touch(lobby: Lobby, player_id: str, now: float) -> Lobby:
    """Record a heartbeat for player_id. Returns new lobby."""
    player = lobby.get_player(player_id)
    if player is None:
        raise PlayerNotFound()
    state = copy.deepcopy(lobby)
    state.replace_player(replace(player, last_seen=now))
    return state


def inactive_players(lobby: Lobby, now: float, timeout_sec: float) -> list[Player]:
    """Players (never the current host) silent for longer than timeout_sec."""
    return [
        p
        for p in lobby.players
        if p.id != lobby.host_id and now - p.last_seen > timeout_sec
    ]


def prune_inactive(lobby: Lobby, now: float, timeout_sec: float) -> tuple[Lobby, list[Player]]:
    """
    Drop inactive players while the lobby is waiting; no-op once a round has started.
    Returns (new lobby, removed players).
    """
    if lobby.status != LobbyStatus.WAITING:
        return lobby, []
    removed = inactive_players(lobby, now, timeout_sec)
    if not removed:
        return lobby, []
    removed_ids = {p.id for p in removed}
    state = copy.deepcopy(lobby)
    state.players = [p for p in state.players if p.id not in removed_ids]
    return state, removed
