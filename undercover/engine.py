"""Round engine: pure state transitions on a Lobby.

Every transition deep-copies its input and returns a new Lobby, so a raised
error never leaves a half-applied change behind.
"""

import copy
import random
from dataclasses import replace
from typing import Optional, Sequence

from undercover.errors import (
    Forbidden,
    GuessNotApplicable,
    InvalidPhase,
    PlayerCountMismatch,
    PlayerNotFound,
)
from undercover.roles import assign_roles
from undercover.rules import ACTIVE_STATUSES, ROLE_ORDER, LobbyStatus, Role
from undercover.state import Lobby, Player
from undercover.talk_order import rerank_talk_order, shuffle_talk_order
from undercover.words import WORD_PAIRS, WordPair, pick_unused_pair


def require_host(lobby: Lobby, player_id: str) -> None:
    """Raise Forbidden unless player_id is the current host."""
    if not lobby.is_current_host(player_id):
        raise Forbidden()


def normalize_guess(text: str) -> str:
    return (text or "").strip().lower()


def alive_factions(lobby: Lobby) -> list[Role]:
    """Roles with at least one alive player, in role order."""
    alive_roles = {p.role for p in lobby.get_alive_players()}
    return [r for r in ROLE_ORDER if r in alive_roles]


def _last_stand_guesser(lobby: Lobby) -> Optional[Player]:
    """The wordless player when exactly two players are alive and exactly one is wordless."""
    alive = lobby.get_alive_players()
    wordless = [p for p in alive if p.role == Role.WORDLESS]
    if len(alive) == 2 and len(wordless) == 1:
        return wordless[0]
    return None


def _open_guess(state: Lobby, guesser_id: str) -> None:
    state.status = LobbyStatus.PENDING_GUESS
    state.pending_guesser_id = guesser_id


def _apply_auto_win(state: Lobby) -> bool:
    """
    Finish the game if exactly one faction is alive (mutates state).
    A lone wordless player facing one opponent gets a last guess instead.
    Returns True when a guess was opened.

    When nobody is alive at all, status is left untouched.
    """
    guesser = _last_stand_guesser(state)
    if guesser is not None:
        _open_guess(state, guesser.id)
        return True
    factions = alive_factions(state)
    if len(factions) == 1:
        state.status = LobbyStatus.FINISHED
        state.winner = factions[0]
        state.pending_guesser_id = None
    return False


def check_auto_win(lobby: Lobby) -> tuple[Lobby, bool]:
    """Run the win check on a copy. Returns (new lobby, guess_triggered)."""
    state = copy.deepcopy(lobby)
    if state.status not in ACTIVE_STATUSES:
        return state, False
    triggered = _apply_auto_win(state)
    return state, triggered


def start_round(
    lobby: Lobby,
    rng: Optional[random.Random] = None,
    pairs: Sequence[WordPair] = WORD_PAIRS,
) -> Lobby:
    """
    Deal roles and words for a new round.
    Returns the lobby unchanged when it is not waiting (double submit).
    """
    if lobby.status != LobbyStatus.WAITING:
        return lobby
    total = lobby.settings.total
    if total != len(lobby.players):
        raise PlayerCountMismatch(len(lobby.players), total)

    rng = rng or random.Random()
    index, pair = pick_unused_pair(lobby.used_word_indices, rng=rng, pairs=pairs)

    state = copy.deepcopy(lobby)
    state.used_word_indices.append(index)
    players = assign_roles(state.players, state.settings, pair, rng=rng)
    state.players = shuffle_talk_order(players, rng=rng)
    state.status = LobbyStatus.STARTED
    state.primary_word = pair.primary
    state.decoy_word = pair.decoy
    state.winner = None
    state.pending_guesser_id = None
    return state


def reset_round(lobby: Lobby, host_id: str) -> Lobby:
    """
    Back to waiting with the same players. Used word pairs are kept so the
    lobby never replays a pair. talk_order is left stale until the next start.
    """
    require_host(lobby, host_id)
    state = copy.deepcopy(lobby)
    state.status = LobbyStatus.WAITING
    state.winner = None
    state.pending_guesser_id = None
    state.primary_word = None
    state.decoy_word = None
    state.players = [
        replace(p, role=None, word=None, is_eliminated=False) for p in state.players
    ]
    return state


def eliminate_player(lobby: Lobby, host_id: str, target_id: str) -> tuple[Lobby, bool]:
    """
    Eliminate target (host only, during a round). Returns (new lobby, guess_triggered).
    Eliminating an already eliminated player changes nothing.
    """
    require_host(lobby, host_id)
    if lobby.status not in ACTIVE_STATUSES:
        raise InvalidPhase(f"Cannot eliminate while lobby is {lobby.status.value}.")
    target = lobby.get_player(target_id)
    if target is None:
        raise PlayerNotFound()
    if target.is_eliminated:
        return lobby, False

    state = copy.deepcopy(lobby)
    # A wordless player left alone with one opponent keeps a last guess even if
    # the opponent is the one voted out.
    last_stand = _last_stand_guesser(state)

    state.replace_player(replace(target, is_eliminated=True))
    state.players = rerank_talk_order(state.players)

    if target.role == Role.WORDLESS:
        _open_guess(state, target.id)
        return state, True

    state.pending_guesser_id = None
    state.status = LobbyStatus.STARTED
    if last_stand is not None:
        _open_guess(state, last_stand.id)
        return state, True
    triggered = _apply_auto_win(state)
    return state, triggered


def submit_guess(lobby: Lobby, player_id: str, guess: str) -> Lobby:
    """
    The pending wordless player guesses the primary word.
    Right (case and surrounding whitespace ignored): wordless faction wins.
    Wrong: the guesser is out and play resumes.
    """
    if lobby.status != LobbyStatus.PENDING_GUESS or lobby.pending_guesser_id != player_id:
        raise GuessNotApplicable()

    state = copy.deepcopy(lobby)
    state.pending_guesser_id = None
    if normalize_guess(guess) == normalize_guess(state.primary_word or ""):
        state.status = LobbyStatus.FINISHED
        state.winner = Role.WORDLESS
        return state

    guesser = state.get_player(player_id)
    if guesser is not None and not guesser.is_eliminated:
        state.replace_player(replace(guesser, is_eliminated=True))
    state.status = LobbyStatus.STARTED
    state.players = rerank_talk_order(state.players)
    _apply_auto_win(state)
    return state
