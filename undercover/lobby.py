"""Lobby lifecycle: create, join, kick, settings, start, eliminate, guess, reset.

Each operation loads one lobby, applies a pure transition and writes it back
with compare-and-swap. A conflicting concurrent write makes the operation
re-read and re-apply; errors leave the stored lobby untouched.
"""

import copy
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

from undercover import engine, presence
from undercover.config import Settings, get_settings
from undercover.errors import (
    ConcurrencyConflict,
    InvalidPhase,
    LobbyNotFound,
    LobbyNotJoinable,
    PlayerNotFound,
    StorageError,
    ValidationFailed,
)
from undercover.ids import new_host_secret, new_lobby_code, new_player_id, normalize_code
from undercover.rules import DEFAULT_HOST_NAME, DEFAULT_PLAYER_NAME, LobbyStatus, Role
from undercover.state import Lobby, Player, RoleCounts
from undercover.store import LobbyStore
from undercover.words import WORD_PAIRS, WordPair

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CreateResult:
    lobby: Lobby
    host_player: Player
    host_secret: str


@dataclass
class JoinResult:
    lobby: Lobby
    player: Player


@dataclass
class EliminationResult:
    lobby: Lobby
    guess_triggered: bool


@dataclass
class PlayerState:
    lobby_status: LobbyStatus
    winner: Optional[Role]
    player: Player
    is_current_host: bool = False


def _coerce_count(value: Any) -> int:
    """Non-negative int; anything missing or unparseable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        n = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, n)


def coerce_role_counts(raw: RoleCounts | Mapping[str, Any] | None) -> RoleCounts:
    """Build RoleCounts from a RoleCounts or a mapping with primary/decoy/wordless keys."""
    if raw is None:
        return RoleCounts()
    if isinstance(raw, RoleCounts):
        raw = {"primary": raw.primary, "decoy": raw.decoy, "wordless": raw.wordless}
    return RoleCounts(
        primary=_coerce_count(raw.get("primary")),
        decoy=_coerce_count(raw.get("decoy")),
        wordless=_coerce_count(raw.get("wordless")),
    )


def _clean_name(name: Optional[str], default: str) -> str:
    cleaned = (name or "").strip() if isinstance(name, str) else ""
    return cleaned or default


class LobbyManager:
    """Entry point for every lobby operation."""

    def __init__(
        self,
        store: LobbyStore,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        settings: Optional[Settings] = None,
        code_factory: Callable[[], str] = new_lobby_code,
        word_pairs: Sequence[WordPair] = WORD_PAIRS,
    ):
        self.store = store
        self.rng = rng or random.SystemRandom()
        self.clock = clock
        self.settings = settings or get_settings()
        self.code_factory = code_factory
        self.word_pairs = word_pairs

    # ----------------------------
    # Storage helpers
    # ----------------------------
    def _load(self, code: str) -> Lobby:
        try:
            lobby = self.store.get(normalize_code(code))
        except OSError as exc:
            raise StorageError(f"Could not load lobby: {exc}") from exc
        if lobby is None:
            raise LobbyNotFound()
        return lobby

    def _save(self, lobby: Lobby, expected_version: int) -> bool:
        lobby.version = expected_version + 1
        try:
            return self.store.compare_and_swap(lobby, expected_version)
        except OSError as exc:
            raise StorageError(f"Could not save lobby: {exc}") from exc

    def _mutate(self, code: str, transition: Callable[[Lobby], tuple[Lobby, T]]) -> tuple[Lobby, T]:
        """Load, transform, compare-and-swap; retry on concurrent writes."""
        for attempt in range(1, self.settings.cas_max_retries + 1):
            current = self._load(code)
            new_lobby, extra = transition(current)
            if new_lobby is current:
                return current, extra
            if self._save(new_lobby, current.version):
                return new_lobby, extra
            logger.warning("Lobby %s changed concurrently, retrying (attempt %d)", current.code, attempt)
        logger.warning("Lobby %s: giving up after %d conflicting writes", normalize_code(code), self.settings.cas_max_retries)
        raise ConcurrencyConflict()

    # ----------------------------
    # Lobby lifecycle
    # ----------------------------
    def create_lobby(self, host_name: Optional[str], settings: RoleCounts | Mapping[str, Any] | None) -> CreateResult:
        counts = coerce_role_counts(settings)
        if counts.total <= 0:
            raise ValidationFailed("Total roles must be > 0.")
        now = self.clock()
        host = Player(
            id=new_player_id(),
            name=_clean_name(host_name, DEFAULT_HOST_NAME),
            is_host=True,
            last_seen=now,
        )
        host_secret = new_host_secret()
        for _ in range(self.settings.code_max_attempts):
            lobby = Lobby(
                code=self.code_factory(),
                host_id=host.id,
                host_secret=host_secret,
                players=[host],
                settings=counts,
                created_at=now,
            )
            try:
                inserted = self.store.insert(lobby)
            except OSError as exc:
                raise StorageError(f"Could not create lobby: {exc}") from exc
            if inserted:
                logger.info("Lobby %s created by %s (%d roles)", lobby.code, host.name, counts.total)
                return CreateResult(lobby=lobby, host_player=host, host_secret=host_secret)
        raise StorageError("Could not allocate a unique lobby code.")

    def join_lobby(self, code: str, name: Optional[str], host_secret: Optional[str] = None) -> JoinResult:
        """
        Add a player. Supplying the lobby's host secret makes the joiner the
        current host; several joiners with the secret each take over in turn.
        """
        now = self.clock()

        def transition(lobby: Lobby) -> tuple[Lobby, Player]:
            if lobby.status != LobbyStatus.WAITING:
                raise LobbyNotJoinable()
            reclaim = bool(host_secret) and host_secret == lobby.host_secret
            player = Player(
                id=new_player_id(),
                name=_clean_name(name, DEFAULT_PLAYER_NAME),
                is_host=reclaim,
                last_seen=now,
            )
            state = copy.deepcopy(lobby)
            state.players.append(player)
            if reclaim:
                state.host_id = player.id
            return state, player

        lobby, player = self._mutate(code, transition)
        if lobby.host_id == player.id:
            logger.info("Lobby %s: host reclaimed by %s", lobby.code, player.name)
        return JoinResult(lobby=lobby, player=player)

    def get_lobby(self, code: str) -> Lobby:
        return self._load(code)

    def get_player_state(self, code: str, player_id: str) -> PlayerState:
        """The caller's own view. Also counts as a heartbeat."""
        lobby = self.heartbeat(code, player_id)
        player = lobby.get_player(player_id)
        if player is None:
            raise PlayerNotFound()
        return PlayerState(
            lobby_status=lobby.status,
            winner=lobby.winner,
            player=player,
            is_current_host=lobby.is_current_host(player_id),
        )

    def kick_from_lobby(self, code: str, host_id: str, target_id: str) -> Lobby:
        """Remove a player entirely before the game starts."""

        def transition(lobby: Lobby) -> tuple[Lobby, None]:
            engine.require_host(lobby, host_id)
            if lobby.status != LobbyStatus.WAITING:
                raise InvalidPhase("Players can only be removed while waiting.")
            if lobby.get_player(target_id) is None:
                raise PlayerNotFound()
            if target_id == lobby.host_id:
                raise ValidationFailed("The host cannot remove themselves.")
            state = copy.deepcopy(lobby)
            state.players = [p for p in state.players if p.id != target_id]
            return state, None

        lobby, _ = self._mutate(code, transition)
        return lobby

    def update_settings(self, code: str, host_id: str, settings: RoleCounts | Mapping[str, Any] | None) -> Lobby:
        counts = coerce_role_counts(settings)

        def transition(lobby: Lobby) -> tuple[Lobby, None]:
            engine.require_host(lobby, host_id)
            if lobby.status != LobbyStatus.WAITING:
                raise InvalidPhase("Settings can only be changed while waiting.")
            state = copy.deepcopy(lobby)
            state.settings = counts
            return state, None

        lobby, _ = self._mutate(code, transition)
        return lobby

    def start_game(self, code: str) -> Lobby:
        """Deal roles and words. A lobby that is not waiting is returned as is."""

        def transition(lobby: Lobby) -> tuple[Lobby, bool]:
            started = engine.start_round(lobby, rng=self.rng, pairs=self.word_pairs)
            return started, started is not lobby

        lobby, dealt = self._mutate(code, transition)
        if dealt:
            logger.info(
                "Lobby %s started with %d players (pair %d)",
                lobby.code,
                len(lobby.players),
                lobby.used_word_indices[-1],
            )
        return lobby

    def reset_lobby(self, code: str, host_id: str) -> Lobby:
        lobby, _ = self._mutate(code, lambda lb: (engine.reset_round(lb, host_id), None))
        logger.info("Lobby %s reset", lobby.code)
        return lobby

    # ----------------------------
    # Eliminations and guesses
    # ----------------------------
    def eliminate(self, code: str, host_id: str, target_id: str) -> EliminationResult:
        lobby, triggered = self._mutate(code, lambda lb: engine.eliminate_player(lb, host_id, target_id))
        self._log_outcome(lobby)
        return EliminationResult(lobby=lobby, guess_triggered=triggered)

    def submit_guess(self, code: str, player_id: str, guess: str) -> Lobby:
        lobby, _ = self._mutate(code, lambda lb: (engine.submit_guess(lb, player_id, guess), None))
        self._log_outcome(lobby)
        return lobby

    def _log_outcome(self, lobby: Lobby) -> None:
        if lobby.status == LobbyStatus.FINISHED:
            logger.info("Lobby %s finished, winner: %s", lobby.code, lobby.winner.value if lobby.winner else None)
        elif lobby.status == LobbyStatus.PENDING_GUESS:
            logger.info("Lobby %s waiting for a guess from %s", lobby.code, lobby.pending_guesser_id)

    # ----------------------------
    # Presence
    # ----------------------------
    def heartbeat(self, code: str, player_id: str) -> Lobby:
        """
        Best-effort last_seen update: a single write attempt, a conflicting
        write wins. Returns the lobby as written (or as read on conflict).
        """
        lobby = self._load(code)
        touched = presence.touch(lobby, player_id, self.clock())
        if self._save(touched, lobby.version):
            return touched
        logger.debug("Lobby %s: heartbeat for %s dropped", lobby.code, player_id)
        return lobby

    def prune_inactive(self, code: str) -> list[Player]:
        """Remove players whose heartbeat went stale (waiting lobbies only)."""
        now = self.clock()
        timeout = self.settings.presence_timeout_sec
        lobby, removed = self._mutate(code, lambda lb: presence.prune_inactive(lb, now, timeout))
        for p in removed:
            logger.warning("Lobby %s: pruned inactive player %s", lobby.code, p.name)
        return removed
