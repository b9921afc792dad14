"""Tests for the lobby lifecycle manager."""

import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from undercover.config import Settings
from undercover.errors import (
    CatalogExhausted,
    ConcurrencyConflict,
    Forbidden,
    GuessNotApplicable,
    InvalidPhase,
    LobbyNotFound,
    LobbyNotJoinable,
    PlayerCountMismatch,
    PlayerNotFound,
    StorageError,
    ValidationFailed,
)
from undercover.lobby import LobbyManager, coerce_role_counts
from undercover.rules import CODE_ALPHABET, LobbyStatus, Role
from undercover.state import RoleCounts
from undercover.store import InMemoryLobbyStore
from undercover.words import WordPair


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FlakyStore(InMemoryLobbyStore):
    """Rejects the first `failures` compare-and-swap calls."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    def compare_and_swap(self, lobby, expected_version):
        if self.failures > 0:
            self.failures -= 1
            return False
        return super().compare_and_swap(lobby, expected_version)


class BrokenStore(InMemoryLobbyStore):
    def get(self, code):
        raise ConnectionError("store unreachable")


def _make_manager(store=None, seed: int = 7, **kwargs) -> LobbyManager:
    return LobbyManager(
        store or InMemoryLobbyStore(),
        rng=random.Random(seed),
        clock=kwargs.pop("clock", FakeClock()),
        settings=kwargs.pop("settings", Settings()),
        **kwargs,
    )


def _make_lobby(manager: LobbyManager, counts: dict, n_players: int):
    """Create a lobby and fill it up to n_players. Returns (code, host_id, player ids)."""
    created = manager.create_lobby("Host", counts)
    code = created.lobby.code
    ids = [created.host_player.id]
    for i in range(n_players - 1):
        ids.append(manager.join_lobby(code, f"Player {i}").player.id)
    return code, created.host_player.id, ids


def _wordless_id(lobby):
    return next(p.id for p in lobby.players if p.role == Role.WORDLESS)


def _advance_to(manager: LobbyManager, status: LobbyStatus):
    code, host, _ = _make_lobby(manager, {"primary": 2, "decoy": 1, "wordless": 1}, 4)
    if status == LobbyStatus.WAITING:
        return code, host
    lobby = manager.start_game(code)
    if status == LobbyStatus.STARTED:
        return code, host
    wordless = _wordless_id(lobby)
    manager.eliminate(code, host, wordless)
    if status == LobbyStatus.PENDING_GUESS:
        return code, host
    manager.submit_guess(code, wordless, lobby.primary_word)
    return code, host


def test_create_lobby():
    manager = _make_manager()
    result = manager.create_lobby("  Alice ", {"primary": 2, "decoy": 1})
    lobby = result.lobby
    assert len(lobby.code) == 5
    assert all(c in CODE_ALPHABET for c in lobby.code)
    assert lobby.status == LobbyStatus.WAITING
    assert lobby.winner is None
    assert lobby.used_word_indices == []
    assert lobby.host_id == result.host_player.id
    assert result.host_player.name == "Alice"
    assert result.host_player.is_host
    assert not result.host_player.is_eliminated
    assert result.host_secret.isdigit() and 1000 <= int(result.host_secret) <= 9999
    assert manager.get_lobby(lobby.code.lower()).code == lobby.code


def test_create_lobby_default_name():
    result = _make_manager().create_lobby("   ", {"primary": 1})
    assert result.host_player.name == "Host"


@pytest.mark.parametrize("counts", [{}, {"primary": 0}, {"primary": -3, "decoy": "x"}, None])
def test_create_lobby_requires_roles(counts):
    with pytest.raises(ValidationFailed):
        _make_manager().create_lobby("Host", counts)


def test_create_lobby_code_collision_gives_up():
    manager = _make_manager(settings=Settings(code_max_attempts=3), code_factory=lambda: "AAAAA")
    manager.create_lobby("Host", {"primary": 1})
    with pytest.raises(StorageError):
        manager.create_lobby("Host", {"primary": 1})


def test_coerce_role_counts():
    counts = coerce_role_counts({"primary": "3", "decoy": -2, "wordless": "abc"})
    assert counts == RoleCounts(primary=3, decoy=0, wordless=0)
    assert coerce_role_counts({"primary": 2.9, "decoy": None, "wordless": True}) == RoleCounts(primary=2)
    assert coerce_role_counts(RoleCounts(1, 2, 3)) == RoleCounts(1, 2, 3)


def test_join_lobby():
    manager = _make_manager()
    code, host, _ = _make_lobby(manager, {"primary": 2}, 1)
    result = manager.join_lobby(code.lower(), "Bob")
    assert result.player.name == "Bob"
    assert not result.player.is_host
    assert [p.id for p in result.lobby.players] == [host, result.player.id]
    assert result.lobby.host_id == host


def test_join_unknown_lobby():
    with pytest.raises(LobbyNotFound):
        _make_manager().join_lobby("ZZZZZ", "Bob")


def test_join_started_lobby():
    manager = _make_manager()
    code, _ = _advance_to(manager, LobbyStatus.STARTED)
    with pytest.raises(LobbyNotJoinable):
        manager.join_lobby(code, "Late")


def test_join_with_host_secret_takes_over_host():
    manager = _make_manager()
    created = manager.create_lobby("Host", {"primary": 3})
    code = created.lobby.code
    first = manager.join_lobby(code, "A", created.host_secret)
    assert first.lobby.host_id == first.player.id
    second = manager.join_lobby(code, "B", created.host_secret)
    lobby = second.lobby
    assert lobby.host_id == second.player.id
    # the original creator keeps the historical flag but loses authority
    original = lobby.get_player(created.host_player.id)
    assert original.is_host
    assert not lobby.is_current_host(original.id)
    with pytest.raises(Forbidden):
        manager.update_settings(code, created.host_player.id, {"primary": 3})


def test_join_with_wrong_secret_is_plain_join():
    manager = _make_manager()
    created = manager.create_lobby("Host", {"primary": 2})
    result = manager.join_lobby(created.lobby.code, "A", "0000")
    assert result.lobby.host_id == created.host_player.id
    assert not result.player.is_host


def test_kick_from_lobby():
    manager = _make_manager()
    code, host, ids = _make_lobby(manager, {"primary": 3}, 3)
    lobby = manager.kick_from_lobby(code, host, ids[1])
    assert [p.id for p in lobby.players] == [ids[0], ids[2]]
    with pytest.raises(Forbidden):
        manager.kick_from_lobby(code, ids[2], host)
    with pytest.raises(PlayerNotFound):
        manager.kick_from_lobby(code, host, ids[1])
    with pytest.raises(ValidationFailed):
        manager.kick_from_lobby(code, host, host)


@pytest.mark.parametrize(
    "status", [LobbyStatus.STARTED, LobbyStatus.PENDING_GUESS, LobbyStatus.FINISHED]
)
def test_kick_and_settings_invalid_outside_waiting(status):
    manager = _make_manager()
    code, host = _advance_to(manager, status)
    lobby = manager.get_lobby(code)
    assert lobby.status == status
    target = next(p.id for p in lobby.players if p.id != host)
    with pytest.raises(InvalidPhase):
        manager.kick_from_lobby(code, host, target)
    with pytest.raises(InvalidPhase):
        manager.update_settings(code, host, {"primary": 4})
    assert manager.get_lobby(code).version == lobby.version


def test_update_settings():
    manager = _make_manager()
    code, host, ids = _make_lobby(manager, {"primary": 1}, 2)
    lobby = manager.update_settings(code, host, {"primary": "1", "decoy": 1.0, "wordless": "junk"})
    assert lobby.settings == RoleCounts(primary=1, decoy=1, wordless=0)
    with pytest.raises(Forbidden):
        manager.update_settings(code, ids[1], {"primary": 2})


@pytest.mark.parametrize(
    "counts,n_players",
    [
        ({"primary": 2, "decoy": 1, "wordless": 1}, 3),
        ({"primary": 2, "decoy": 1, "wordless": 1}, 5),
        ({"primary": 0}, 1),
        ({"primary": 1, "decoy": 1}, 1),
    ],
)
def test_start_game_player_count_mismatch(counts, n_players):
    manager = _make_manager()
    code, host, _ = _make_lobby(manager, {"primary": 1}, n_players)
    manager.update_settings(code, host, counts)
    before = manager.get_lobby(code)
    with pytest.raises(PlayerCountMismatch):
        manager.start_game(code)
    after = manager.get_lobby(code)
    assert after.status == LobbyStatus.WAITING
    assert after.version == before.version


def test_start_game_unknown_lobby():
    with pytest.raises(LobbyNotFound):
        _make_manager().start_game("NOPE2")


def test_start_game_twice_is_noop():
    manager = _make_manager()
    code, _ = _advance_to(manager, LobbyStatus.STARTED)
    first = manager.get_lobby(code)
    second = manager.start_game(code)
    assert second.version == first.version
    assert second.used_word_indices == first.used_word_indices
    assert [p.role for p in second.players] == [p.role for p in first.players]


def test_full_round_scenario():
    manager = _make_manager()
    code, host, _ = _make_lobby(manager, {"primary": 2, "decoy": 1, "wordless": 1}, 4)
    lobby = manager.start_game(code)
    words = [p.word for p in lobby.players]
    assert words.count(lobby.primary_word) == 2
    assert words.count(lobby.decoy_word) == 1
    assert words.count(None) == 1

    wordless = _wordless_id(lobby)
    result = manager.eliminate(code, host, wordless)
    assert result.guess_triggered
    assert result.lobby.status == LobbyStatus.PENDING_GUESS
    assert result.lobby.pending_guesser_id == wordless

    final = manager.submit_guess(code, wordless, f"  {lobby.primary_word.upper()}  ")
    assert final.status == LobbyStatus.FINISHED
    assert final.winner == Role.WORDLESS


def test_wrong_guess_scenario():
    manager = _make_manager()
    code, host, _ = _make_lobby(manager, {"primary": 2, "decoy": 1, "wordless": 1}, 4)
    lobby = manager.start_game(code)
    wordless = _wordless_id(lobby)
    manager.eliminate(code, host, wordless)
    after = manager.submit_guess(code, wordless, "definitely not it")
    assert after.status == LobbyStatus.STARTED
    assert after.get_player(wordless).is_eliminated
    with pytest.raises(GuessNotApplicable):
        manager.submit_guess(code, wordless, "again")


def test_eliminate_twice_changes_nothing():
    manager = _make_manager()
    code, host, _ = _make_lobby(manager, {"primary": 3, "decoy": 2}, 5)
    lobby = manager.start_game(code)
    target = next(p.id for p in lobby.players if p.role == Role.PRIMARY)
    first = manager.eliminate(code, host, target)
    second = manager.eliminate(code, host, target)
    assert not second.guess_triggered
    assert second.lobby.version == first.lobby.version


def test_reset_then_start_round_trip():
    manager = _make_manager()
    code, host, ids = _make_lobby(manager, {"primary": 2, "decoy": 1}, 3)
    lobby = manager.start_game(code)
    decoy = next(p.id for p in lobby.players if p.role == Role.DECOY)
    finished = manager.eliminate(code, host, decoy).lobby
    assert finished.winner == Role.PRIMARY

    with pytest.raises(Forbidden):
        manager.reset_lobby(code, ids[1])
    reset = manager.reset_lobby(code, host)
    assert reset.status == LobbyStatus.WAITING
    assert reset.used_word_indices == lobby.used_word_indices
    assert all(p.role is None and not p.is_eliminated for p in reset.players)

    again = manager.start_game(code)
    assert again.status == LobbyStatus.STARTED
    assert all(not p.is_eliminated for p in again.players)
    assert all(p.role is not None for p in again.players)
    assert len(again.used_word_indices) == 2
    assert again.used_word_indices[0] != again.used_word_indices[1]


def test_catalog_exhausted_through_manager():
    manager = _make_manager(word_pairs=(WordPair("Sun", "Moon"),))
    code, host, _ = _make_lobby(manager, {"primary": 1, "decoy": 1}, 2)
    manager.start_game(code)
    manager.reset_lobby(code, host)
    with pytest.raises(CatalogExhausted):
        manager.start_game(code)
    assert manager.get_lobby(code).status == LobbyStatus.WAITING


def test_get_player_state_refreshes_heartbeat():
    clock = FakeClock(100.0)
    manager = _make_manager(clock=clock)
    code, host, ids = _make_lobby(manager, {"primary": 2}, 2)
    clock.now = 150.0
    state = manager.get_player_state(code, ids[1])
    assert state.lobby_status == LobbyStatus.WAITING
    assert state.winner is None
    assert not state.is_current_host
    assert manager.get_lobby(code).get_player(ids[1]).last_seen == 150.0
    with pytest.raises(PlayerNotFound):
        manager.get_player_state(code, "ghost")


def test_prune_inactive_players():
    clock = FakeClock(0.0)
    manager = _make_manager(clock=clock, settings=Settings(presence_timeout_sec=10))
    code, host, ids = _make_lobby(manager, {"primary": 3}, 3)
    clock.now = 8.0
    manager.heartbeat(code, ids[1])
    clock.now = 15.0
    removed = manager.prune_inactive(code)
    assert [p.id for p in removed] == [ids[2]]
    remaining = [p.id for p in manager.get_lobby(code).players]
    assert remaining == [host, ids[1]]


def test_prune_skipped_once_started():
    clock = FakeClock(0.0)
    manager = _make_manager(clock=clock, settings=Settings(presence_timeout_sec=10))
    code, _ = _advance_to(manager, LobbyStatus.STARTED)
    clock.now = 1000.0
    assert manager.prune_inactive(code) == []
    assert len(manager.get_lobby(code).players) == 4


def test_conflicting_write_is_retried():
    manager = _make_manager(store=FlakyStore(failures=0))
    code, host, _ = _make_lobby(manager, {"primary": 3}, 2)
    manager.store.failures = 2
    lobby = manager.join_lobby(code, "Retry").lobby
    assert len(lobby.players) == 3


def test_too_many_conflicts_raise():
    manager = _make_manager(store=FlakyStore(failures=0), settings=Settings(cas_max_retries=2))
    code, host, _ = _make_lobby(manager, {"primary": 3}, 1)
    manager.store.failures = 5
    with pytest.raises(ConcurrencyConflict):
        manager.update_settings(code, host, {"primary": 1})
    assert manager.get_lobby(code).settings == RoleCounts(primary=3)


def test_store_failure_is_storage_error():
    manager = _make_manager(store=BrokenStore())
    with pytest.raises(StorageError):
        manager.get_lobby("ABCDE")


def test_concurrent_joins_all_land():
    manager = _make_manager(settings=Settings(cas_max_retries=1000))
    code, _, _ = _make_lobby(manager, {"primary": 1}, 1)
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: manager.join_lobby(code, f"T{i}"), range(20)))
    lobby = manager.get_lobby(code)
    assert len(lobby.players) == 21
    assert lobby.version == 20
