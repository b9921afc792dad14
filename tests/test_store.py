"""Tests for the in-memory lobby store and presence helpers."""

import json

from undercover import presence
from undercover.rules import LobbyStatus, Role
from undercover.state import Lobby, Player, RoleCounts
from undercover.store import InMemoryLobbyStore


def _make_lobby(code: str = "ABCDE") -> Lobby:
    return Lobby(
        code=code,
        host_id="h",
        host_secret="4832",
        players=[
            Player(id="h", name="Host", is_host=True, last_seen=0.0),
            Player(id="a", name="Ann", role=Role.DECOY, word="Dog", talk_order=2, last_seen=0.0),
        ],
        settings=RoleCounts(primary=1, decoy=1),
        status=LobbyStatus.STARTED,
        winner=None,
        primary_word="Cat",
        decoy_word="Dog",
        used_word_indices=[3],
    )


def test_document_is_json_and_rebuilds_lobby():
    lobby = _make_lobby()
    doc = lobby.to_document()
    restored = Lobby.from_document(json.loads(json.dumps(doc)))
    assert restored == lobby
    assert doc["status"] == "started"
    assert doc["players"][1]["role"] == "decoy"


def test_insert_get_and_isolation():
    store = InMemoryLobbyStore()
    lobby = _make_lobby()
    assert store.insert(lobby)
    assert not store.insert(_make_lobby())
    loaded = store.get("abcde")
    loaded.players.append(Player(id="x", name="X"))
    assert len(store.get("ABCDE").players) == 2
    assert store.get("ZZZZZ") is None
    assert store.codes() == ["ABCDE"]


def test_compare_and_swap():
    store = InMemoryLobbyStore()
    store.insert(_make_lobby())
    lobby = store.get("ABCDE")
    lobby.version = 1
    lobby.winner = Role.PRIMARY
    assert store.compare_and_swap(lobby, expected_version=0)
    stale = store.get("ABCDE")
    stale.version = 1
    assert not store.compare_and_swap(stale, expected_version=0)
    assert store.get("ABCDE").winner == Role.PRIMARY
    assert not store.compare_and_swap(_make_lobby("QQQQQ"), expected_version=0)


def test_delete():
    store = InMemoryLobbyStore()
    store.insert(_make_lobby())
    store.delete("abcde")
    assert store.get("ABCDE") is None


def test_presence_touch_and_prune():
    lobby = _make_lobby()
    lobby.status = LobbyStatus.WAITING
    touched = presence.touch(lobby, "a", 50.0)
    assert touched.get_player("a").last_seen == 50.0
    assert lobby.get_player("a").last_seen == 0.0

    same, removed = presence.prune_inactive(touched, now=60.0, timeout_sec=30)
    assert same is touched and removed == []
    pruned, removed = presence.prune_inactive(touched, now=100.0, timeout_sec=30)
    assert [p.id for p in removed] == ["a"]
    assert [p.id for p in pruned.players] == ["h"]
