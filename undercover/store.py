"""Lobby storage. Replace InMemoryLobbyStore with a transactional store for multi-process use."""

from threading import RLock
from typing import Any, Optional, Protocol

from undercover.ids import normalize_code
from undercover.state import Lobby


class LobbyStore(Protocol):
    """One document per lobby code; writes are compare-and-swap on Lobby.version."""

    def get(self, code: str) -> Optional[Lobby]: ...

    def insert(self, lobby: Lobby) -> bool: ...

    def compare_and_swap(self, lobby: Lobby, expected_version: int) -> bool: ...

    def delete(self, code: str) -> None: ...

    def codes(self) -> list[str]: ...


class InMemoryLobbyStore:
    """Process-local store. Keeps serialized documents so callers never share objects."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._docs: dict[str, dict[str, Any]] = {}

    def get(self, code: str) -> Optional[Lobby]:
        with self._lock:
            doc = self._docs.get(normalize_code(code))
            return Lobby.from_document(doc) if doc is not None else None

    def insert(self, lobby: Lobby) -> bool:
        """Store a new lobby; False if the code is taken."""
        key = normalize_code(lobby.code)
        with self._lock:
            if key in self._docs:
                return False
            self._docs[key] = lobby.to_document()
            return True

    def compare_and_swap(self, lobby: Lobby, expected_version: int) -> bool:
        """Write lobby only if the stored version still equals expected_version."""
        key = normalize_code(lobby.code)
        with self._lock:
            current = self._docs.get(key)
            if current is None or current.get("version", 0) != expected_version:
                return False
            self._docs[key] = lobby.to_document()
            return True

    def delete(self, code: str) -> None:
        with self._lock:
            self._docs.pop(normalize_code(code), None)

    def codes(self) -> list[str]:
        with self._lock:
            return list(self._docs.keys())
