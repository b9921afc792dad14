"""Lobby state types for Undercover."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from undercover.rules import LobbyStatus, Role


@dataclass(frozen=True)
class RoleCounts:
    """How many of each role to deal out at start."""

    primary: int = 0
    decoy: int = 0
    wordless: int = 0

    @property
    def total(self) -> int:
        return self.primary + self.decoy + self.wordless

    def count(self, role: Role) -> int:
        return getattr(self, role.value)


@dataclass(frozen=True)
class Player:
    """A player in a lobby."""

    id: str
    name: str
    is_host: bool = False  # original creator (or secret reclaimer) at join time
    is_eliminated: bool = False
    role: Optional[Role] = None
    word: Optional[str] = None
    last_seen: float = 0.0
    talk_order: Optional[int] = None  # 1-based rank among alive players


@dataclass
class Lobby:
    """One game session. Insertion order of players is join order."""

    code: str
    host_id: str
    host_secret: str
    players: list[Player] = field(default_factory=list)
    settings: RoleCounts = field(default_factory=RoleCounts)
    status: LobbyStatus = LobbyStatus.WAITING
    winner: Optional[Role] = None
    primary_word: Optional[str] = None
    decoy_word: Optional[str] = None
    pending_guesser_id: Optional[str] = None
    used_word_indices: list[int] = field(default_factory=list)
    created_at: float = 0.0
    version: int = 0

    def get_player(self, player_id: str) -> Optional[Player]:
        """Return player by id or None."""
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def get_alive_players(self) -> list[Player]:
        """Return list of players not eliminated."""
        return [p for p in self.players if not p.is_eliminated]

    def is_current_host(self, player_id: str) -> bool:
        """True if player_id holds host privileges now (the is_host flag is historical)."""
        return self.host_id == player_id

    def replace_player(self, player: Player) -> None:
        """Swap in an updated copy of a player, keeping position (mutates self)."""
        self.players = [player if p.id == player.id else p for p in self.players]

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        doc = asdict(self)
        doc["status"] = self.status.value
        doc["winner"] = self.winner.value if self.winner else None
        for p in doc["players"]:
            if p["role"] is not None:
                p["role"] = Role(p["role"]).value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Lobby":
        """Rebuild a Lobby from to_document() output."""
        players = [
            Player(**{**p, "role": Role(p["role"]) if p.get("role") else None})
            for p in doc.get("players", [])
        ]
        return cls(
            code=doc["code"],
            host_id=doc["host_id"],
            host_secret=doc["host_secret"],
            players=players,
            settings=RoleCounts(**doc.get("settings", {})),
            status=LobbyStatus(doc.get("status", LobbyStatus.WAITING.value)),
            winner=Role(doc["winner"]) if doc.get("winner") else None,
            primary_word=doc.get("primary_word"),
            decoy_word=doc.get("decoy_word"),
            pending_guesser_id=doc.get("pending_guesser_id"),
            used_word_indices=list(doc.get("used_word_indices", [])),
            created_at=doc.get("created_at", 0.0),
            version=doc.get("version", 0),
        )
