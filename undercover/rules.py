"""Game rules and constants for Undercover."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Player roles. Each role is its own faction for win detection."""

    PRIMARY = "primary"
    DECOY = "decoy"
    WORDLESS = "wordless"


class LobbyStatus(str, Enum):
    """Lobby lifecycle status."""

    WAITING = "waiting"
    STARTED = "started"
    PENDING_GUESS = "pending_guess"
    FINISHED = "finished"


# Statuses in which eliminations are legal
ACTIVE_STATUSES = (LobbyStatus.STARTED, LobbyStatus.PENDING_GUESS)

# Role order used when building the role multiset from settings
ROLE_ORDER = (Role.PRIMARY, Role.DECOY, Role.WORDLESS)

# Lobby codes: 32 symbols, no I, O, 0 or 1
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 5

# Host reclaim secret range (inclusive)
HOST_SECRET_MIN = 1000
HOST_SECRET_MAX = 9999

DEFAULT_HOST_NAME = "Host"
DEFAULT_PLAYER_NAME = "Player"


@dataclass(frozen=True)
class Vocabulary:
    """Display names for the three roles and their winning factions."""

    key: str
    primary: str
    decoy: str
    wordless: str
    primary_faction: str
    decoy_faction: str
    wordless_faction: str

    def role_label(self, role: Role | None) -> str | None:
        if role is None:
            return None
        return getattr(self, role.value)

    def faction_label(self, role: Role | None) -> str | None:
        if role is None:
            return None
        return getattr(self, f"{role.value}_faction")


CLASSIC = Vocabulary(
    key="classic",
    primary="civilian",
    decoy="undercover",
    wordless="mrwhite",
    primary_faction="civilians",
    decoy_faction="undercovers",
    wordless_faction="mrwhite",
)

ALT = Vocabulary(
    key="alt",
    primary="legit",
    decoy="clone",
    wordless="blind",
    primary_faction="legits",
    decoy_faction="clones",
    wordless_faction="blind",
)

VOCABULARIES = {v.key: v for v in (CLASSIC, ALT)}
