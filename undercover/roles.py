"""Role assignment: build the role multiset from settings, shuffle, zip onto players."""

import random
from dataclasses import replace
from typing import Optional

from undercover.rules import ROLE_ORDER, Role
from undercover.state import Player, RoleCounts
from undercover.words import WordPair


def build_roles(settings: RoleCounts) -> list[Role]:
    """Role multiset in fixed order (primary, decoy, wordless)."""
    roles: list[Role] = []
    for role in ROLE_ORDER:
        roles.extend([role] * settings.count(role))
    return roles


def word_for_role(role: Role, pair: WordPair) -> Optional[str]:
    if role == Role.PRIMARY:
        return pair.primary
    if role == Role.DECOY:
        return pair.decoy
    return None


def assign_roles(
    players: list[Player],
    settings: RoleCounts,
    pair: WordPair,
    rng: Optional[random.Random] = None,
) -> list[Player]:
    """
    Shuffle the role multiset and give role[i] (and its word) to players[i].
    Players keep their join order; only the roles are shuffled.
    """
    roles = build_roles(settings)
    if len(roles) != len(players):
        raise ValueError("players and settings total must have same length")
    rng = rng or random.Random()
    rng.shuffle(roles)  # in-place Fisher-Yates
    return [
        replace(p, role=role, word=word_for_role(role, pair), is_eliminated=False)
        for p, role in zip(players, roles)
    ]
