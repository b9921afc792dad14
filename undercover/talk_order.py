"""Speaking order over living players."""

import random
from dataclasses import replace
from typing import Optional

from undercover.state import Player


def shuffle_talk_order(players: list[Player], rng: Optional[random.Random] = None) -> list[Player]:
    """Give every alive player a random 1-based rank; eliminated players get None."""
    rng = rng or random.Random()
    alive_ids = [p.id for p in players if not p.is_eliminated]
    rng.shuffle(alive_ids)
    rank = {pid: i + 1 for i, pid in enumerate(alive_ids)}
    return [replace(p, talk_order=rank.get(p.id)) for p in players]


def rerank_talk_order(players: list[Player]) -> list[Player]:
    """
    Close the gaps left by eliminations: alive players are re-ranked 1..N
    keeping their relative order by previous talk_order (join order breaks ties).
    """
    alive = [(i, p) for i, p in enumerate(players) if not p.is_eliminated]
    alive.sort(key=lambda item: (item[1].talk_order is None, item[1].talk_order or 0, item[0]))
    rank = {p.id: n + 1 for n, (_, p) in enumerate(alive)}
    return [replace(p, talk_order=rank.get(p.id)) for p in players]


def speaking_order(players: list[Player]) -> list[Player]:
    """Alive players sorted by talk_order."""
    alive = [p for p in players if not p.is_eliminated and p.talk_order is not None]
    return sorted(alive, key=lambda p: p.talk_order)
