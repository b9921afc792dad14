"""Word-pair catalog: the primary word and its look-alike decoy."""

import random
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from undercover.errors import CatalogExhausted


@dataclass(frozen=True)
class WordPair:
    primary: str
    decoy: str


WORD_PAIRS: tuple[WordPair, ...] = (
    WordPair("Cat", "Dog"),
    WordPair("Beach", "Pool"),
    WordPair("Pizza", "Burger"),
    WordPair("Netflix", "YouTube"),
    WordPair("Plane", "Train"),
    WordPair("Apple", "Banana"),
    WordPair("Bird", "Airplane"),
    WordPair("Coffee", "Tea"),
    WordPair("Guitar", "Violin"),
    WordPair("Moon", "Sun"),
    WordPair("Football", "Rugby"),
    WordPair("Piano", "Keyboard"),
    WordPair("Lion", "Tiger"),
    WordPair("Doctor", "Nurse"),
    WordPair("Snow", "Rain"),
    WordPair("Wine", "Beer"),
    WordPair("Castle", "Palace"),
    WordPair("Lake", "River"),
    WordPair("Pen", "Pencil"),
    WordPair("Cinema", "Theater"),
    WordPair("Bicycle", "Motorcycle"),
    WordPair("Chocolate", "Candy"),
    WordPair("Facebook", "Instagram"),
    WordPair("Shark", "Dolphin"),
    WordPair("Mountain", "Hill"),
    WordPair("Sofa", "Bed"),
    WordPair("Spoon", "Fork"),
    WordPair("Hospital", "Pharmacy"),
    WordPair("Wizard", "Witch"),
    WordPair("Summer", "Spring"),
)


def pick_unused_pair(
    used_indices: Iterable[int],
    rng: Optional[random.Random] = None,
    pairs: Sequence[WordPair] = WORD_PAIRS,
) -> tuple[int, WordPair]:
    """
    Pick a pair uniformly among those this lobby has not used yet.
    Returns (index, pair); raises CatalogExhausted when every index is used.
    """
    used = set(used_indices)
    available = [i for i in range(len(pairs)) if i not in used]
    if not available:
        raise CatalogExhausted()
    rng = rng or random.Random()
    index = rng.choice(available)
    return index, pairs[index]
