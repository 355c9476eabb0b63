from typing import Iterable, List, Optional, Tuple

import numpy as np

from .card import Card
from .enums import Rank, Suit
from .exceptions import EmptyShoeError

DEFAULT_RESET_THRESHOLD = 15


def full_deck() -> List[Card]:
    """All 52 face-up cards in suit-major, rank-minor order."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


class Shoe:
    """Working deck of a session.

    Cards are dealt from the front. The shoe is never refilled in the
    middle of a round: callers check needs_reset() at round boundaries.
    """

    def __init__(self, seed: Optional[int] = None,
                 reset_threshold: int = DEFAULT_RESET_THRESHOLD,
                 shuffle: bool = True):
        """Create a full shoe, shuffled unless asked otherwise."""
        self.rng = np.random.default_rng(seed)
        self.reset_threshold = reset_threshold
        self.cards: List[Card] = []
        self.reset()
        if shuffle:
            self.shuffle()

    @classmethod
    def stacked(cls, top: Iterable[Card],
                reset_threshold: int = DEFAULT_RESET_THRESHOLD) -> "Shoe":
        """Build an unshuffled shoe whose first cards are `top`.

        The remaining cards follow in deck order so the shoe still holds
        each of the 52 cards exactly once.
        """
        top = [card.revealed() for card in top]
        if len(set(top)) != len(top):
            raise ValueError("Stacked cards must be unique")
        shoe = cls(reset_threshold=reset_threshold, shuffle=False)
        chosen = set(top)
        shoe.cards = top + [card for card in shoe.cards if card not in chosen]
        return shoe

    def reset(self) -> None:
        """Refill the shoe with all 52 cards in deck order."""
        self.cards = full_deck()

    def shuffle(self) -> None:
        """Randomly permute the remaining cards in place."""
        order = self.rng.permutation(len(self.cards))
        self.cards[:] = [self.cards[i] for i in order]

    def reset_and_shuffle(self) -> None:
        """Refill and shuffle, used at a round boundary."""
        self.reset()
        self.shuffle()

    def deal(self, face_down: bool = False) -> Card:
        """Remove the front card and return it with the requested visibility."""
        if not self.cards:
            raise EmptyShoeError("No cards left in the shoe")
        return self.cards.pop(0).with_face_down(face_down)

    def remaining(self) -> int:
        """Number of cards left to deal."""
        return len(self.cards)

    def needs_reset(self) -> bool:
        """True when fewer cards than the reset threshold remain."""
        return len(self.cards) < self.reset_threshold

    def peek(self, count: int) -> Tuple[Card, ...]:
        """Look at the next `count` cards without dealing them."""
        return tuple(self.cards[:count])

    def __len__(self) -> int:
        return len(self.cards)

    def __str__(self) -> str:
        return f"Shoe(remaining={len(self.cards)})"
