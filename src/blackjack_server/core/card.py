from dataclasses import dataclass, replace
from .enums import Rank, Suit


@dataclass(frozen=True)
class Card:
    """Immutable playing card.

    A face-down card is a distinct value: flipping it produces a new
    Card instead of mutating the one held by a hand.
    """
    rank: Rank
    suit: Suit
    face_down: bool = False

    def get_value(self) -> int:
        """Get the blackjack value of the card.

        Note: Aces are returned as 1. The decision to use it as 11
        should be handled by the hand evaluation logic, since it depends
        on the total value of all cards in the hand."""
        return self.rank.points

    def is_ace(self) -> bool:
        """Check if the card is an ace."""
        return self.rank == Rank.ACE

    def is_ten_value(self) -> bool:
        """Check if the card is a ten-value card."""
        return self.rank.points == 10

    def with_face_down(self, face_down: bool) -> "Card":
        """Return a copy of this card with the requested visibility."""
        if face_down == self.face_down:
            return self
        return replace(self, face_down=face_down)

    def revealed(self) -> "Card":
        """Return the face-up version of this card."""
        return self.with_face_down(False)

    def __str__(self) -> str:
        if self.face_down:
            return "[hidden]"
        return f"{self.rank.symbol}{self.suit.symbol}"
