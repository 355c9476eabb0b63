from typing import List, Tuple
from dataclasses import dataclass, field
from .card import Card

BLACKJACK = 21
ACE_BONUS = 10


@dataclass
class Hand:
    """
    Represents a blackjack hand.
    Responsible for:
    - Holding cards in the order they were dealt
    - Calculating the optimal value of the face-up cards
    - Revealing face-down cards
    """
    cards: List[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add card to the end of the hand."""
        self.cards.append(card)

    def get_cards(self) -> Tuple[Card, ...]:
        """Read-only view of the cards in insertion order."""
        return tuple(self.cards)

    def clear(self) -> None:
        """Remove every card, keeping the same Hand object."""
        self.cards.clear()

    def get_value(self) -> int:
        """Get optimal value of the face-up cards."""
        return self._calculate_value(card for card in self.cards if not card.face_down)

    def true_value(self) -> int:
        """Get optimal value counting face-down cards too."""
        return self._calculate_value(self.cards)

    def _calculate_value(self, cards) -> int:
        """Calculate optimal hand value."""
        non_ace_total, ace_count = self._count_values(cards)
        return self._optimize_ace_values(non_ace_total, ace_count)

    @staticmethod
    def _count_values(cards) -> Tuple[int, int]:
        """Count non-ace total and number of aces."""
        non_ace_total = 0
        ace_count = 0

        for card in cards:
            if card.is_ace():
                ace_count += 1
            else:
                non_ace_total += card.get_value()

        return non_ace_total, ace_count

    @staticmethod
    def _optimize_ace_values(non_ace_total: int, ace_count: int) -> int:
        """Promote aces from 1 to 11 while the total stays at or under 21."""
        total = non_ace_total + ace_count
        promotable = ace_count
        while promotable > 0 and total + ACE_BONUS <= BLACKJACK:
            total += ACE_BONUS
            promotable -= 1
        return total

    def is_blackjack(self) -> bool:
        """Natural blackjack: two face-up cards, an ace and a ten-value card."""
        if len(self.cards) != 2 or any(card.face_down for card in self.cards):
            return False
        has_ace = any(card.is_ace() for card in self.cards)
        has_ten = any(card.is_ten_value() for card in self.cards)
        return has_ace and has_ten

    def is_busted(self) -> bool:
        """Check if the hand went over 21."""
        return self.get_value() > BLACKJACK

    def has_hidden_cards(self) -> bool:
        return any(card.face_down for card in self.cards)

    def reveal_all(self) -> None:
        """Turn every card face up. Calling it again changes nothing."""
        self.cards[:] = [card.revealed() for card in self.cards]

    def is_empty(self) -> bool:
        return not self.cards

    def __len__(self) -> int:
        return len(self.cards)

    def __str__(self) -> str:
        cards = ", ".join(str(card) for card in self.cards)
        value = "?" if self.has_hidden_cards() else str(self.get_value())
        return f"[{cards}] ({value})"
