from dataclasses import dataclass, field
from typing import Optional
from ..core.card import Card
from ..core.hand import Hand
from ..core.rules import BlackjackRules
from ..core.shoe import Shoe

@dataclass
class Dealer:
    """
    Represents the dealer in blackjack.
    Handles dealer-specific rules and logic.
    """
    hand: Hand = field(default_factory=Hand)
    rules: BlackjackRules = field(default_factory=BlackjackRules)

    def reset(self) -> None:
        """Clear the dealer's hand in place."""
        self.hand.clear()

    def add_card(self, card: Card) -> None:
        """Add a card to dealer's hand."""
        self.hand.add_card(card)

    def should_hit(self) -> bool:
        """Determine if dealer should hit according to rules."""
        return self.rules.dealer_should_hit(self.hand)

    def play(self, shoe: Shoe) -> None:
        """
        Reveal the hole card and draw until the rules say stand.
        The dealer's draws depend only on the hand value, so the same
        hand and shoe always produce the same sequence.
        """
        self.hand.reveal_all()
        while self.should_hit():
            self.hand.add_card(shoe.deal(face_down=False))

    def get_upcard(self) -> Optional[Card]:
        """Get dealer's first face-up card."""
        for card in self.hand.cards:
            if not card.face_down:
                return card
        return None

    def visible_score(self) -> int:
        """Score the player is allowed to see.

        While the hole card is hidden this is the up card's point value,
        with an ace counting 1.
        """
        if self.hand.has_hidden_cards():
            upcard = self.get_upcard()
            return upcard.rank.points if upcard is not None else 0
        return self.hand.get_value()

    def is_bust(self) -> bool:
        """Check if dealer is bust."""
        return self.hand.is_busted()

    def get_value(self) -> int:
        """Get dealer's hand value."""
        return self.hand.get_value()

    def __str__(self) -> str:
        """String representation showing only upcard while a card is hidden."""
        if self.hand.has_hidden_cards():
            return f"Dealer showing: {self.get_upcard()}"
        return f"Dealer hand: {self.hand}"
