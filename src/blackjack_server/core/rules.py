from dataclasses import dataclass
from .enums import GamePhase, RoundResult
from .hand import Hand, BLACKJACK


@dataclass(frozen=True)
class BlackjackRules:
    """
    Immutable container for the dealer's rule set.
    Single source of truth for:
    - The dealer's fixed drawing threshold
    - Which player actions are allowed
    - How a finished round is scored
    Every method is a pure function of its arguments.
    """
    dealer_stands_on: int = 17  # Dealer stands on all 17s

    def dealer_should_hit(self, dealer_hand: Hand) -> bool:
        """Dealer draws below the threshold and never above it."""
        return dealer_hand.get_value() < self.dealer_stands_on

    def player_can_hit(self, player_hand: Hand, phase: GamePhase) -> bool:
        """Check if the player may take another card."""
        if phase != GamePhase.PLAYER_TURN:
            return False
        return not player_hand.is_busted() and player_hand.get_value() < BLACKJACK

    def player_can_stand(self, player_hand: Hand, phase: GamePhase) -> bool:
        """Check if the player may stand."""
        return self.player_can_hit(player_hand, phase)

    def determine_winner(self, player_hand: Hand, dealer_hand: Hand) -> RoundResult:
        """Score a finished round from the player's point of view."""
        player_natural = player_hand.is_blackjack()
        dealer_natural = dealer_hand.is_blackjack()

        if player_natural and dealer_natural:
            return RoundResult.PUSH
        if player_natural:
            return RoundResult.BLACKJACK
        if player_hand.is_busted():
            return RoundResult.LOSE
        if dealer_natural:
            return RoundResult.LOSE
        if dealer_hand.is_busted():
            return RoundResult.WIN

        player_value = player_hand.get_value()
        dealer_value = dealer_hand.get_value()
        if player_value > dealer_value:
            return RoundResult.WIN
        if player_value < dealer_value:
            return RoundResult.LOSE
        return RoundResult.PUSH

    @staticmethod
    def result_message(result: RoundResult, player_score: int, dealer_score: int) -> str:
        """Human readable summary of a round, for display only."""
        if result == RoundResult.BLACKJACK:
            return f"Blackjack! You win with a natural 21 against {dealer_score}."
        if result == RoundResult.WIN:
            if dealer_score > BLACKJACK:
                return f"Dealer busts with {dealer_score}. You win with {player_score}!"
            return f"You win! {player_score} beats the dealer's {dealer_score}."
        if result == RoundResult.LOSE:
            if player_score > BLACKJACK:
                return f"Bust! You went over 21 with {player_score}."
            return f"You lose. Dealer's {dealer_score} beats your {player_score}."
        return f"Push. Both you and the dealer have {player_score}."
