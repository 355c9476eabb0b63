from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..core.card import Card
from ..core.enums import GamePhase, RoundResult
from ..core.exceptions import EmptyShoeError, InvalidActionError
from ..core.hand import Hand, BLACKJACK
from ..core.rules import BlackjackRules
from ..core.shoe import Shoe
from ..logging_utils import get_logger
from .dealer import Dealer

log = get_logger("game.session")


@dataclass(frozen=True)
class TableView:
    """What the player may see of the table after a transition."""
    player_hand: Tuple[Card, ...]
    dealer_hand: Tuple[Card, ...]
    player_score: int
    dealer_score: int
    phase: GamePhase
    can_hit: bool
    can_stand: bool


@dataclass(frozen=True)
class RoundOutcome:
    """Result of a finished round."""
    result: RoundResult
    player_score: int
    dealer_score: int
    text: str
    dealer_hand: Tuple[Card, ...]


@dataclass
class Session:
    """
    Round state machine for one connection.
    Implements the single-player table:
    - One shoe reused across rounds, reshuffled at round boundaries
    - Deal order player, dealer up, player, dealer hole card
    - Natural 21 resolves the round at once
    - Dealer stands on all 17s
    """
    player_id: str
    shoe: Shoe = field(default_factory=Shoe)
    rules: BlackjackRules = field(default_factory=BlackjackRules)

    def __post_init__(self):
        """Initialize table components."""
        self.dealer = Dealer(rules=self.rules)
        self.player_hands: Dict[str, Hand] = {self.player_id: Hand()}
        self.phase = GamePhase.WAITING
        self.rounds_started = 0

    @property
    def player_hand(self) -> Hand:
        return self.player_hands[self.player_id]

    @property
    def has_started(self) -> bool:
        """True once at least one round has been dealt."""
        return self.rounds_started > 0

    def start_round(self) -> TableView:
        """
        Begin a new round by dealing initial cards.
        Valid from WAITING or GAME_OVER only.
        """
        if self.phase not in (GamePhase.WAITING, GamePhase.GAME_OVER):
            raise InvalidActionError("A round is already in progress")

        if self.shoe.needs_reset():
            log.info(f"Shoe low on cards ({self.shoe.remaining()} left), reshuffling")
            self.shoe.reset_and_shuffle()

        self.dealer.reset()
        for hand in self.player_hands.values():
            hand.clear()

        player = self.player_hand
        self._deal(player)
        self._deal(self.dealer.hand)
        self._deal(player)
        self._deal(self.dealer.hand, face_down=True)
        self.rounds_started += 1
        self.phase = GamePhase.PLAYER_TURN

        log.info(f"Round {self.rounds_started} dealt: player={player} dealer={self.dealer}")
        log.debug(f"Dealer hole total is {self.dealer.hand.true_value()}")

        if player.is_blackjack():
            log.info("Player has a natural blackjack, resolving round")
            self.dealer.hand.reveal_all()
            self.phase = GamePhase.GAME_OVER
        return self.view()

    def hit(self) -> TableView:
        """Deal one face-up card to the player."""
        self._require_player_turn("hit")
        player = self.player_hand
        card = self._deal(player)
        log.info(f"Player hits {card} (total {player.get_value()})")

        if player.is_busted():
            log.info(f"Player busts with {player.get_value()}")
            self.dealer.hand.reveal_all()
            self.phase = GamePhase.GAME_OVER
        elif player.get_value() == BLACKJACK:
            log.info("Player reaches 21, dealer plays")
            self._play_dealer()
        return self.view()

    def stand(self) -> TableView:
        """Player stands; the dealer plays out the hand."""
        self._require_player_turn("stand")
        log.info(f"Player stands on {self.player_hand.get_value()}")
        self._play_dealer()
        return self.view()

    def outcome(self) -> RoundOutcome:
        """Score the finished round."""
        if self.phase != GamePhase.GAME_OVER:
            raise InvalidActionError("The round is not over yet")
        player_score = self.player_hand.get_value()
        dealer_score = self.dealer.get_value()
        result = self.rules.determine_winner(self.player_hand, self.dealer.hand)
        return RoundOutcome(
            result=result,
            player_score=player_score,
            dealer_score=dealer_score,
            text=self.rules.result_message(result, player_score, dealer_score),
            dealer_hand=self.dealer.hand.get_cards(),
        )

    def view(self) -> TableView:
        """Snapshot of the table with the hole card still hidden."""
        player = self.player_hand
        return TableView(
            player_hand=player.get_cards(),
            dealer_hand=self.dealer.hand.get_cards(),
            player_score=player.get_value(),
            dealer_score=self.dealer.visible_score(),
            phase=self.phase,
            can_hit=self.rules.player_can_hit(player, self.phase),
            can_stand=self.rules.player_can_stand(player, self.phase),
        )

    def _play_dealer(self) -> None:
        self.phase = GamePhase.DEALER_TURN
        try:
            self.dealer.play(self.shoe)
        except EmptyShoeError:
            self._abort_round()
            raise
        if self.dealer.is_bust():
            log.info(f"Dealer busts with {self.dealer.get_value()}")
        else:
            log.info(f"Dealer stands with {self.dealer.hand}")
        self.phase = GamePhase.GAME_OVER

    def _deal(self, hand: Hand, face_down: bool = False) -> Card:
        """Deal into `hand`; an empty shoe aborts the round."""
        try:
            card = self.shoe.deal(face_down=face_down)
        except EmptyShoeError:
            self._abort_round()
            raise
        hand.add_card(card)
        return card

    def _abort_round(self) -> None:
        log.error("Shoe exhausted mid-round, aborting round")
        self.dealer.reset()
        for hand in self.player_hands.values():
            hand.clear()
        self.phase = GamePhase.WAITING

    def _require_player_turn(self, action: str) -> None:
        if self.phase != GamePhase.PLAYER_TURN:
            raise InvalidActionError(f"Cannot {action} outside the player's turn")

    def __str__(self) -> str:
        """String representation of table state."""
        lines = [
            f"Phase: {self.phase.name}",
            f"{self.dealer}",
            f"Player: {self.player_hand}",
            f"{self.shoe}",
        ]
        return "\n".join(lines)
