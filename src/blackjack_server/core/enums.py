from enum import Enum


class Rank(Enum):
    """Card ranks with their display symbol and blackjack points."""
    ACE = ("A", 1)     # Promoted to 11 by the Hand when it fits
    TWO = ("2", 2)
    THREE = ("3", 3)
    FOUR = ("4", 4)
    FIVE = ("5", 5)
    SIX = ("6", 6)
    SEVEN = ("7", 7)
    EIGHT = ("8", 8)
    NINE = ("9", 9)
    TEN = ("10", 10)
    JACK = ("J", 10)
    QUEEN = ("Q", 10)
    KING = ("K", 10)

    def __init__(self, symbol: str, points: int):
        self.symbol = symbol
        self.points = points


class Suit(Enum):
    """Card suits with their display symbol."""
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    SPADES = "♠"

    @property
    def symbol(self) -> str:
        return self.value


class GamePhase(Enum):
    """Phase of a round as seen by the session state machine."""
    WAITING = 0      # No hands dealt yet
    PLAYER_TURN = 1  # Waiting for the player to hit or stand
    DEALER_TURN = 2  # Transient, never waits for input
    GAME_OVER = 3    # Round resolved, a new round may be requested


class GameMode(Enum):
    """Game modes a client may join with."""
    PVE = "PVE"  # Player against the dealer
    PVP = "PVP"  # Multiplayer, acknowledged but not playable yet


class RoundResult(Enum):
    """Outcome of a round from the player's point of view."""
    WIN = 0
    LOSE = 1
    PUSH = 2
    BLACKJACK = 3  # Natural blackjack against a dealer without one
