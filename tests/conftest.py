import pytest

from blackjack_server.core.card import Card
from blackjack_server.core.enums import Rank, Suit
from blackjack_server.core.hand import Hand


def card(code: str, face_down: bool = False) -> Card:
    """Build a card from a short code such as 'AS', '10H' or 'KD'."""
    ranks = {rank.symbol: rank for rank in Rank}
    suits = {"H": Suit.HEARTS, "D": Suit.DIAMONDS, "C": Suit.CLUBS, "S": Suit.SPADES}
    return Card(ranks[code[:-1]], suits[code[-1]], face_down)


def hand(*codes: str) -> Hand:
    """Build a face-up hand from card codes."""
    return Hand([card(code) for code in codes])


@pytest.fixture
def make_card():
    return card


@pytest.fixture
def make_hand():
    return hand
