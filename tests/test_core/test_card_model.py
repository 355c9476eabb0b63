import pytest

from blackjack_server.core.card import Card
from blackjack_server.core.enums import Rank, Suit
from blackjack_server.core.exceptions import EmptyShoeError
from blackjack_server.core.hand import Hand
from blackjack_server.core.shoe import Shoe, full_deck


@pytest.fixture
def shoe():
    """Create an unshuffled shoe."""
    return Shoe(shuffle=False)


def test_ranks_and_suits_are_enumerable():
    """Test the 13 ranks and 4 suits with their points and symbols."""
    assert len(list(Rank)) == 13
    assert len(list(Suit)) == 4
    assert Rank.ACE.points == 1
    assert [Rank.JACK.points, Rank.QUEEN.points, Rank.KING.points] == [10, 10, 10]
    assert Rank.SEVEN.points == 7
    assert Rank.QUEEN.symbol == "Q"
    assert Suit.SPADES.symbol == "♠"


def test_card_flip_returns_new_value(make_card):
    """Test flipping a card never mutates the original."""
    up = make_card("AS")
    down = up.with_face_down(True)
    assert down is not up
    assert up.face_down is False
    assert down.face_down is True
    assert down.revealed() == up
    assert str(down) == "[hidden]"
    assert str(up) == "A♠"


def test_full_shoe_holds_each_card_once(shoe):
    """Test dealing a fresh unshuffled shoe yields all 52 distinct cards."""
    assert shoe.remaining() == 52
    dealt = [shoe.deal() for _ in range(52)]
    assert len({(c.rank, c.suit) for c in dealt}) == 52
    assert shoe.remaining() == 0


def test_shuffle_keeps_cards():
    """Test shuffling only permutes the cards."""
    shoe = Shoe(seed=7)
    assert sorted(shoe.cards, key=str) == sorted(full_deck(), key=str)
    assert Shoe(seed=7).cards == shoe.cards


def test_deal_visibility(shoe):
    """Test dealing face down and face up from the front."""
    first = shoe.peek(2)
    hidden = shoe.deal(face_down=True)
    shown = shoe.deal()
    assert hidden.face_down and hidden.revealed() == first[0]
    assert not shown.face_down and shown == first[1]


def test_deal_from_empty_shoe_fails(shoe):
    """Test an empty shoe raises instead of returning nothing."""
    shoe.cards = []
    with pytest.raises(EmptyShoeError):
        shoe.deal()


def test_needs_reset_threshold(shoe):
    """Test needs_reset flips exactly below 15 remaining cards."""
    for _ in range(37):
        assert not shoe.needs_reset()
        shoe.deal()
    assert shoe.remaining() == 15
    assert not shoe.needs_reset()
    shoe.deal()
    assert shoe.needs_reset()
    shoe.reset_and_shuffle()
    assert shoe.remaining() == 52
    assert not shoe.needs_reset()


def test_stacked_shoe_deals_top_cards_first(make_card):
    """Test a stacked shoe keeps 52 unique cards with chosen cards first."""
    top = [make_card("AS"), make_card("KH")]
    shoe = Shoe.stacked(top)
    assert shoe.remaining() == 52
    assert shoe.deal() == top[0]
    assert shoe.deal() == top[1]
    with pytest.raises(ValueError):
        Shoe.stacked([make_card("AS"), make_card("AS")])


@pytest.mark.parametrize("codes, expected", [
    (("KH", "5C"), 15),
    (("AH", "KC"), 21),
    (("AH", "AC", "9D"), 21),
    (("AH", "AC"), 12),
    (("AH", "AC", "AD", "AS"), 14),
    (("AH", "9C", "5D"), 15),
    (("KH", "QC", "2D"), 22),
    ((), 0),
])
def test_hand_value(make_hand, codes, expected):
    """Test optimal ace valuation."""
    assert make_hand(*codes).get_value() == expected


def test_hand_value_matches_ace_formula(make_card):
    """Test value equals S + 10*m with m the most aces that fit under 21."""
    others = ["2H", "3D", "4C", "5S", "9H", "KD"]
    aces = ["AH", "AD", "AC", "AS"]
    for other_count in range(len(others) + 1):
        for ace_count in range(len(aces) + 1):
            cards = [make_card(c) for c in others[:other_count] + aces[:ace_count]]
            base = sum(c.get_value() for c in cards)
            m = max([m for m in range(ace_count + 1) if base + 10 * m <= 21], default=0)
            assert Hand(cards).get_value() == base + 10 * m


def test_face_down_cards_are_excluded_until_revealed(make_card):
    """Test hidden cards add nothing until reveal_all."""
    hand = Hand([make_card("9S"), make_card("KH", face_down=True)])
    assert hand.get_value() == 9
    assert hand.true_value() == 19
    assert str(hand).endswith("(?)")
    hand.reveal_all()
    hand.reveal_all()
    assert hand.get_value() == 19
    assert not hand.has_hidden_cards()


def test_blackjack_and_bust(make_card, make_hand):
    """Test natural blackjack detection and busting."""
    assert make_hand("AS", "JD").is_blackjack()
    assert not make_hand("AS", "5D", "5C").is_blackjack()
    assert not make_hand("KS", "QD").is_blackjack()
    assert not Hand([make_card("AS"), make_card("KD", face_down=True)]).is_blackjack()
    assert make_hand("KS", "QD", "2C").is_busted()
    assert not make_hand("KS", "AD", "QC").is_busted()


def test_hand_clear_keeps_object(make_hand):
    """Test clearing empties the same hand and get_cards is read-only."""
    hand = make_hand("2S", "3S")
    cards = hand.get_cards()
    assert isinstance(cards, tuple)
    hand.clear()
    assert hand.is_empty()
    assert len(cards) == 2
