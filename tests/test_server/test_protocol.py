import json

import pytest

from blackjack_server.core.enums import GameMode, GamePhase, RoundResult
from blackjack_server.server.protocol import (
    Error,
    GameResult,
    GameState,
    JoinGame,
    Ping,
    Pong,
    ProtocolError,
    RecordsList,
    RequestCard,
    build_client_message,
    build_server_message,
    card_from_json,
    card_to_json,
    parse_client_message,
    parse_server_message,
)
from blackjack_server.server.records import PlayerRecord


def test_parse_join_game_ignores_unknown_fields():
    """Test decoding dispatches on the type field and skips extras."""
    line = b'{"type": "JoinGame", "name": " Ana ", "mode": "PVE", "color": "red"}\n'
    message = parse_client_message(line)
    assert message == JoinGame(name="Ana", mode=GameMode.PVE)


@pytest.mark.parametrize("type_name, cls", [
    ("RequestCard", RequestCard),
    ("Ping", Ping),
])
def test_parse_simple_messages(type_name, cls):
    """Test field-less messages decode to their variant."""
    assert parse_client_message(json.dumps({"type": type_name})) == cls()


@pytest.mark.parametrize("line", [
    "this is not json",
    "[1, 2, 3]",
    '{"name": "Ana"}',
    '{"type": "Teleport"}',
    '{"type": "JoinGame", "name": "", "mode": "PVE"}',
    '{"type": "JoinGame", "name": "Ana", "mode": "SOLO"}',
    b'\xff\xfe{}',
    '{"type": "JoinGame", "name": "Ana", "mode": ["PVE"]}',
    '{"type": "JoinGame", "name": "Ana", "mode": {"PVE": 1}}',
    "[" * 100000 + "]" * 100000,
])
def test_parse_rejects_malformed_lines(line):
    """Test every malformed line raises ProtocolError."""
    with pytest.raises(ProtocolError):
        parse_client_message(line)


def test_build_client_message_is_one_line():
    """Test client framing ends with exactly one newline."""
    data = build_client_message(JoinGame(name="Ana", mode=GameMode.PVP))
    assert data.endswith(b"\n") and data.count(b"\n") == 1
    assert parse_client_message(data) == JoinGame(name="Ana", mode=GameMode.PVP)


def test_game_state_hides_face_down_card(make_card):
    """Test the hole card travels without rank or suit."""
    state = GameState(
        player_hand=(make_card("10S"), make_card("5C")),
        dealer_hand=(make_card("9D"), make_card("7H", face_down=True)),
        player_score=15,
        dealer_score=9,
        phase=GamePhase.PLAYER_TURN,
        can_hit=True,
        can_stand=True,
    )
    data = parse_server_message(build_server_message(state))
    assert data["type"] == "GameState"
    assert data["phase"] == "PLAYER_TURN"
    assert data["dealerHand"][1] == {"rank": None, "suit": None, "faceDown": True}
    assert data["dealerHand"][0] == {"rank": "NINE", "suit": "DIAMONDS", "faceDown": False}
    assert data["canHit"] is True and data["dealerScore"] == 9


def test_game_result_payload(make_card):
    """Test the result message fields."""
    result = GameResult(RoundResult.WIN, 20, 18, "You win!", (make_card("10D"), make_card("8C")))
    data = json.loads(build_server_message(result))
    assert data == {
        "type": "GameResult",
        "result": "WIN",
        "playerScore": 20,
        "dealerScore": 18,
        "text": "You win!",
        "dealerFullHand": [
            {"rank": "TEN", "suit": "DIAMONDS", "faceDown": False},
            {"rank": "EIGHT", "suit": "CLUBS", "faceDown": False},
        ],
    }


def test_records_list_and_simple_messages():
    """Test leaderboard entries carry the derived win rate."""
    records = RecordsList(records=(PlayerRecord("Ana", wins=3, losses=1, blackjacks=1, last_played=5),))
    data = json.loads(build_server_message(records))
    assert data["records"][0] == {
        "name": "Ana", "wins": 3, "losses": 1, "blackjacks": 1, "lastPlayed": 5, "winRate": 0.75,
    }
    assert json.loads(build_server_message(Pong())) == {"type": "Pong"}
    assert json.loads(build_server_message(Error("nope"))) == {"type": "Error", "text": "nope"}


def test_card_json_round_trip(make_card):
    """Test a face-up card survives encoding; a hidden one cannot be rebuilt."""
    card = make_card("QH")
    assert card_from_json(card_to_json(card)) == card
    with pytest.raises(ProtocolError):
        card_from_json(card_to_json(card.with_face_down(True)))


def test_parse_server_message_rejects_client_types():
    """Test server-side decoding only accepts outbound variants."""
    with pytest.raises(ProtocolError):
        parse_server_message('{"type": "Ping"}')


@pytest.mark.parametrize("data", [
    {"rank": ["ACE"], "suit": "SPADES"},
    {"rank": "ACE", "suit": {"name": "SPADES"}},
    {"rank": None, "suit": "SPADES"},
])
def test_card_from_json_rejects_non_string_fields(data):
    """Test unhashable or missing rank and suit values raise ProtocolError."""
    with pytest.raises(ProtocolError):
        card_from_json(data)
