import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union

from ..core.card import Card
from ..core.enums import GameMode, GamePhase, Rank, RoundResult, Suit
from ..core.exceptions import BlackjackError
from ..game.session import RoundOutcome, TableView
from ..logging_utils import get_logger
from .records import PlayerRecord

_log = get_logger("protocol")

ENCODING = "utf-8"
TYPE_FIELD = "type"


# -------------------------
# Errors
# -------------------------
class ProtocolError(BlackjackError, ValueError):
    """Raised when an inbound line is malformed or invalid."""
    pass


def _require(condition: bool, msg: str) -> None:
    if not condition:
        _log.warning(f"ProtocolError: {msg}")
        raise ProtocolError(msg)


# -------------------------
# Cards
# Face-down cards travel without rank and suit so the hole card never leaks.
# -------------------------
def card_to_json(card: Card) -> Dict[str, Any]:
    if card.face_down:
        return {"rank": None, "suit": None, "faceDown": True}
    return {"rank": card.rank.name, "suit": card.suit.name, "faceDown": False}


def card_from_json(data: Dict[str, Any]) -> Card:
    _require(isinstance(data, dict), "card must be an object")
    _require(not data.get("faceDown", False), "face-down cards carry no rank or suit")
    rank, suit = data.get("rank"), data.get("suit")
    _require(isinstance(rank, str) and rank in Rank.__members__, f"Invalid rank: {rank!r}")
    _require(isinstance(suit, str) and suit in Suit.__members__, f"Invalid suit: {suit!r}")
    return Card(Rank[rank], Suit[suit])


def _cards(cards) -> List[Dict[str, Any]]:
    return [card_to_json(card) for card in cards]


# -------------------------
# Client -> Server
# -------------------------
@dataclass(frozen=True)
class JoinGame:
    MESSAGE_TYPE: ClassVar[str] = "JoinGame"
    name: str
    mode: GameMode


@dataclass(frozen=True)
class RequestCard:
    MESSAGE_TYPE: ClassVar[str] = "RequestCard"


@dataclass(frozen=True)
class Stand:
    MESSAGE_TYPE: ClassVar[str] = "Stand"


@dataclass(frozen=True)
class NewGame:
    MESSAGE_TYPE: ClassVar[str] = "NewGame"


@dataclass(frozen=True)
class RequestRecords:
    MESSAGE_TYPE: ClassVar[str] = "RequestRecords"


@dataclass(frozen=True)
class Ping:
    MESSAGE_TYPE: ClassVar[str] = "Ping"


ClientMessage = Union[JoinGame, RequestCard, Stand, NewGame, RequestRecords, Ping]


def _parse_join_game(data: Dict[str, Any]) -> JoinGame:
    name = data.get("name")
    _require(isinstance(name, str) and name.strip() != "", "JoinGame.name must be a non-empty string")
    mode = data.get("mode")
    _require(isinstance(mode, str) and mode in GameMode.__members__,
             f"JoinGame.mode must be one of {list(GameMode.__members__)}")
    return JoinGame(name=name.strip(), mode=GameMode[mode])


_CLIENT_PARSERS = {
    JoinGame.MESSAGE_TYPE: _parse_join_game,
    RequestCard.MESSAGE_TYPE: lambda data: RequestCard(),
    Stand.MESSAGE_TYPE: lambda data: Stand(),
    NewGame.MESSAGE_TYPE: lambda data: NewGame(),
    RequestRecords.MESSAGE_TYPE: lambda data: RequestRecords(),
    Ping.MESSAGE_TYPE: lambda data: Ping(),
}


def _load_object(line: Union[str, bytes]) -> Dict[str, Any]:
    if isinstance(line, bytes):
        try:
            line = line.decode(ENCODING)
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Line is not valid UTF-8: {e}") from e
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Malformed JSON: {e.msg}") from e
    except RecursionError as e:
        raise ProtocolError("Malformed JSON: nesting too deep") from e
    _require(isinstance(data, dict), "Message must be a JSON object")
    _require(isinstance(data.get(TYPE_FIELD), str), f"Message is missing the '{TYPE_FIELD}' field")
    return data


def parse_client_message(line: Union[str, bytes]) -> ClientMessage:
    """Decode one inbound line. Unknown fields are ignored."""
    data = _load_object(line)
    parser = _CLIENT_PARSERS.get(data[TYPE_FIELD])
    _require(parser is not None, f"Unknown message type: {data[TYPE_FIELD]!r}")
    return parser(data)


def build_client_message(message: ClientMessage) -> bytes:
    """Encode a client message as one newline-terminated line."""
    data: Dict[str, Any] = {TYPE_FIELD: message.MESSAGE_TYPE}
    if isinstance(message, JoinGame):
        data["name"] = message.name
        data["mode"] = message.mode.name
    return _frame(data)


# -------------------------
# Server -> Client
# -------------------------
@dataclass(frozen=True)
class JoinConfirmation:
    MESSAGE_TYPE: ClassVar[str] = "JoinConfirmation"
    id: str
    text: str

    def payload(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text}


@dataclass(frozen=True)
class GameState:
    MESSAGE_TYPE: ClassVar[str] = "GameState"
    player_hand: Tuple[Card, ...]
    dealer_hand: Tuple[Card, ...]
    player_score: int
    dealer_score: int
    phase: GamePhase
    can_hit: bool
    can_stand: bool

    @classmethod
    def from_view(cls, view: TableView) -> "GameState":
        return cls(
            player_hand=view.player_hand,
            dealer_hand=view.dealer_hand,
            player_score=view.player_score,
            dealer_score=view.dealer_score,
            phase=view.phase,
            can_hit=view.can_hit,
            can_stand=view.can_stand,
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "playerHand": _cards(self.player_hand),
            "dealerHand": _cards(self.dealer_hand),
            "playerScore": self.player_score,
            "dealerScore": self.dealer_score,
            "phase": self.phase.name,
            "canHit": self.can_hit,
            "canStand": self.can_stand,
        }


@dataclass(frozen=True)
class GameResult:
    MESSAGE_TYPE: ClassVar[str] = "GameResult"
    result: RoundResult
    player_score: int
    dealer_score: int
    text: str
    dealer_full_hand: Tuple[Card, ...]

    @classmethod
    def from_outcome(cls, outcome: RoundOutcome) -> "GameResult":
        return cls(
            result=outcome.result,
            player_score=outcome.player_score,
            dealer_score=outcome.dealer_score,
            text=outcome.text,
            dealer_full_hand=outcome.dealer_hand,
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "result": self.result.name,
            "playerScore": self.player_score,
            "dealerScore": self.dealer_score,
            "text": self.text,
            "dealerFullHand": _cards(self.dealer_full_hand),
        }


@dataclass(frozen=True)
class RecordsList:
    MESSAGE_TYPE: ClassVar[str] = "RecordsList"
    records: Tuple[PlayerRecord, ...] = field(default_factory=tuple)

    def payload(self) -> Dict[str, Any]:
        return {"records": [record.to_json(include_rate=True) for record in self.records]}


@dataclass(frozen=True)
class Error:
    MESSAGE_TYPE: ClassVar[str] = "Error"
    text: str

    def payload(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class Pong:
    MESSAGE_TYPE: ClassVar[str] = "Pong"

    def payload(self) -> Dict[str, Any]:
        return {}


ServerMessage = Union[JoinConfirmation, GameState, GameResult, RecordsList, Error, Pong]

SERVER_MESSAGE_TYPES: Dict[str, Type] = {
    cls.MESSAGE_TYPE: cls
    for cls in (JoinConfirmation, GameState, GameResult, RecordsList, Error, Pong)
}


def _frame(data: Dict[str, Any]) -> bytes:
    return (json.dumps(data, ensure_ascii=False, separators=(",", ":")) + "\n").encode(ENCODING)


def build_server_message(message: ServerMessage) -> bytes:
    """Encode a server message as one newline-terminated line."""
    data: Dict[str, Any] = {TYPE_FIELD: message.MESSAGE_TYPE}
    data.update(message.payload())
    return _frame(data)


def parse_server_message(line: Union[str, bytes]) -> Dict[str, Any]:
    """Decode an outbound line back into a plain dict (clients and tests)."""
    data = _load_object(line)
    _require(data[TYPE_FIELD] in SERVER_MESSAGE_TYPES, f"Unknown message type: {data[TYPE_FIELD]!r}")
    return data


def describe(message: Optional[Any]) -> str:
    """Short summary for logs."""
    if message is None:
        return "-"
    return getattr(message, "MESSAGE_TYPE", type(message).__name__)
