import socket
import threading
import uuid
from typing import Callable, Dict, Optional, Tuple

from ..core.enums import GameMode, GamePhase
from ..core.exceptions import EmptyShoeError, InvalidActionError
from ..core.rules import BlackjackRules
from ..core.shoe import Shoe
from ..game.session import Session, TableView
from ..logging_utils import format_peer, get_logger, log_message
from .config import ServerConfig
from .protocol import (
    ClientMessage,
    Error,
    GameResult,
    GameState,
    JoinConfirmation,
    JoinGame,
    NewGame,
    Ping,
    Pong,
    ProtocolError,
    RecordsList,
    RequestCard,
    RequestRecords,
    ServerMessage,
    Stand,
    build_server_message,
    describe,
    parse_client_message,
)
from .records import RecordsStore

log = get_logger("server.handler")

DEFAULT_PLAYER_NAME = "Player"


class ConnectionHandler:
    """
    Serves one client connection.
    Responsible for:
    - Reading newline-delimited JSON messages until EOF, timeout or shutdown
    - Driving the connection's Session and replying with its state
    - Recording finished rounds in the shared RecordsStore
    The socket is closed exactly once, whatever ends the connection.
    """

    def __init__(self, conn: socket.socket, addr: Tuple[str, int],
                 records: RecordsStore, config: ServerConfig = ServerConfig(),
                 rules: BlackjackRules = BlackjackRules(),
                 shoe_factory: Optional[Callable[[], Shoe]] = None):
        self.conn = conn
        self.addr = addr
        self.records = records
        self.config = config
        self.rules = rules
        self.shoe_factory = shoe_factory or (
            lambda: Shoe(reset_threshold=config.deck_reset_threshold))

        self.player_id = str(uuid.uuid4())
        self.player_name = DEFAULT_PLAYER_NAME
        self.mode: Optional[GameMode] = None
        self.session: Optional[Session] = None

        self._closed = threading.Event()
        self._close_lock = threading.Lock()
        self._handlers: Dict[type, Callable] = {
            JoinGame: self._handle_join_game,
            RequestCard: self._handle_request_card,
            Stand: self._handle_stand,
            NewGame: self._handle_new_game,
            RequestRecords: self._handle_request_records,
            Ping: self._handle_ping,
        }

    @property
    def peer(self) -> str:
        return format_peer(self.addr)

    # -------------------------
    # Connection lifecycle
    # -------------------------
    def run(self) -> None:
        """Serve the connection until it ends, then release it."""
        log.info(f"Client connected: {self.peer}")
        try:
            self.conn.settimeout(self.config.read_timeout)
            with self.conn.makefile("rb") as reader:
                while not self._closed.is_set():
                    try:
                        line = reader.readline()
                    except socket.timeout:
                        log.info(f"Client {self.peer} ({self.player_name}) timed out")
                        break
                    if not line:
                        log.info(f"Client {self.peer} ({self.player_name}) disconnected")
                        break
                    if not line.strip():
                        continue
                    self.handle_line(line)
        except OSError as e:
            if not self._closed.is_set():
                log.warning(f"Connection error with {self.peer}: {e}")
        except Exception:
            log.exception(f"Unexpected error while serving {self.peer}")
        finally:
            self.close()

    def stop(self) -> None:
        """Ask the connection to end; wakes a blocked read. Safe from any thread."""
        self._closed.set()
        conn = self.conn
        if conn is None:
            return
        try:
            conn.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # already disconnected

    def close(self) -> None:
        """Close the socket once."""
        with self._close_lock:
            if self.conn is None:
                return
            self._closed.set()
            conn, self.conn = self.conn, None
        try:
            conn.close()
        finally:
            log.info(f"Connection closed: {self.peer} ({self.player_name})")

    @property
    def closed(self) -> bool:
        return self.conn is None

    def send(self, message: ServerMessage) -> None:
        """Encode, write and flush one message."""
        conn = self.conn
        if conn is None:
            raise ConnectionError("Connection already closed")
        data = build_server_message(message)
        conn.sendall(data)
        log_message(log, "OUT", self.addr, data.decode("utf-8"), note=describe(message))

    def send_error(self, text: str) -> None:
        self.send(Error(text))

    # -------------------------
    # Message dispatch
    # -------------------------
    def handle_line(self, line: bytes) -> None:
        """Decode and act on one inbound line; client mistakes become Error replies."""
        try:
            message = parse_client_message(line)
        except ProtocolError as e:
            log.warning(f"Bad message from {self.peer}: {e}")
            self.send_error(f"Invalid message: {e}")
            return
        log_message(log, "IN", self.addr, line.decode("utf-8", errors="replace"), parsed=message)

        try:
            self.dispatch(message)
        except InvalidActionError as e:
            self.send_error(str(e))
        except EmptyShoeError as e:
            log.error(f"Round aborted for {self.player_name}: {e}")
            self.send_error(f"Round aborted: {e}")

    def dispatch(self, message: ClientMessage) -> None:
        """Route a decoded message to its handler."""
        self._handlers[type(message)](message)

    def _handle_join_game(self, message: JoinGame) -> None:
        self.player_name = message.name
        self.mode = message.mode
        log.info(f"{self.player_name} joins from {self.peer} (mode {self.mode.name})")

        if message.mode == GameMode.PVE:
            self.send(JoinConfirmation(
                id=self.player_id,
                text=f"Welcome {self.player_name}. Mode: player vs dealer",
            ))
            if self.session is None:
                self.session = Session(self.player_id, shoe=self.shoe_factory(), rules=self.rules)
            self._start_round()
        else:
            self.send(JoinConfirmation(
                id=self.player_id,
                text=f"Welcome {self.player_name}. Mode: multiplayer (not supported yet)",
            ))
            self.send_error("Multiplayer mode is not implemented yet. Join with PVE to play.")

    def _handle_request_card(self, message: RequestCard) -> None:
        session = self._active_session()
        if session is None:
            return
        self._after_transition(session.hit())

    def _handle_stand(self, message: Stand) -> None:
        session = self._active_session()
        if session is None:
            return
        self._after_transition(session.stand())

    def _handle_new_game(self, message: NewGame) -> None:
        if self.mode != GameMode.PVE or self.session is None or not self.session.has_started:
            self.send_error("Join a game before starting a new round")
            return
        self._start_round()

    def _handle_request_records(self, message: RequestRecords) -> None:
        self.send(RecordsList(records=tuple(self.records.top_records(self.config.top_records))))

    def _handle_ping(self, message: Ping) -> None:
        self.send(Pong())

    # -------------------------
    # Round flow
    # -------------------------
    def _active_session(self) -> Optional[Session]:
        if self.mode == GameMode.PVP:
            self.send_error("Multiplayer mode is not implemented yet")
            return None
        if self.mode != GameMode.PVE or self.session is None or not self.session.has_started:
            self.send_error("No active game")
            return None
        return self.session

    def _start_round(self) -> None:
        self._after_transition(self.session.start_round())

    def _after_transition(self, view: TableView) -> None:
        """Send the new state; a finished round also gets its result."""
        self.send(GameState.from_view(view))
        if view.phase == GamePhase.GAME_OVER:
            self._closed.wait(self.config.result_delay)
            self._finish_round()

    def _finish_round(self) -> None:
        outcome = self.session.outcome()
        log.info(f"Result for {self.player_name}: {outcome.result.name} - {outcome.text}")
        self.send(GameResult.from_outcome(outcome))
        self.records.record_result(self.player_name, outcome.result)
