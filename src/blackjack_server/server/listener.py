import socket
import threading
from typing import Optional, Set, Tuple

from ..core.rules import BlackjackRules
from ..logging_utils import get_logger
from .config import ServerConfig
from .handler import ConnectionHandler
from .records import RecordsStore

log = get_logger("server.listener")

ACCEPT_POLL_SECONDS = 0.5


def create_tcp_listener(host: str, port: int) -> socket.socket:
    """
    Create a TCP listening socket. Port 0 picks any free port.
    Raises OSError if the address cannot be bound.
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((host, port))
        s.listen()
    except OSError:
        s.close()
        raise
    return s


class BlackjackServer:
    """
    Accepts connections and serves each one on its own thread.
    Every handler shares the same RecordsStore; nothing else is shared.
    """

    def __init__(self, config: ServerConfig, records: RecordsStore,
                 rules: BlackjackRules = BlackjackRules()):
        self.config = config
        self.records = records
        self.rules = rules
        self._listener: Optional[socket.socket] = None
        self._stop_event = threading.Event()
        self._handlers: Set[ConnectionHandler] = set()
        self._threads: Set[threading.Thread] = set()
        self._lock = threading.Lock()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); only valid after start()."""
        if self._listener is None:
            raise RuntimeError("Server is not started")
        return self._listener.getsockname()[:2]

    @property
    def active_connections(self) -> int:
        with self._lock:
            return len(self._handlers)

    def start(self) -> None:
        """Bind the listening socket. Failing to bind is fatal."""
        self._listener = create_tcp_listener(self.config.host, self.config.port)
        self._listener.settimeout(ACCEPT_POLL_SECONDS)
        host, port = self.address
        log.info(f"Blackjack server listening on {host}:{port}")

    def serve_forever(self) -> None:
        """Accept connections until shutdown() is called."""
        if self._listener is None:
            self.start()
        listener = self._listener
        try:
            while not self._stop_event.is_set():
                try:
                    conn, addr = listener.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop_event.is_set():
                        break
                    log.warning(f"Accept failed: {e}")
                    continue
                self._spawn(conn, addr)
        finally:
            log.info("Accept loop stopped")

    def _spawn(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        handler = ConnectionHandler(conn, addr, self.records, self.config, self.rules)
        thread = threading.Thread(
            target=self._run_handler,
            args=(handler,),
            name=f"client-{addr[0]}:{addr[1]}",
            daemon=True,
        )
        with self._lock:
            self._handlers.add(handler)
            self._threads.add(thread)
        thread.start()

    def _run_handler(self, handler: ConnectionHandler) -> None:
        try:
            handler.run()
        finally:
            with self._lock:
                self._handlers.discard(handler)
                self._threads.discard(threading.current_thread())

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop accepting, close the listening socket and end every connection."""
        if self._stop_event.is_set():
            return
        log.info("Shutting down...")
        self._stop_event.set()
        if self._listener is not None:
            self._listener.close()

        with self._lock:
            handlers = list(self._handlers)
            threads = list(self._threads)
        for handler in handlers:
            handler.stop()
        for thread in threads:
            thread.join(timeout)
        log.info(f"Server stopped ({len(handlers)} connections closed)")
