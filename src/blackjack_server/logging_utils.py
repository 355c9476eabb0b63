import logging
import os
from typing import Any, Optional, Tuple

# Environment switch:
#   LOG_LEVEL=DEBUG / INFO / WARNING / ERROR
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Call once at program start."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def format_peer(addr: Optional[Tuple[str, int]]) -> str:
    return f"{addr[0]}:{addr[1]}" if addr else "-"


def log_message(
    logger: logging.Logger,
    direction: str,               # "IN" / "OUT"
    addr: Optional[Tuple[str, int]],
    line: str,
    parsed: Optional[Any] = None,
    note: str = "",
    level: int = logging.DEBUG,
) -> None:
    """
    Unified protocol frame log.
    addr: (ip, port) if known, else None.
    parsed: decoded message object, printed as a summary.
    """
    if not logger.isEnabledFor(level):
        return
    base = f"[{direction}] {format_peer(addr)} len={len(line)}"
    if note:
        base += f" | {note}"
    if parsed is not None:
        base += f" | parsed={parsed}"
    else:
        base += f" | raw={line.rstrip()}"
    logger.log(level, base)
