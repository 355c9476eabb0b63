import argparse
import signal
import sys
from typing import List, Optional

from ..logging_utils import get_logger, setup_logging
from .config import ConfigError, load_config
from .listener import BlackjackServer
from .records import RecordsStore

log = get_logger("server.main")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Authoritative blackjack game server")
    parser.add_argument("--config", type=str, default=None,
                        help="Path to a YAML configuration file")
    parser.add_argument("--host", type=str, default=None, help="Address to bind")
    parser.add_argument("--port", type=int, default=None, help="TCP port (default 9999)")
    parser.add_argument("--records-file", type=str, default=None,
                        help="JSON file holding player records")
    parser.add_argument("--log-level", type=str, default=None,
                        help="DEBUG, INFO, WARNING or ERROR")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config, overrides={
            "host": args.host,
            "port": args.port,
            "records_file": args.records_file,
            "log_level": args.log_level,
        })
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)
    log.info(f"Configuration: {config}")

    records = RecordsStore(config.records_file, max_records=config.max_records)
    records.load()

    server = BlackjackServer(config, records)
    try:
        server.start()
    except OSError as e:
        log.error(f"Cannot bind {config.host}:{config.port}: {e}")
        return 1

    def _stop(signum, frame):
        log.info(f"Received signal {signum}")
        server.shutdown()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    try:
        server.serve_forever()
    finally:
        server.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
