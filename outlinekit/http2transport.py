"""Run a local HTTP proxy that dials through a transport until interrupted."""

from __future__ import annotations

import argparse
import logging
import threading

from .config import ConfigError, new_stream_dialer
from .httpproxy import new_connect_handler, serve
from .mobileproxy import _format_address, _listen

__all__ = ["main"]

_log = logging.getLogger(__name__)


def _fatal(message: str) -> None:
    _log.error(message)
    raise SystemExit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Local HTTP proxy over a transport.")
    parser.add_argument("-transport", "--transport", default="", help="Transport config")
    parser.add_argument(
        "-localAddr", "--localAddr", default="localhost:1080", help="Local proxy address"
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        dialer = new_stream_dialer(args.transport)
    except ConfigError as exc:
        _fatal(f"Could not create dialer: {exc}")
    try:
        listener = _listen(args.localAddr)
    except (OSError, ValueError) as exc:
        _fatal(f"Could not listen on address {args.localAddr}: {exc}")
    _log.info("Proxy listening on %s", _format_address(listener))
    thread = threading.Thread(
        target=serve, args=(new_connect_handler(dialer), listener), daemon=True
    )
    thread.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    _log.info("Shutting down")
    listener.close()
    thread.join(5)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())