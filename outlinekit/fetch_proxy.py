"""Fetch a URL through a temporary local proxy and print the body."""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
import urllib.error
import urllib.request

from .config import ConfigError
from .mobileproxy import run_proxy

__all__ = ["main"]

_log = logging.getLogger(__name__)


def _fatal(message: str) -> None:
    _log.error(message)
    raise SystemExit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fetch a URL through a local proxy.")
    parser.add_argument("-transport", "--transport", default="", help="Transport config")
    parser.add_argument("url", nargs="?", default="")
    args = parser.parse_args(argv)
    if not args.url:
        _fatal("Need to pass the URL to fetch in the command-line")
    try:
        proxy = run_proxy("localhost:0", args.transport)
    except (ConfigError, OSError) as exc:
        _fatal(f"Could not start proxy: {exc}")
    try:
        proxy_url = f"http://{proxy.address()}"
        opener = urllib.request.build_opener(
            urllib.request.ProxyHandler({"http": proxy_url, "https": proxy_url})
        )
        try:
            response = opener.open(args.url, timeout=30)
        except urllib.error.HTTPError as exc:
            response = exc
        except (urllib.error.URLError, OSError, ValueError) as exc:
            _fatal(f"URL GET failed: {exc}")
        with response:
            try:
                shutil.copyfileobj(response, sys.stdout.buffer)
                sys.stdout.buffer.flush()
            except OSError as exc:
                _fatal(f"Read of page body failed: {exc}")
    finally:
        proxy.stop(5)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())