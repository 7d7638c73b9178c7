"""Fetch a URL with connections made through a transport and print the body."""

from __future__ import annotations

import argparse
import functools
import http.client
import logging
import shutil
import sys
import urllib.error
import urllib.request

from .config import ConfigError, new_stream_dialer

__all__ = ["main"]

_log = logging.getLogger(__name__)


def _fatal(message: str) -> None:
    _log.error(message)
    raise SystemExit(1)


def _target(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


class _DialerHTTPConnection(http.client.HTTPConnection):
    def __init__(self, *args, dialer, **kwargs):
        super().__init__(*args, **kwargs)
        self._dialer = dialer

    def connect(self):
        self.sock = self._dialer.dial(_target(self.host, self.port), self.timeout)


class _DialerHTTPSConnection(http.client.HTTPSConnection):
    def __init__(self, *args, dialer, **kwargs):
        super().__init__(*args, **kwargs)
        self._dialer = dialer

    def connect(self):
        sock = self._dialer.dial(_target(self.host, self.port), self.timeout)
        self.sock = self._context.wrap_socket(sock, server_hostname=self.host)


class _DialerHTTPHandler(urllib.request.HTTPHandler):
    def __init__(self, dialer):
        super().__init__()
        self._dialer = dialer

    def http_open(self, req):
        return self.do_open(functools.partial(_DialerHTTPConnection, dialer=self._dialer), req)


class _DialerHTTPSHandler(urllib.request.HTTPSHandler):
    def __init__(self, dialer):
        super().__init__()
        self._dialer = dialer

    def https_open(self, req):
        return self.do_open(functools.partial(_DialerHTTPSConnection, dialer=self._dialer), req)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fetch a URL through a transport.")
    parser.add_argument("-transport", "--transport", default="", help="Transport config")
    parser.add_argument("url", nargs="?", default="")
    args = parser.parse_args(argv)
    if not args.url:
        _fatal("Need to pass the URL to fetch in the command-line")
    try:
        dialer = new_stream_dialer(args.transport)
    except ConfigError as exc:
        _fatal(f"Could not create dialer: {exc}")
    opener = urllib.request.build_opener(
        urllib.request.ProxyHandler({}),
        _DialerHTTPHandler(dialer),
        _DialerHTTPSHandler(dialer),
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
    return 0


if __name__ == "__main__":
    raise SystemExit(main())