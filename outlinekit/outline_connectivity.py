"""Check DNS resolver reachability through a transport and print JSON records."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

from .config import ConfigError, new_packet_dialer, new_stream_dialer
from .connectivity import (
    ConnectivityError,
    DialerEndpoint,
    check_resolver_packet_connectivity,
    check_resolver_stream_connectivity,
)

__all__ = ["make_error_record", "unwrap_all", "main"]

_log = logging.getLogger(__name__)


def _fatal(message: str) -> None:
    _log.error(message)
    raise SystemExit(1)


def unwrap_all(err):
    """Follow the chain of causes of ``err`` down to the innermost one."""
    seen = {id(err)}
    while err.__cause__ is not None and id(err.__cause__) not in seen:
        err = err.__cause__
        seen.add(id(err))
    return err


def make_error_record(err):
    """Describe ``err`` as a JSON-ready dict, omitting empty fields; None for no error."""
    if err is None:
        return None
    if isinstance(err, ConnectivityError):
        record = {"op": err.op, "posix_error": err.posix_error, "msg": str(unwrap_all(err))}
    else:
        record = {"msg": str(err)}
    return {key: value for key, value in record.items() if value}


def _join_host_port(host: str, port: str) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Test DNS resolver connectivity.")
    parser.add_argument("-v", action="store_true", help="Enable debug output")
    parser.add_argument("-transport", "--transport", default="", help="Transport config")
    parser.add_argument("-domain", "--domain", default="example.com.")
    parser.add_argument("-resolver", "--resolver", default="8.8.8.8,2001:4860:4860::8888")
    parser.add_argument("-proto", "--proto", default="tcp,udp")
    args = parser.parse_args(argv)
    if args.v:
        logging.basicConfig(stream=sys.stderr, level=logging.DEBUG)

    success = False
    for resolver_host in args.resolver.split(","):
        resolver_address = _join_host_port(resolver_host.strip(), "53")
        for proto in args.proto.split(","):
            proto = proto.strip()
            test_time = datetime.now(timezone.utc).replace(microsecond=0)
            test_err = None
            duration = 0.0
            try:
                if proto == "tcp":
                    endpoint = DialerEndpoint(new_stream_dialer(args.transport), resolver_address)
                    duration = check_resolver_stream_connectivity(endpoint, args.domain)
                elif proto == "udp":
                    endpoint = DialerEndpoint(new_packet_dialer(args.transport), resolver_address)
                    duration = check_resolver_packet_connectivity(endpoint, args.domain)
                else:
                    _fatal(f'Invalid proto {proto}. Must be "tcp" or "udp"')
            except ConfigError as exc:
                _fatal(f"Failed to create dialer: {exc}")
            except ConnectivityError as exc:
                test_err = exc
                duration = exc.duration
            _log.debug("Test error: %s", test_err)
            if test_err is None:
                success = True
            record = {
                "resolver": resolver_address,
                "proto": proto,
                "time": test_time.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "duration_ms": int(duration * 1000),
                "error": make_error_record(test_err),
            }
            print(json.dumps(record, ensure_ascii=False), flush=True)
    return 0 if success else 1


if __name__ == "__main__":
    raise SystemExit(main())