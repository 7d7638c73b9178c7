"""DNS-resolver connectivity checks over stream and packet transports."""

from __future__ import annotations

import socket
import struct
import time
from dataclasses import dataclass
from typing import Any

import dns.exception
import dns.message
import dns.name
import dns.rdatatype

from .config import split_host_port
from .errnames import errno_name

__all__ = [
    "ConnectivityError",
    "TCPEndpoint",
    "UDPEndpoint",
    "DialerEndpoint",
    "is_timeout",
    "make_error",
    "check_resolver_stream_connectivity",
    "check_resolver_packet_connectivity",
]

_DEFAULT_TIMEOUT = 5.0


class ConnectivityError(Exception):
    """A failed connectivity check: the operation, POSIX code and underlying error."""

    def __init__(self, op: str, posix_error: str, err: BaseException):
        super().__init__(op, posix_error, err)
        self.op = op
        self.posix_error = posix_error
        self.err = err
        self.duration = 0.0
        self.__cause__ = err

    def __str__(self) -> str:
        return f"{self.op}: {self.err}"


def _address(address: str) -> tuple[str, int]:
    host, port = split_host_port(address)
    return host, int(port)


@dataclass
class TCPEndpoint:
    """A TCP server address."""

    address: str

    def connect(self, timeout=None):
        return socket.create_connection(_address(self.address), timeout=timeout)


@dataclass
class UDPEndpoint:
    """A UDP server address."""

    address: str

    def connect(self, timeout=None):
        host, port = _address(self.address)
        family, kind, proto, _, addr = socket.getaddrinfo(
            host, port, type=socket.SOCK_DGRAM
        )[0]
        sock = socket.socket(family, kind, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(addr)
        except BaseException:
            sock.close()
            raise
        return sock


@dataclass
class DialerEndpoint:
    """A fixed address reached through a dialer."""

    dialer: Any
    address: str

    def connect(self, timeout=None):
        return self.dialer.dial(self.address, timeout)


def _chain(err: BaseException | None):
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__ or err.__context__


def is_timeout(err):
    """Whether ``err`` or anything it wraps is a timeout."""
    return any(
        isinstance(e, (TimeoutError, socket.timeout, dns.exception.Timeout))
        for e in _chain(err)
    )


def make_error(op, err):
    """Wrap ``err`` in a ConnectivityError, recording its POSIX error name."""
    code = ""
    for e in _chain(err):
        if isinstance(e, OSError) and e.errno is not None:
            code = errno_name(e.errno)
            break
    else:
        if is_timeout(err):
            code = "ETIMEDOUT"
    return ConnectivityError(op, code, err)


def _recv_exact(conn, size: int) -> bytes:
    data = bytearray()
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            raise EOFError("unexpected EOF")
        data += chunk
    return bytes(data)


def _run_check(connect, test_domain: str, timeout, stream: bool) -> float:
    deadline = time.monotonic() + (_DEFAULT_TIMEOUT if timeout is None else timeout)
    started = time.monotonic()

    def remaining() -> float:
        return max(deadline - time.monotonic(), 1e-3)

    try:
        try:
            conn = connect(remaining())
        except Exception as exc:
            raise make_error("dial", exc) from exc
        try:
            conn.settimeout(remaining())
            query = dns.message.make_query(
                dns.name.from_text(test_domain), dns.rdatatype.A
            )
            wire = query.to_wire()
            try:
                if stream:
                    conn.sendall(struct.pack("!H", len(wire)) + wire)
                else:
                    conn.send(wire)
            except Exception as exc:
                raise make_error("write", exc) from exc
            try:
                if stream:
                    (length,) = struct.unpack("!H", _recv_exact(conn, 2))
                    reply = _recv_exact(conn, length)
                else:
                    reply = conn.recv(65535)
                dns.message.from_wire(reply)
            except Exception as exc:
                raise make_error("read", exc) from exc
        finally:
            conn.close()
    except ConnectivityError as err:
        err.duration = time.monotonic() - started
        raise
    return time.monotonic() - started


def check_resolver_stream_connectivity(resolver, test_domain, timeout=None):
    """Resolve ``test_domain`` over a stream connection; return the elapsed seconds.

    Raises ConnectivityError on failure. The default timeout is 5 seconds.
    """
    return _run_check(resolver.connect, test_domain, timeout, stream=True)


def check_resolver_packet_connectivity(resolver, test_domain, timeout=None):
    """Resolve ``test_domain`` over a packet connection; return the elapsed seconds.

    Raises ConnectivityError on failure. The default timeout is 5 seconds.
    """
    return _run_check(resolver.connect, test_domain, timeout, stream=False)