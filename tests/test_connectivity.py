import socket
import struct
import threading

import dns.message
import pytest

from outlinekit.config import new_stream_dialer
from outlinekit.connectivity import (
    ConnectivityError,
    DialerEndpoint,
    TCPEndpoint,
    UDPEndpoint,
    check_resolver_packet_connectivity,
    check_resolver_stream_connectivity,
    is_timeout,
    make_error,
)
from outlinekit.errnames import errno_name


def _run_server(handle):
    listener = socket.create_server(("127.0.0.1", 0))

    def loop():
        conn, _ = listener.accept()
        with conn:
            handle(conn)

    thread = threading.Thread(target=loop, daemon=True)
    thread.start()
    return listener, thread


def _address(sock):
    host, port = sock.getsockname()[:2]
    return f"{host}:{port}"


def test_stream_refused():
    listener = socket.create_server(("127.0.0.1", 0))
    address = _address(listener)
    listener.close()
    with pytest.raises(ConnectivityError) as info:
        check_resolver_stream_connectivity(TCPEndpoint(address), "anything")
    assert info.value.op == "dial"
    assert info.value.posix_error == "ECONNREFUSED"
    assert errno_name(info.value.err.errno) == "ECONNREFUSED"


def test_stream_reset():
    def handle(conn):
        conn.recv(1)
        conn.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))

    listener, thread = _run_server(handle)
    with pytest.raises(ConnectivityError) as info:
        check_resolver_stream_connectivity(TCPEndpoint(_address(listener)), "anything")
    thread.join(5)
    listener.close()
    assert info.value.op == "read"
    assert info.value.posix_error == "ECONNRESET"


def test_stream_early_close():
    def handle(conn):
        conn.shutdown(socket.SHUT_WR)
        while conn.recv(1024):
            pass

    listener, thread = _run_server(handle)
    with pytest.raises(ConnectivityError) as info:
        check_resolver_stream_connectivity(TCPEndpoint(_address(listener)), "anything")
    thread.join(5)
    listener.close()
    assert info.value.op == "read"
    assert info.value.posix_error == ""
    assert "unexpected EOF" in str(info.value)
    assert not isinstance(info.value.err, OSError)


def test_stream_timeout():
    release = threading.Event()
    listener, thread = _run_server(lambda conn: release.wait(5))
    with pytest.raises(ConnectivityError) as info:
        check_resolver_stream_connectivity(
            TCPEndpoint(_address(listener)), "anything", timeout=1
        )
    release.set()
    thread.join(5)
    listener.close()
    assert info.value.op == "read"
    assert is_timeout(info.value)
    assert info.value.posix_error == "ETIMEDOUT"
    assert info.value.duration >= 0.5


def _udp_resolver():
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))

    def serve():
        data, client = server.recvfrom(512)
        request = dns.message.from_wire(data)
        server.sendto(dns.message.make_response(request).to_wire(), client)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    return server, thread


def test_packet_ok():
    server, thread = _udp_resolver()
    duration = check_resolver_packet_connectivity(
        UDPEndpoint(_address(server)), "example.com"
    )
    thread.join(5)
    server.close()
    assert duration >= 0


def test_stream_ok_through_dialer_endpoint():
    def handle(conn):
        (length,) = struct.unpack("!H", conn.recv(2))
        data = b""
        while len(data) < length:
            data += conn.recv(length - len(data))
        reply = dns.message.make_response(dns.message.from_wire(data)).to_wire()
        conn.sendall(struct.pack("!H", len(reply)) + reply)

    listener, thread = _run_server(handle)
    endpoint = DialerEndpoint(new_stream_dialer("split:2"), _address(listener))
    duration = check_resolver_stream_connectivity(endpoint, "example.com")
    thread.join(5)
    listener.close()
    assert duration >= 0


def test_make_error_codes():
    timeout_err = make_error("read", socket.timeout("timed out"))
    assert (timeout_err.op, timeout_err.posix_error) == ("read", "ETIMEDOUT")
    plain = make_error("write", ValueError("boom"))
    assert plain.posix_error == ""
    assert str(plain) == "write: boom"
    assert plain.__cause__ is plain.err


def test_is_timeout_walks_cause():
    try:
        try:
            raise TimeoutError("inner")
        except TimeoutError as inner:
            raise RuntimeError("outer") from inner
    except RuntimeError as outer:
        assert is_timeout(outer)
    assert not is_timeout(ValueError("x"))
    assert not is_timeout(None)