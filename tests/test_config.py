import base64
import socket
import threading

import pytest

from outlinekit.config import (
    ConfigError,
    ShadowsocksConfig,
    TCPStreamDialer,
    UDPPacketDialer,
    new_packet_dialer,
    new_stream_dialer,
    parse_shadowsocks_url,
    parse_string_prefix,
)


def _ss_url(info: str, rest: str) -> str:
    encoded = base64.urlsafe_b64encode(info.encode()).decode().rstrip("=")
    return f"ss://{encoded}@{rest}"


def _start_echo_server(expected_len: int):
    """Start a TCP server that reads expected_len bytes and echoes them back."""
    server = socket.create_server(("127.0.0.1", 0))
    received = bytearray()

    def serve():
        conn, _ = server.accept()
        with conn:
            while len(received) < expected_len:
                chunk = conn.recv(1024)
                if not chunk:
                    break
                received.extend(chunk)
            conn.sendall(bytes(received))

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    return server, thread, received


def _recv_exactly(conn, size: int) -> bytes:
    data = bytearray()
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            break
        data.extend(chunk)
    return bytes(data)


def test_empty_config_stream_dialer_round_trip():
    dialer = new_stream_dialer("   ")
    assert isinstance(dialer, TCPStreamDialer)
    payload = b"plain tcp"
    server, thread, received = _start_echo_server(len(payload))
    port = server.getsockname()[1]
    conn = dialer.dial(f"127.0.0.1:{port}", 5)
    try:
        conn.sendall(payload)
        echoed = _recv_exactly(conn, len(payload))
    finally:
        conn.close()
        thread.join(5)
        server.close()
    assert echoed == payload
    assert bytes(received) == payload


def test_empty_config_packet_dialer_round_trip():
    dialer = new_packet_dialer("")
    assert isinstance(dialer, UDPPacketDialer)
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))
    server.settimeout(5)
    port = server.getsockname()[1]
    conn = dialer.dial(f"127.0.0.1:{port}", 5)
    try:
        conn.send(b"ping")
        data, client_addr = server.recvfrom(512)
        server.sendto(b"pong:" + data, client_addr)
        reply = conn.recv(512)
    finally:
        conn.close()
        server.close()
    assert data == b"ping"
    assert reply == b"pong:ping"


def test_unsupported_scheme():
    with pytest.raises(ConfigError, match="config scheme 'foo' is not supported"):
        new_stream_dialer("foo:bar")


def test_empty_part():
    with pytest.raises(ConfigError, match="empty config part"):
        new_stream_dialer("split:2||split:3")


def test_split_not_a_number():
    with pytest.raises(ConfigError, match="prefixBytes is not a number"):
        new_stream_dialer("split:abc")


def test_packet_rejects_socks5_and_split():
    with pytest.raises(ConfigError, match="socks5 is not supported for PacketDialers"):
        new_packet_dialer("socks5://localhost:1080")
    with pytest.raises(ConfigError, match="split is not supported for PacketDialers"):
        new_packet_dialer("split:3")


def test_split_dialer_delivers_all_bytes():
    payload = b"hello world"
    server, thread, received = _start_echo_server(len(payload))
    dialer = new_stream_dialer("split:3")
    port = server.getsockname()[1]
    conn = dialer.dial(f"127.0.0.1:{port}", 5)
    try:
        conn.sendall(payload)
        echoed = _recv_exactly(conn, len(payload))
    finally:
        conn.close()
        thread.join(5)
        server.close()
    assert echoed == payload
    assert bytes(received) == payload


def test_parse_shadowsocks_url():
    config = parse_shadowsocks_url(
        _ss_url("chacha20-ietf-poly1305:secret", "example.com:8388?prefix=%16%03")
    )
    assert config == ShadowsocksConfig(
        "example.com:8388", "chacha20-ietf-poly1305", "secret", b"\x16\x03"
    )


def test_parse_shadowsocks_url_errors():
    with pytest.raises(ConfigError, match="host not specified"):
        parse_shadowsocks_url("ss://")
    with pytest.raises(ConfigError, match="no ':' separator"):
        parse_shadowsocks_url(_ss_url("nocolon", "example.com:8388"))
    with pytest.raises(ConfigError, match="failed to decode cipher info"):
        parse_shadowsocks_url("ss://a=b@example.com:8388")


def test_ss_part_reports_bad_host():
    with pytest.raises(ConfigError, match="host not specified"):
        new_stream_dialer("ss://")


def test_parse_string_prefix_round_trip():
    text = "".join(chr(i) for i in range(256))
    assert parse_string_prefix(text) == bytes(range(256))


def test_parse_string_prefix_out_of_range():
    with pytest.raises(ValueError, match="character out of range: 256"):
        parse_string_prefix("a" + chr(256))