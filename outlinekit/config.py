"""Build stream and packet dialers from a text transport config.

A config is a ``|``-separated chain of parts, each wrapping the dialer built
from the parts before it. Supported parts are ``socks5://host:port``,
``split:<number>`` and ``ss://<base64 cipher info>@host:port[?prefix=...]``.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
import socket
from dataclasses import dataclass
from urllib.parse import SplitResult, parse_qs, unquote, urlsplit

__all__ = [
    "ConfigError",
    "TCPStreamDialer",
    "UDPPacketDialer",
    "ShadowsocksConfig",
    "new_stream_dialer",
    "new_packet_dialer",
    "parse_shadowsocks_url",
    "parse_string_prefix",
]

_SHADOWSOCKS_CIPHERS = frozenset(
    {"chacha20-ietf-poly1305", "aes-256-gcm", "aes-192-gcm", "aes-128-gcm"}
)
_BASE64_URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")
_INT_RE = re.compile(r"^[+-]?[0-9]+$")


class ConfigError(ValueError):
    """Raised when a transport config cannot be turned into a dialer."""


def split_host_port(address: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port`` into host and port strings."""
    if address.startswith("["):
        end = address.find("]")
        if end < 0 or address[end + 1 : end + 2] != ":":
            raise ValueError(f"invalid address {address!r}")
        return address[1:end], address[end + 2 :]
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    if ":" in host:
        raise ValueError(f"too many colons in address {address!r}")
    return host, port


def _host_and_port(address: str) -> tuple[str, int]:
    host, port = split_host_port(address)
    if not port.isdigit():
        raise ValueError(f"invalid port in address {address!r}")
    return host, int(port)


class TCPStreamDialer:
    """Dials plain TCP connections."""

    def dial(self, address, timeout=None):
        """Connect to ``host:port`` and return the connected socket."""
        return socket.create_connection(_host_and_port(address), timeout=timeout)


class UDPPacketDialer:
    """Creates UDP sockets connected to a remote address."""

    def dial(self, address, timeout=None):
        """Return a UDP socket connected to ``host:port``."""
        host, port = _host_and_port(address)
        last_error: OSError | None = None
        for family, kind, proto, _, addr in socket.getaddrinfo(
            host, port, type=socket.SOCK_DGRAM
        ):
            sock = socket.socket(family, kind, proto)
            try:
                sock.settimeout(timeout)
                sock.connect(addr)
                return sock
            except OSError as exc:
                sock.close()
                last_error = exc
        raise last_error or OSError(f"no address found for {address!r}")


class _SplitConnection:
    """Connection that sends its first bytes in a separate write."""

    def __init__(self, conn, prefix_bytes: int):
        self._conn = conn
        self._remaining = prefix_bytes

    def sendall(self, data) -> None:
        data = bytes(data)
        if self._remaining > 0:
            head = data[: self._remaining]
            self._conn.sendall(head)
            self._remaining -= len(head)
            data = data[len(head) :]
        if data:
            self._conn.sendall(data)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._conn.close()

    def __getattr__(self, name):
        return getattr(self._conn, name)


class _SplitStreamDialer:
    def __init__(self, inner, prefix_bytes: int):
        self.inner = inner
        self.prefix_bytes = prefix_bytes

    def dial(self, address, timeout=None):
        return _SplitConnection(self.inner.dial(address, timeout), self.prefix_bytes)


def _recv_exact(conn, size: int) -> bytes:
    chunks = bytearray()
    while len(chunks) < size:
        chunk = conn.recv(size - len(chunks))
        if not chunk:
            raise ConnectionError("unexpected EOF from SOCKS5 proxy")
        chunks += chunk
    return bytes(chunks)


class _Socks5StreamDialer:
    def __init__(self, inner, proxy_address: str):
        self.inner = inner
        self.proxy_address = proxy_address

    def dial(self, address, timeout=None):
        host, port = _host_and_port(address)
        try:
            ip = ipaddress.ip_address(host)
            target = (b"\x01" if ip.version == 4 else b"\x04") + ip.packed
        except ValueError:
            name = host.encode("idna")
            if len(name) > 255:
                raise ValueError(f"host name too long: {host!r}") from None
            target = b"\x03" + bytes([len(name)]) + name
        conn = self.inner.dial(self.proxy_address, timeout)
        try:
            conn.sendall(b"\x05\x01\x00")
            if _recv_exact(conn, 2) != b"\x05\x00":
                raise ConnectionError("SOCKS5 proxy refused the authentication method")
            conn.sendall(b"\x05\x01\x00" + target + port.to_bytes(2, "big"))
            version, reply, _, atyp = _recv_exact(conn, 4)
            if version != 5 or reply != 0:
                raise ConnectionError(f"SOCKS5 connect failed with reply code {reply}")
            if atyp == 1:
                _recv_exact(conn, 4 + 2)
            elif atyp == 4:
                _recv_exact(conn, 16 + 2)
            elif atyp == 3:
                _recv_exact(conn, _recv_exact(conn, 1)[0] + 2)
            else:
                raise ConnectionError(f"SOCKS5 reply has unknown address type {atyp}")
        except BaseException:
            conn.close()
            raise
        return conn


@dataclass(frozen=True)
class ShadowsocksConfig:
    """Server address, cipher and optional salt prefix of a Shadowsocks part."""

    server_address: str
    cipher: str
    secret: str
    prefix: bytes = b""


def _parse_part(part: str) -> SplitResult:
    part = part.strip()
    if not part:
        raise ConfigError("empty config part")
    try:
        return urlsplit(part)
    except ValueError as exc:
        raise ConfigError(f"failed to parse config part: {exc}") from exc


def _userinfo_and_host(url: SplitResult) -> tuple[str, str]:
    userinfo, sep, host = url.netloc.rpartition("@")
    return (userinfo if sep else ""), host


def new_stream_dialer(transport_config):
    """Create a stream dialer from ``transport_config``."""
    dialer = TCPStreamDialer()
    transport_config = transport_config.strip()
    if not transport_config:
        return dialer
    for part in transport_config.split("|"):
        dialer = _stream_dialer_from_part(dialer, part)
    return dialer


def _stream_dialer_from_part(inner, part: str):
    url = _parse_part(part)
    if url.scheme == "socks5":
        return _Socks5StreamDialer(inner, _userinfo_and_host(url)[1])
    if url.scheme == "ss":
        config = parse_shadowsocks_url(url)
        raise ConfigError(
            f"shadowsocks transport to {config.server_address} is not available"
        )
    if url.scheme == "split":
        text = url.path
        if not _INT_RE.match(text):
            raise ConfigError(
                f"prefixBytes is not a number: {text}. "
                "Split config should be in split:<number> format"
            )
        return _SplitStreamDialer(inner, int(text))
    raise ConfigError(f"config scheme '{url.scheme}' is not supported")


def new_packet_dialer(transport_config):
    """Create a packet dialer from ``transport_config``."""
    dialer = UDPPacketDialer()
    transport_config = transport_config.strip()
    if not transport_config:
        return dialer
    for part in transport_config.split("|"):
        dialer = _packet_dialer_from_part(dialer, part)
    return dialer


def _packet_dialer_from_part(inner, part: str):
    url = _parse_part(part)
    if url.scheme == "socks5":
        raise ConfigError("socks5 is not supported for PacketDialers")
    if url.scheme == "ss":
        config = parse_shadowsocks_url(url)
        raise ConfigError(
            f"shadowsocks transport to {config.server_address} is not available"
        )
    if url.scheme == "split":
        raise ConfigError("split is not supported for PacketDialers")
    raise ConfigError(f"config scheme '{url.scheme}' is not supported")


def parse_shadowsocks_url(url):
    """Parse an ``ss://`` URL (string or split result) into a ShadowsocksConfig."""
    if isinstance(url, str):
        url = urlsplit(url.strip())
    userinfo, host = _userinfo_and_host(url)
    if not host:
        raise ConfigError("host not specified")
    if not _BASE64_URL_RE.match(userinfo) or len(userinfo) % 4 == 1:
        raise ConfigError(f"failed to decode cipher info [{userinfo}]: illegal base64 data")
    try:
        decoded = base64.urlsafe_b64decode(userinfo + "=" * (-len(userinfo) % 4))
        cipher_info = decoded.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ConfigError(f"failed to decode cipher info [{userinfo}]: {exc}") from exc
    cipher, sep, remainder = cipher_info.partition(":")
    if not sep:
        raise ConfigError("invalid cipher info: no ':' separator")
    if cipher.lower() not in _SHADOWSOCKS_CIPHERS:
        raise ConfigError(f"failed to create cipher: unsupported cipher {cipher}")
    prefix = b""
    values = parse_qs(url.query, keep_blank_values=True).get("prefix")
    if values and values[0]:
        try:
            prefix = parse_string_prefix(values[0])
        except ValueError as exc:
            raise ConfigError(f"failed to parse prefix: {exc}") from exc
    return ShadowsocksConfig(unquote(host), cipher.lower(), remainder, prefix)


def parse_string_prefix(text):
    """Map each character of ``text`` to one byte; code points above 255 are rejected."""
    codes = [ord(ch) for ch in text]
    for code in codes:
        if code > 0xFF:
            raise ValueError(f"character out of range: {code}")
    return bytes(codes)