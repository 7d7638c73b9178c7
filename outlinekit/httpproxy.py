"""A local HTTP proxy that handles CONNECT and absolute-URL requests."""

from __future__ import annotations

import http
import http.client
import select
import socket
import threading
from urllib.parse import urlsplit

from .config import split_host_port

__all__ = ["ConnectHandler", "new_connect_handler", "serve"]

_MAX_HEAD = 64 * 1024
_HOP_BY_HOP = frozenset({"transfer-encoding", "content-length", "connection"})


class _BadRequest(Exception):
    pass


def _read_head(conn) -> tuple[bytes, bytes]:
    data = b""
    while b"\r\n\r\n" not in data:
        if len(data) > _MAX_HEAD:
            raise _BadRequest("request head too large")
        chunk = conn.recv(4096)
        if not chunk:
            raise _BadRequest("connection closed before request head")
        data += chunk
    head, _, rest = data.partition(b"\r\n\r\n")
    return head, rest


def _parse_head(head: bytes) -> tuple[str, str, list[tuple[str, str]]]:
    lines = head.decode("iso-8859-1").split("\r\n")
    parts = lines[0].split(" ", 2)
    if len(parts) != 3:
        raise _BadRequest(f"malformed request line {lines[0]!r}")
    method, target, _ = parts
    headers = []
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep:
            raise _BadRequest(f"malformed header line {line!r}")
        headers.append((name.strip(), value.strip()))
    return method, target, headers


def _send_error(conn, message: str, status: int) -> None:
    body = (message + "\n").encode()
    phrase = http.HTTPStatus(status).phrase
    head = (
        f"HTTP/1.1 {status} {phrase}\r\n"
        "Content-Type: text/plain; charset=utf-8\r\n"
        "X-Content-Type-Options: nosniff\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n\r\n"
    )
    conn.sendall(head.encode("iso-8859-1") + body)


def _copy(source, destination) -> None:
    while True:
        try:
            chunk = source.recv(65536)
        except OSError:
            return
        if not chunk:
            return
        try:
            destination.sendall(chunk)
        except OSError:
            return


class ConnectHandler:
    """Serves proxy requests, dialing CONNECT targets through a stream dialer.

    It is suitable as a localhost proxy; it has no authentication and may be
    probed if exposed publicly.
    """

    def __init__(self, dialer):
        self.dialer = dialer

    def handle_connection(self, conn):
        """Serve one proxy request on ``conn`` and close it."""
        try:
            try:
                head, rest = _read_head(conn)
                method, target, headers = _parse_head(head)
            except _BadRequest:
                _send_error(conn, "Bad Request", 400)
                return
            if method == "CONNECT":
                self._handle_connect(conn, target, rest)
            elif urlsplit(target).netloc:
                self._handle_proxy_request(conn, method, target, headers, rest)
            else:
                _send_error(conn, "Not Found", 404)
        except OSError:
            pass
        finally:
            conn.close()

    def _handle_connect(self, conn, authority: str, rest: bytes) -> None:
        try:
            _, port = split_host_port(authority)
        except ValueError:
            _send_error(conn, "Authority is not a valid host:port", 400)
            return
        if not port:
            _send_error(conn, "Port number must be specified", 400)
            return
        try:
            target = self.dialer.dial(authority, None)
        except Exception:
            _send_error(conn, "Failed to connect to target", 503)
            return
        try:
            conn.sendall(b"HTTP/1.1 200 Connection established\r\n\r\n")

            def upstream() -> None:
                try:
                    if rest:
                        target.sendall(rest)
                    _copy(conn, target)
                finally:
                    try:
                        target.shutdown(socket.SHUT_WR)
                    except OSError:
                        pass

            worker = threading.Thread(target=upstream, daemon=True)
            worker.start()
            _copy(target, conn)
        finally:
            target.close()

    def _handle_proxy_request(self, conn, method, target, headers, rest) -> None:
        url = urlsplit(target)
        length = next(
            (int(v) for k, v in headers if k.lower() == "content-length" and v.isdigit()),
            0,
        )
        body = rest
        while len(body) < length:
            chunk = conn.recv(length - len(body))
            if not chunk:
                break
            body += chunk
        body = body[:length]
        connection_class = (
            http.client.HTTPSConnection if url.scheme == "https" else http.client.HTTPConnection
        )
        path = url.path or "/"
        if url.query:
            path += "?" + url.query
        try:
            client = connection_class(url.netloc, timeout=30)
            try:
                client.putrequest(method, path, skip_accept_encoding=True)
                for name, value in headers:
                    if name.lower() != "host":
                        client.putheader(name, value)
                client.endheaders(body or None)
                response = client.getresponse()
                payload = response.read()
                response_headers = response.getheaders()
            finally:
                client.close()
        except (OSError, http.client.HTTPException, ValueError):
            _send_error(conn, "Failed to fetch destination", 503)
            return
        lines = ["HTTP/1.1 200 OK"]
        lines += [f"{k}: {v}" for k, v in response_headers if k.lower() not in _HOP_BY_HOP]
        lines += [f"Content-Length: {len(payload)}", "Connection: close", "", ""]
        try:
            conn.sendall("\r\n".join(lines).encode("iso-8859-1") + payload)
        except OSError:
            pass


def new_connect_handler(dialer):
    """Create a ConnectHandler that dials targets with ``dialer``."""
    return ConnectHandler(dialer)


def serve(handler, listener):
    """Accept connections on ``listener`` until it is closed, one thread each."""
    while True:
        try:
            if listener.fileno() == -1:
                return
            ready, _, _ = select.select([listener], [], [], 0.2)
            if not ready:
                continue
            conn, _ = listener.accept()
        except (OSError, ValueError):
            return
        threading.Thread(target=handler.handle_connection, args=(conn,), daemon=True).start()