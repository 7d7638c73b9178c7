"""Run a local web proxy that reaches destinations through a configured transport."""

from __future__ import annotations

import socket
import threading

from .config import ConfigError, new_stream_dialer, split_host_port
from .httpproxy import new_connect_handler, serve

__all__ = ["Proxy", "run_proxy"]


def _listen(address: str) -> socket.socket:
    host, port = split_host_port(address)
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    if not host:
        return socket.create_server(("", int(port or 0)))
    return socket.create_server((host, int(port or 0)), family=family)


def _format_address(sock: socket.socket) -> str:
    host, port = sock.getsockname()[:2]
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


class Proxy:
    """A running local proxy."""

    def __init__(self, listener: socket.socket, thread: threading.Thread):
        self._listener = listener
        self._thread = thread
        self._address = _format_address(listener)

    def address(self):
        """Return the host and port the proxy is bound to."""
        return self._address

    def stop(self, timeout_seconds):
        """Stop accepting connections, waiting at most ``timeout_seconds``."""
        self._listener.close()
        self._thread.join(timeout_seconds)


def run_proxy(local_address, transport_config):
    """Start a proxy on ``local_address`` dialing through ``transport_config``."""
    try:
        dialer = new_stream_dialer(transport_config)
    except ConfigError as exc:
        raise ConfigError(f"could not create dialer: {exc}") from exc
    try:
        listener = _listen(local_address)
    except (OSError, ValueError) as exc:
        raise OSError(f"could not listen on address {local_address}: {exc}") from exc
    thread = threading.Thread(
        target=serve, args=(new_connect_handler(dialer), listener), daemon=True
    )
    thread.start()
    return Proxy(listener, thread)