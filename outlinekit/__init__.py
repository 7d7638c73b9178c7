"""Transport dialers from text configs, a local HTTP proxy, DNS connectivity checks and commands."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "connectivity",
    "errnames",
    "httpproxy",
    "mobileproxy",
    "fetch_proxy",
    "http2transport",
    "outline_connectivity",
    "outline_fetch",
]