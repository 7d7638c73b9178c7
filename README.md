# outlinekit

Build network dialers from a short text config, run a local HTTP proxy that
tunnels `CONNECT` requests through them, and check whether a DNS resolver is
reachable.

## Installation

```
pip install outlinekit
```

For running the test suite:

```
pip install "outlinekit[test]"
```

## Transport configs

A transport config is a list of parts separated by `|`. Each part wraps the
dialer built from the parts before it, starting from a plain TCP dialer
(`TCPStreamDialer`, for streams) or UDP dialer (`UDPPacketDialer`, for
packets). An empty or blank config gives the plain dialer.

| Part | `new_stream_dialer` | `new_packet_dialer` | Meaning |
|------|---------------------|---------------------|---------|
| `socks5://HOST:PORT` | yes | no | Connect through a SOCKS5 proxy (no authentication) |
| `split:N` | yes | no | Send the first `N` bytes written in a separate write |
| `ss://USERINFO@HOST:PORT[?prefix=...]` | parsed, then rejected | parsed, then rejected | See below |

Every dialer has `dial(address, timeout)`, taking `host:port` (or
`[host]:port`) and returning a connected socket-like object.

Any problem with a config raises `outlinekit.config.ConfigError` (a
`ValueError`): an empty part, an unknown scheme, a non-numeric `split`
count, or a part that the kind of dialer does not support.

```python
from outlinekit.config import new_packet_dialer, new_stream_dialer

direct = new_stream_dialer("")
split_first_bytes = new_stream_dialer("split:3")
via_socks = new_stream_dialer("socks5://localhost:1080|split:3")
udp = new_packet_dialer("")
```

### `ss` parts

`parse_shadowsocks_url` accepts an `ss://` URL as a string or as a
`urllib.parse.SplitResult` and returns a frozen `ShadowsocksConfig` with
`server_address`, `cipher`, `secret` and `prefix`. `USERINFO` must be the
URL-safe, unpadded base64 encoding of `cipher:secret`, and the cipher must be
one of `chacha20-ietf-poly1305`, `aes-256-gcm`, `aes-192-gcm` or
`aes-128-gcm` (case-insensitive). The optional `prefix` query value is turned
into bytes by `parse_string_prefix`, which maps each character to one byte
and raises `ValueError` for characters above U+00FF.

## Local proxy

`outlinekit.mobileproxy.run_proxy(local_address, transport_config)` builds a
stream dialer from the config, listens on `local_address` (port `0` picks a
free port) and serves proxy requests on a background thread. It raises
`ConfigError` for a bad config and `OSError` if it cannot listen.

```python
from outlinekit.mobileproxy import run_proxy

proxy = run_proxy("localhost:0", "split:3")
print("proxy listening on", proxy.address())
# ... point an HTTP client at proxy.address() ...
proxy.stop(5)
```

`Proxy.stop(timeout_seconds)` closes the listening socket and waits up to
that many seconds for the accept loop to end.

Lower-level pieces live in `outlinekit.httpproxy`: `new_connect_handler`
builds a `ConnectHandler` from a dialer, `ConnectHandler.handle_connection`
serves one request on an accepted socket, and `serve(handler, listener)`
accepts connections until the listener is closed, one thread each.

The handler behaves as follows:

- `CONNECT host:port` dials the target through the dialer, answers
  `200 Connection established` and relays bytes both ways. A missing or
  invalid port gives `400`; a failed dial gives `503`.
- A request with an absolute URL (`GET http://...`) is fetched directly with
  the standard HTTP client, not through the dialer, and the body and headers
  are returned to the client with status `200`. A failed fetch gives `503`.
- Anything else gives `404`; a malformed request gives `400`.

## Connectivity checks

`outlinekit.connectivity` sends a DNS `A` query for a test domain to a
resolver and returns the elapsed time in seconds. The resolver is an
endpoint with a `connect(timeout)` method: `TCPEndpoint(address)`,
`UDPEndpoint(address)` or `DialerEndpoint(dialer, address)`. The default
timeout is 5 seconds.

Failures raise `ConnectivityError`, whose `op` is `"dial"`, `"write"` or
`"read"`, whose `posix_error` is a name such as `ECONNREFUSED`, `ECONNRESET`
or `ETIMEDOUT` (empty when none applies, e.g. on an early close), whose `err`
is the underlying exception, and whose `duration` is the time spent.

```python
from outlinekit.connectivity import (
    ConnectivityError,
    TCPEndpoint,
    check_resolver_stream_connectivity,
)

try:
    elapsed = check_resolver_stream_connectivity(
        TCPEndpoint("8.8.8.8:53"), "example.com", 5.0
    )
    print("resolved in", elapsed)
except ConnectivityError as err:
    print(err.op, err.posix_error, err)
```

`check_resolver_packet_connectivity` does the same over UDP. `is_timeout`
and `make_error` are the helpers used to classify errors.

`outlinekit.errnames.errno_name` turns an error number into its symbolic
name, falling back to `Error N (0xN)` for unknown codes;
`windows_errno_name` maps Windows socket error numbers (10004 and up) to
POSIX-style names.

## Commands

Fetch a URL with connections made through the transport, printing the body
to standard output:

```
outline-fetch --transport "split:3" https://example.com/
```

Fetch a URL via a temporary local proxy built with `run_proxy`. HTTPS URLs
are tunnelled through the transport; plain HTTP URLs are fetched by the
proxy directly:

```
fetch-proxy --transport "split:3" https://example.com/
```

Run a local HTTP proxy (by default on `localhost:1080`, set with
`--localAddr`) until interrupted with Ctrl-C:

```
http2transport --transport "split:3" --localAddr localhost:1080
```

Test DNS resolution through the transport, printing one JSON record per
resolver and protocol with `resolver`, `proto`, `time`, `duration_ms` and
`error`. Defaults are `--domain example.com.`,
`--resolver 8.8.8.8,2001:4860:4860::8888` and `--proto tcp,udp`; `-v`
enables debug logging. The command exits with status 1 when no test
succeeded:

```
outline-connectivity --transport "" --domain example.com. --resolver 8.8.8.8 --proto tcp,udp
```

Every option can also be written with a single dash (`-transport`).

## What this package does not do

- It has no Shadowsocks transport. `ss://` parts are parsed and checked, but
  building a dialer from one raises `ConfigError`, so `ss` cannot be used in
  any command.
- SOCKS5 parts support only the no-authentication method and only stream
  connections; there is no UDP through SOCKS5 or `split`.
- The local proxy has no authentication of its own and is meant for
  localhost use. Plain (non-`CONNECT`) proxy requests bypass the transport
  and always report status `200` with the fetched body.