# kvwire

This package has an in-memory key-value server and a command-line client
that goes with it. The two talk over TCP using a small binary protocol in
which every message starts with its length.

## Installing

    pip install .

## Running the server

    kvwire-server [--host HOST] [--port PORT]

By default the server listens on `0.0.0.0`, port 1234. It runs in one
thread and serves many clients at once, using non-blocking sockets and the
`selectors` module. Every client shares the same store. When the server
cannot bind its address, it prints the error number and exits with status 1.
To stop it, press Ctrl-C.

## Using the client

Each run of the client sends one command and prints the reply. Put any
options before the command:

    kvwire-client set greeting hello
    kvwire-client get greeting
    kvwire-client --host 127.0.0.1 --port 1234 del greeting

By default it connects to `127.0.0.1:1234`. The reply is printed like this:

    server says: [0] hello

The store understands these commands:

| Command         | Effect                              | Status on success |
|-----------------|-------------------------------------|-------------------|
| `get KEY`       | returns the value stored under KEY  | 0 (`Status.OK`)   |
| `set KEY VALUE` | stores VALUE under KEY              | 0                 |
| `del KEY`       | removes KEY if it exists            | 0                 |

When `get` does not find the key, the status is 2 (`Status.NX`). A command
the store does not know, or one with the wrong number of arguments, gets
status 1 (`Status.ERR`).

The client limits a request to 4096 bytes. If a command is larger than
that, the client sends nothing and prints nothing. The client also rejects
any reply over 4096 bytes. The server accepts messages up to 32 MiB.

## Using the package from Python

```python
from kvwire.client import request

print(request(["set", "k", "v"], "127.0.0.1", 1234))
print(request(["get", "k"], "127.0.0.1", 1234))
```

`request` returns a `kvwire.protocol.Response` with two fields, `status` and
`data`.

Other modules:

- `kvwire.client` also provides `send_request`, `read_response` and
  `recv_exact`. These work on a socket you have already opened.
- `kvwire.protocol` provides the framing functions `encode_request`,
  `parse_request`, `encode_response` and `decode_response`. Each raises
  `ProtocolError`, a subclass of `ValueError`, when a message is malformed or
  over its size limit.
- `kvwire.store.KeyValueStore` runs commands with `execute(cmd)` and returns
  a `Response`. It supports `len()` and `in`.
- `kvwire.server.Server` is the event loop. Its methods are `poll_once`,
  `serve_forever` and `close`, and it can be used as a context manager.
- `kvwire.server.Connection` holds the buffering and request handling for
  one client. It does not use a socket.

## Wire format

Every integer is a 32-bit little-endian value.

- Request: the total length, then the number of strings, then each string as
  its length followed by its bytes.
- Response: the total length, then the status code, then the data.

## Limitations

All data lives in memory. Nothing is written to disk, so the data is lost
when the server stops. The only commands are `get`, `set` and `del`.