"""Command-line client that sends one command to the key-value server."""

from __future__ import annotations

import argparse
import socket
import sys
from collections.abc import Iterable, Sequence

from kvwire.protocol import (
    CLIENT_MAX_MSG,
    HEADER_SIZE,
    ProtocolError,
    Response,
    decode_response,
    encode_request,
)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 1234


def recv_exact(sock: socket.socket, n: int) -> bytes:
    """Read exactly n bytes, raising EOFError if the peer closes first."""
    parts = []
    remaining = n
    while remaining > 0:
        chunk = sock.recv(remaining)
        if not chunk:
            raise EOFError("EOF")
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def send_request(sock: socket.socket, cmd: Iterable[str | bytes]) -> None:
    """Send one command frame; raises ProtocolError if it is too long."""
    sock.sendall(encode_request(cmd, CLIENT_MAX_MSG))


def read_response(sock: socket.socket) -> Response:
    """Read one response frame from the server."""
    header = recv_exact(sock, HEADER_SIZE)
    length = int.from_bytes(header, "little")
    if length > CLIENT_MAX_MSG:
        raise ProtocolError("too long")
    try:
        payload = recv_exact(sock, length)
    except EOFError as exc:
        raise ConnectionError("read() error") from exc
    return decode_response(payload)


def request(
    cmd: Iterable[str | bytes],
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Response:
    """Connect, send one command and return the server's response."""
    with socket.create_connection((host, port)) as sock:
        send_request(sock, cmd)
        return read_response(sock)


def main(argv: Sequence[str] | None = None) -> int:
    """Send the command given on the command line and print the reply."""
    parser = argparse.ArgumentParser(description="Send one command to the key-value server.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("cmd", nargs=argparse.REMAINDER)
    args = parser.parse_args(argv)

    try:
        sock = socket.create_connection((args.host, args.port))
    except OSError as exc:
        print(f"[{exc.errno}] connect", file=sys.stderr)
        return 1

    with sock:
        try:
            send_request(sock, args.cmd)
        except (ProtocolError, OSError):
            return 0
        try:
            response = read_response(sock)
        except EOFError:
            print("EOF", file=sys.stderr)
            return 0
        except ProtocolError as exc:
            print(exc, file=sys.stderr)
            return 0
        except OSError:
            print("read() error", file=sys.stderr)
            return 0
    text = response.data.decode("utf-8", errors="replace")
    print(f"server says: [{int(response.status)}] {text}")
    return 0


if __name__ == "__main__":
    sys.exit(main())