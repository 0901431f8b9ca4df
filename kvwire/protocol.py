"""Wire format shared by the key-value server and its client.

Every message is a frame: a little-endian u32 length followed by that many
bytes of payload.  A request payload is a u32 argument count followed by
each argument as a u32 length and its bytes.  A response payload is a u32
status code followed by the value bytes.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

HEADER_SIZE = 4
CLIENT_MAX_MSG = 4096
SERVER_MAX_MSG = 32 << 20
MAX_ARGS = 200 * 1000

_U32 = struct.Struct("<I")


class ProtocolError(ValueError):
    """Raised when a message is malformed or exceeds a size limit."""


class Status(IntEnum):
    """Result code carried at the start of every response."""

    OK = 0
    ERR = 1
    NX = 2


@dataclass
class Response:
    """A status code together with the value bytes that follow it."""

    status: int = Status.OK
    data: bytes = b""


def _as_bytes(arg: str | bytes) -> bytes:
    return arg.encode("utf-8") if isinstance(arg, str) else bytes(arg)


def encode_request(cmd: Iterable[str | bytes], max_msg: int = CLIENT_MAX_MSG) -> bytes:
    """Return the full frame, length header included, for a command."""
    args = [_as_bytes(arg) for arg in cmd]
    length = HEADER_SIZE + sum(HEADER_SIZE + len(arg) for arg in args)
    if length > max_msg:
        raise ProtocolError("too long")
    parts = [_U32.pack(length), _U32.pack(len(args))]
    for arg in args:
        parts.append(_U32.pack(len(arg)))
        parts.append(arg)
    return b"".join(parts)


def parse_request(payload: bytes, max_args: int = MAX_ARGS) -> list[bytes]:
    """Split a request payload (without its length header) into arguments."""
    view = memoryview(payload)
    end = len(view)
    if end < HEADER_SIZE:
        raise ProtocolError("bad request")
    (nstr,) = _U32.unpack_from(view, 0)
    if nstr > max_args:
        raise ProtocolError("bad request")
    pos = HEADER_SIZE
    args: list[bytes] = []
    while len(args) < nstr:
        if pos + HEADER_SIZE > end:
            raise ProtocolError("bad request")
        (size,) = _U32.unpack_from(view, pos)
        pos += HEADER_SIZE
        if pos + size > end:
            raise ProtocolError("bad request")
        args.append(bytes(view[pos:pos + size]))
        pos += size
    if pos != end:
        raise ProtocolError("bad request")
    return args


def encode_response(response: Response) -> bytes:
    """Return the full frame, length header included, for a response."""
    data = bytes(response.data)
    return _U32.pack(HEADER_SIZE + len(data)) + _U32.pack(int(response.status)) + data


def decode_response(payload: bytes) -> Response:
    """Read a response payload (without its length header)."""
    if len(payload) < HEADER_SIZE:
        raise ProtocolError("bad response")
    (code,) = _U32.unpack_from(payload, 0)
    try:
        status: int = Status(code)
    except ValueError:
        status = code
    return Response(status, bytes(payload[HEADER_SIZE:]))