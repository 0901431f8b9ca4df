"""In-memory key-value store that answers get, set and del commands."""

from __future__ import annotations

from collections.abc import Sequence

from kvwire.protocol import Response, Status


def _as_bytes(arg: str | bytes) -> bytes:
    return arg.encode("utf-8") if isinstance(arg, str) else bytes(arg)


class KeyValueStore:
    """A mapping of byte keys to byte values driven by protocol commands."""

    def __init__(self) -> None:
        self._data: dict[bytes, bytes] = {}

    def execute(self, cmd: Sequence[str | bytes]) -> Response:
        """Run one command and return its response."""
        args = [_as_bytes(arg) for arg in cmd]
        match args:
            case [b"get", key]:
                value = self._data.get(key)
                if value is None:
                    return Response(Status.NX)
                return Response(Status.OK, value)
            case [b"set", key, value]:
                self._data[key] = value
                return Response(Status.OK)
            case [b"del", key]:
                self._data.pop(key, None)
                return Response(Status.OK)
            case _:
                return Response(Status.ERR)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, (str, bytes)):
            return _as_bytes(key) in self._data
        return False