"""Non-blocking key-value server speaking the framed request protocol."""

from __future__ import annotations

import argparse
import logging
import selectors
import socket
import sys
from collections.abc import Sequence

from kvwire.protocol import (
    HEADER_SIZE,
    SERVER_MAX_MSG,
    ProtocolError,
    encode_response,
    parse_request,
)
from kvwire.store import KeyValueStore

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 1234
READ_CHUNK = 64 * 1024

log = logging.getLogger(__name__)


class Connection:
    """Buffers and request handling for one client, independent of any socket."""

    def __init__(self, store: KeyValueStore | None = None, max_msg: int = SERVER_MAX_MSG) -> None:
        self.store = store if store is not None else KeyValueStore()
        self.max_msg = max_msg
        self.incoming = bytearray()
        self.outgoing = bytearray()
        self.want_read = True
        self.want_write = False
        self.want_close = False

    def receive(self, data: bytes) -> int:
        """Take in bytes from the client and answer every complete request.

        Returns the number of requests answered.
        """
        self.incoming += data
        handled = 0
        while self._try_one_request():
            handled += 1
        if self.outgoing:
            self.want_read = False
            self.want_write = True
        return handled

    def _try_one_request(self) -> bool:
        if len(self.incoming) < HEADER_SIZE:
            return False
        length = int.from_bytes(self.incoming[:HEADER_SIZE], "little")
        if length > self.max_msg:
            log.error("too long")
            self.want_close = True
            return False
        end = HEADER_SIZE + length
        if end > len(self.incoming):
            return False
        try:
            cmd = parse_request(bytes(self.incoming[HEADER_SIZE:end]))
        except ProtocolError:
            log.error("bad request")
            self.want_close = True
            return False
        self.outgoing += encode_response(self.store.execute(cmd))
        del self.incoming[:end]
        return True

    def sent(self, n: int) -> None:
        """Drop the first n bytes of pending output once they have been written."""
        del self.outgoing[:n]
        if not self.outgoing:
            self.want_read = True
            self.want_write = False

    def close_on_eof(self) -> bool:
        """Mark the connection closed after the peer hung up.

        Returns True when the peer left no partial request behind.
        """
        clean = not self.incoming
        log.info("client closed" if clean else "unexpected EOF")
        self.want_close = True
        return clean


class Server:
    """Single-threaded event loop serving a shared key-value store."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        store: KeyValueStore | None = None,
    ) -> None:
        self.store = store if store is not None else KeyValueStore()
        self._selector = selectors.DefaultSelector()
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((host, port))
            listener.setblocking(False)
            listener.listen(socket.SOMAXCONN)
        except OSError:
            listener.close()
            self._selector.close()
            raise
        self._listener = listener
        self.address = listener.getsockname()
        self._selector.register(listener, selectors.EVENT_READ, None)

    def __enter__(self) -> Server:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def serve_forever(self) -> None:
        """Handle events until interrupted."""
        while True:
            self.poll_once(None)

    def poll_once(self, timeout: float | None = None) -> None:
        """Wait for socket events at most timeout seconds and handle them."""
        for key, mask in self._selector.select(timeout):
            if key.data is None:
                self._accept()
            else:
                self._service(key, mask)

    def close(self) -> None:
        """Close every client connection and the listening socket."""
        for key in list(self._selector.get_map().values()):
            self._selector.unregister(key.fileobj)
            key.fileobj.close()
        self._selector.close()

    def _accept(self) -> None:
        try:
            sock, addr = self._listener.accept()
        except BlockingIOError:
            return
        except OSError as exc:
            log.error("[errno:%s] accept() error", exc.errno)
            return
        log.info("new client from %s:%s", addr[0], addr[1])
        sock.setblocking(False)
        self._selector.register(sock, selectors.EVENT_READ, Connection(self.store))

    def _service(self, key: selectors.SelectorKey, mask: int) -> None:
        sock = key.fileobj
        conn: Connection = key.data
        if mask & selectors.EVENT_READ and conn.want_read:
            self._handle_read(sock, conn)
        if mask & selectors.EVENT_WRITE and conn.want_write:
            self._handle_write(sock, conn)
        events = self._interest(conn)
        if conn.want_close or not events:
            self._selector.unregister(sock)
            sock.close()
            return
        if events != key.events:
            self._selector.modify(sock, events, conn)

    @staticmethod
    def _interest(conn: Connection) -> int:
        events = 0
        if conn.want_read:
            events |= selectors.EVENT_READ
        if conn.want_write:
            events |= selectors.EVENT_WRITE
        return events

    def _handle_read(self, sock: socket.socket, conn: Connection) -> None:
        try:
            data = sock.recv(READ_CHUNK)
        except BlockingIOError:
            return
        except OSError as exc:
            log.error("[errno:%s] read() error", exc.errno)
            conn.want_close = True
            return
        if not data:
            conn.close_on_eof()
            return
        conn.receive(data)
        if conn.want_write:
            self._handle_write(sock, conn)

    def _handle_write(self, sock: socket.socket, conn: Connection) -> None:
        try:
            n = sock.send(conn.outgoing)
        except BlockingIOError:
            return
        except OSError as exc:
            log.error("[errno:%s] write() error", exc.errno)
            conn.want_close = True
            return
        conn.sent(n)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until interrupted."""
    parser = argparse.ArgumentParser(description="Serve an in-memory key-value store.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)
    try:
        server = Server(args.host, args.port)
    except OSError as exc:
        print(f"[{exc.errno}] bind()", file=sys.stderr)
        return 1
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())