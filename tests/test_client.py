import socket
import struct
import threading

import pytest

from kvwire.client import main, read_response, recv_exact, request, send_request
from kvwire.protocol import (
    ProtocolError,
    Response,
    Status,
    encode_response,
    parse_request,
)
from kvwire.server import Server


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    left.settimeout(5)
    right.settimeout(5)
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def running_server():
    server = Server("127.0.0.1", 0)
    stop = threading.Event()

    def loop():
        while not stop.is_set():
            server.poll_once(0.05)

    thread = threading.Thread(target=loop, daemon=True)
    thread.start()
    yield server
    stop.set()
    thread.join()
    server.close()


def test_recv_exact_joins_chunks(pair):
    left, right = pair
    right.sendall(b"ab")
    right.sendall(b"cd")
    assert recv_exact(left, 4) == b"abcd"


def test_recv_exact_raises_on_eof(pair):
    left, right = pair
    right.sendall(b"ab")
    right.shutdown(socket.SHUT_WR)
    with pytest.raises(EOFError):
        recv_exact(left, 4)


def test_send_request_frames_command(pair):
    left, right = pair
    send_request(left, ["set", "k", "v"])
    (length,) = struct.unpack("<I", recv_exact(right, 4))
    assert parse_request(recv_exact(right, length)) == [b"set", b"k", b"v"]


def test_send_request_rejects_too_long(pair):
    left, right = pair
    with pytest.raises(ProtocolError):
        send_request(left, ["set", "k", "x" * 4096])
    left.shutdown(socket.SHUT_WR)
    assert right.recv(16) == b""


def test_read_response_decodes(pair):
    left, right = pair
    right.sendall(encode_response(Response(Status.OK, b"hello")))
    assert read_response(left) == Response(Status.OK, b"hello")


def test_read_response_rejects_too_long(pair):
    left, right = pair
    right.sendall(struct.pack("<I", 4097))
    with pytest.raises(ProtocolError):
        read_response(left)


def test_read_response_rejects_short_payload(pair):
    left, right = pair
    right.sendall(struct.pack("<I", 2) + b"ab")
    with pytest.raises(ProtocolError):
        read_response(left)


def test_read_response_truncated_body(pair):
    left, right = pair
    right.sendall(struct.pack("<I", 10) + b"ab")
    right.shutdown(socket.SHUT_WR)
    with pytest.raises(ConnectionError):
        read_response(left)


def test_read_response_eof_before_header(pair):
    left, right = pair
    right.shutdown(socket.SHUT_WR)
    with pytest.raises(EOFError):
        read_response(left)


def test_request_round_trip(running_server):
    host, port = running_server.address
    assert request(["set", "name", "kv"], host, port).status == Status.OK
    assert request(["get", "name"], host, port) == Response(Status.OK, b"kv")
    assert request(["get", "other"], host, port).status == Status.NX


def test_main_prints_server_reply(running_server, capsys):
    port = str(running_server.address[1])
    assert main(["--port", port, "set", "k", "v"]) == 0
    assert main(["--port", port, "get", "k"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["server says: [0] ", "server says: [0] v"]


def test_main_too_long_prints_nothing(running_server, capsys):
    port = str(running_server.address[1])
    assert main(["--port", port, "set", "k", "x" * 5000]) == 0
    assert capsys.readouterr().out == ""


def test_main_connect_failure(capsys):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as unused:
        unused.bind(("127.0.0.1", 0))
        port = unused.getsockname()[1]
        assert main(["--port", str(port), "get", "k"]) == 1
    assert "connect" in capsys.readouterr().err