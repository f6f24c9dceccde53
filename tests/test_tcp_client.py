import socket
import threading

import pytest

from countinggame.tcp_client import TCPCountingClient, main


@pytest.fixture
def listener():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen()
    srv.settimeout(5)
    yield srv
    srv.close()


def _connect(listener, student_id, total):
    client = TCPCountingClient(student_id, total, host="127.0.0.1", port=listener.getsockname()[1])
    client.connect()
    conn, _ = listener.accept()
    conn.settimeout(5)
    return client, conn


def test_connect_and_initial_turn_sends_zero(listener, capsys):
    client, conn = _connect(listener, 0, 3)
    with client, conn:
        assert client.handle_initial_turn() is True
        assert conn.recv(16) == b"0\n"
    out = capsys.readouterr().out
    assert "Connected to server at 127.0.0.1 as student 0" in out
    assert "Starting the game! Sending count: 0" in out


def test_other_students_do_not_start(listener):
    client, conn = _connect(listener, 1, 3)
    with client, conn:
        assert client.handle_initial_turn() is False
        client.send_count(7)
        assert conn.recv(16) == b"7\n"


def test_handle_line_on_my_turn_sends_next(listener):
    client, conn = _connect(listener, 1, 3)
    with client, conn:
        assert client.handle_line("0") == 1
        assert client.current_count == 1
        assert conn.recv(16) == b"1\n"


def test_handle_line_not_my_turn(listener):
    client, conn = _connect(listener, 2, 3)
    with client, conn:
        assert client.handle_line("0") is None
        assert client.current_count == 1


def test_handle_line_ignores_garbage(listener):
    client, conn = _connect(listener, 0, 3)
    with client, conn:
        assert client.handle_line("hello") is None
        assert client.current_count == 0


def test_silent_after_twenty(listener, capsys):
    client, conn = _connect(listener, 0, 3)
    with client, conn:
        capsys.readouterr()
        assert client.handle_line("25") is None
        assert capsys.readouterr().out == ""
        assert client.current_count == 26


def test_receive_messages_answers_and_stops_on_close(listener, capsys):
    client, conn = _connect(listener, 2, 3)
    with client:
        conn.sendall(b"0\n1\n")
        worker = threading.Thread(target=client.receive_messages)
        worker.start()
        assert conn.recv(16) == b"2\n"
        conn.close()
        worker.join(5)
        assert not worker.is_alive()
        assert client.current_count == 2
    out = capsys.readouterr().out
    assert "Received count: 1 (next expected: 2)" in out
    assert "My turn! Sending count: 2" in out
    assert "Connection closed by server" in out


def test_connect_refused_raises():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    client = TCPCountingClient(0, 3, host="127.0.0.1", port=port)
    with pytest.raises(ConnectionError, match="Failed to connect"):
        client.connect()


def test_close_stops_client(listener):
    client, conn = _connect(listener, 0, 3)
    with conn:
        client.close()
        assert client.running is False
        assert client.send_count(1) is False


def test_main_usage(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_main_rejects_student_out_of_range(capsys):
    assert main(["3", "3"]) == 1
    assert "Error: student_id must be between 0 and 2" in capsys.readouterr().out