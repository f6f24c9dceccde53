"""TCP counting game client: says its numbers through a central server."""

from __future__ import annotations

import os
import signal
import socket
import sys

from countinggame.protocol import (
    RECV_SIZE,
    SERVER_PORT,
    LineBuffer,
    is_turn,
    parse_count,
    validate_student,
)

DEFAULT_HOST = "trainers-in.tnkr.be"
VERBOSE_LIMIT = 20


class TCPCountingClient:
    """One student in the TCP counting game."""

    def __init__(self, student_id: int, total_students: int,
                 host: str = DEFAULT_HOST, port: int = SERVER_PORT) -> None:
        self.student_id = student_id
        self.total_students = total_students
        self.host = host
        self.port = port
        self.current_count = 0
        self.running = True
        self._sock: socket.socket | None = None

    def __enter__(self) -> TCPCountingClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def connect(self) -> None:
        """Resolve the host and connect to the first address that accepts.

        Raises ConnectionError when resolution fails or no address connects.
        """
        print(f"Resolving {self.host}...")
        try:
            infos = socket.getaddrinfo(self.host, self.port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except socket.gaierror as exc:
            raise ConnectionError(f"getaddrinfo: {exc.strerror}") from exc

        for family, socktype, proto, _, address in infos:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as exc:
                print(f"Client: socket: {exc.strerror}", file=sys.stderr)
                continue
            print(f"Connecting to {self.host}:{self.port}...")
            try:
                sock.connect(address)
            except OSError as exc:
                sock.close()
                print(f"Client: connect: {exc.strerror}", file=sys.stderr)
                continue
            self._sock = sock
            break
        else:
            raise ConnectionError(f"Failed to connect to {self.host}:{self.port}")

        print(f"Connected to server at {self.host} as student {self.student_id}")
        print(f"Waiting for my turn (when count % {self.total_students} == {self.student_id})...")

    def send_count(self, count: int) -> bool:
        """Send one count line; report and return False on failure."""
        sock = self._sock
        if sock is None:
            print("Send failed: not connected", file=sys.stderr)
            return False
        try:
            sock.sendall(f"{count}\n".encode("ascii"))
        except OSError as exc:
            print(f"Send failed: {exc.strerror}", file=sys.stderr)
            return False
        return True

    def handle_line(self, line: str) -> int | None:
        """React to one count from the server; return the count sent, if any."""
        try:
            received = parse_count(line)
        except ValueError:
            return None
        self.current_count = received + 1
        if self.current_count <= VERBOSE_LIMIT:
            print(f"Received count: {received} (next expected: {self.current_count})")
        if not is_turn(self.current_count, self.student_id, self.total_students):
            return None
        if self.current_count <= VERBOSE_LIMIT:
            print(f"My turn! Sending count: {self.current_count}")
        self.send_count(self.current_count)
        return self.current_count

    def handle_initial_turn(self) -> bool:
        """Student 0 opens the game by sending 0; return whether it did."""
        if self.student_id == 0 and self.current_count == 0:
            print("Starting the game! Sending count: 0")
            self.send_count(0)
            return True
        return False

    def receive_messages(self) -> None:
        """Process incoming count lines until the connection ends or the client stops."""
        buffer = LineBuffer()
        while self.running:
            sock = self._sock
            if sock is None:
                break
            try:
                data = sock.recv(RECV_SIZE)
            except OSError:
                data = b""
            if not data:
                if self.running:
                    print("Connection closed by server")
                break
            for line in buffer.feed(data):
                self.handle_line(line)

    def run(self) -> None:
        """Play until the server goes away, then close."""
        self.handle_initial_turn()
        print("Client running. Press Ctrl-C to quit...")
        print(f"Will enter silent mode after sending {VERBOSE_LIMIT} counts.")
        try:
            self.receive_messages()
        finally:
            self.close()

    def close(self) -> None:
        """Stop and close the connection."""
        self.running = False
        if self._sock is not None:
            self._sock.close()
            self._sock = None


class _Shutdown(Exception):
    def __init__(self, signum: int) -> None:
        super().__init__(signum)
        self.signum = signum


def _raise_shutdown(signum, _frame) -> None:
    raise _Shutdown(signum)


def _atoi(text: str) -> int:
    try:
        return parse_count(text)
    except ValueError:
        return 0


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "tcp_client"
    if len(argv) not in (2, 3):
        print(f"Usage: {prog} <student_id> <total_students> [hostname]")
        print("student_id should be between 0 and (total_students-1)")
        print(f"hostname can be either an IP address or hostname (defaults to {DEFAULT_HOST})")
        return 1

    student_id = _atoi(argv[0])
    total_students = _atoi(argv[1])
    host = argv[2] if len(argv) == 3 else DEFAULT_HOST
    try:
        validate_student(student_id, total_students)
    except ValueError as exc:
        print(f"Error: {exc}")
        return 1

    previous = {sig: signal.signal(sig, _raise_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        with TCPCountingClient(student_id, total_students, host) as client:
            try:
                client.connect()
            except ConnectionError as exc:
                print(exc, file=sys.stderr)
                return 1
            print()
            print("=== TCP Counting Game ===")
            print(f"Student ID: {student_id}")
            print(f"Server: {host}")
            print(f"I count when: count % {total_students} == {student_id}")
            print("=========================")
            print()
            client.run()
    except _Shutdown as stop:
        print(f"\nReceived signal {stop.signum}, shutting down...")
        return stop.signum
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print()
    print("Client shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())