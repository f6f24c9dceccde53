"""TCP counting game server: relays counts between students and fills in gaps."""

from __future__ import annotations

import contextlib
import os
import signal
import socket
import sys
import threading
import time
from typing import Callable

from countinggame.progress import ProgressMonitor, _elapsed_ms
from countinggame.protocol import RECV_SIZE, SERVER_PORT, LineBuffer, parse_count
from countinggame.tcp_client import _atoi, _raise_shutdown, _Shutdown

DEFAULT_STUDENTS = 13
TIMEOUT_MS = 5000
IDLE_START_SECONDS = 30
POLL_INTERVAL = 0.5


def _show(text: str) -> None:
    print(text, end="", flush=True)


class TCPCountingServer:
    """Central relay of the TCP counting game.

    Every count a student sends is broadcast to all connected students. When
    nobody counts for five seconds the server says the next number itself.
    """

    def __init__(self, students: int = DEFAULT_STUDENTS, host: str = "",
                 port: int = SERVER_PORT,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.max_students = students
        self.max_connections = students * 3
        self.host = host
        self.port = port
        self.clients: list[socket.socket] = []
        self.current_count = 0
        self.running = True
        self.started = False
        self._clock = clock
        self.monitor = ProgressMonitor(students, start=clock())
        self._listener: socket.socket | None = None
        self._clients_lock = threading.Lock()
        self._state_lock = threading.RLock()

    def __enter__(self) -> TCPCountingServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def address(self) -> tuple | None:
        """Address the server listens on, once started."""
        listener = self._listener
        return listener.getsockname() if listener is not None else None

    def start(self) -> None:
        """Create, bind and listen on the server socket; raises OSError on failure."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            print(f"Socket creation failed: {exc.strerror}", file=sys.stderr)
            raise
        stage = "setsockopt failed"
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            stage = "Bind failed"
            sock.bind((self.host, self.port))
            stage = "Listen failed"
            sock.listen(self.max_connections)
        except OSError as exc:
            sock.close()
            print(f"{stage}: {exc.strerror}", file=sys.stderr)
            raise
        self._listener = sock
        print(f"TCP Counting Server listening on port {sock.getsockname()[1]}")
        print("Waiting for students to connect...")
        self.monitor = ProgressMonitor(self.max_students, start=self._clock())

    def accept_clients(self) -> None:
        """Accept students until the connection limit is reached or the server stops."""
        while self.running:
            with self._clients_lock:
                if len(self.clients) >= self.max_connections:
                    break
            listener = self._listener
            if listener is None:
                break
            try:
                conn, _ = listener.accept()
            except OSError as exc:
                if self.running:
                    print(f"Accept failed: {exc.strerror}", file=sys.stderr)
                continue
            with self._clients_lock:
                self.clients.append(conn)
                total = len(self.clients)
            print(f"\nClient connected. Total clients: {total}/{self.max_connections}")
            threading.Thread(target=self.handle_client, args=(conn,), daemon=True).start()

    def handle_client(self, conn: socket.socket) -> None:
        """Read count lines from one student until it disconnects."""
        buffer = LineBuffer()
        while self.running:
            try:
                data = conn.recv(RECV_SIZE)
            except OSError:
                data = b""
            if not data:
                self.remove_client(conn)
                break
            for line in buffer.feed(data):
                self.handle_line(line)

    def handle_line(self, line: str) -> int | None:
        """Take one count line from a student; return the count relayed, if any."""
        try:
            received = parse_count(line)
        except ValueError:
            return None
        now = self._clock()
        with self._state_lock:
            self.current_count = received + 1
            self.monitor.record(now)
            if self.monitor.should_display(now):
                _show(self.monitor.render(received, now))
                self.monitor.last_display = now
        self.broadcast_count(received)
        return received

    def broadcast_count(self, count: int) -> int:
        """Send ``count`` to every student, dropping those that fail; return how many got it."""
        message = f"{count}\n".encode("ascii")
        delivered = 0
        with self._clients_lock:
            for conn in list(self.clients):
                try:
                    conn.sendall(message)
                except OSError:
                    conn.close()
                    self.clients.remove(conn)
                    print("\nClient disconnected during broadcast. Total clients: "
                          f"{len(self.clients)}/{self.max_connections}")
                else:
                    delivered += 1
        return delivered

    def remove_client(self, conn: socket.socket) -> None:
        """Forget and close a student's connection if it is still known."""
        with self._clients_lock:
            if conn not in self.clients:
                return
            self.clients.remove(conn)
            conn.close()
            remaining = len(self.clients)
        print(f"\nClient disconnected. Total clients: {remaining}")

    def tick(self, now: float) -> int | None:
        """Run one timeout check; return the count the server said itself, if any."""
        since_last = _elapsed_ms(now, self.monitor.last_count_time)
        with self._clients_lock:
            connected = len(self.clients)

        if not self.started and connected == 0:
            if _elapsed_ms(now, self.monitor.start) // 1000 > IDLE_START_SECONDS:
                print(f"No students connected after {IDLE_START_SECONDS} seconds. Starting simulation...")
                self.started = True

        if since_last <= TIMEOUT_MS or not (connected > 0 or self.started):
            return None

        with self._state_lock:
            count = self.current_count
            self.broadcast_count(count)
            self.current_count = count + 1
            self.monitor.record(now)
            _show(self.monitor.render(count, now, timeout=True))
        return count

    def simulate_timeouts(self) -> None:
        """Check for stalls every half second while the server runs."""
        while self.running:
            time.sleep(POLL_INTERVAL)
            if not self.running:
                break
            self.tick(self._clock())

    def run(self) -> None:
        """Accept students and watch for stalls until stopped, then close."""
        threads = [
            threading.Thread(target=self.accept_clients, daemon=True),
            threading.Thread(target=self.simulate_timeouts, daemon=True),
        ]
        for thread in threads:
            thread.start()
        print("Server running. Press Ctrl-C to quit...")
        try:
            for thread in threads:
                thread.join()
        finally:
            self.close()

    def close(self) -> None:
        """Stop, close the listening socket and every student connection."""
        self.running = False
        listener, self._listener = self._listener, None
        if listener is not None:
            with contextlib.suppress(OSError):
                listener.shutdown(socket.SHUT_RDWR)
            listener.close()
        with self._clients_lock:
            for conn in self.clients:
                conn.close()
            self.clients.clear()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "tcp_server"
    if len(argv) != 1:
        print(f"Usage: {prog} <total_students>")
        return 1

    students = _atoi(argv[0])
    if students <= 0:
        print("Error: number of students must be positive")
        return 1

    previous = {sig: signal.signal(sig, _raise_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        print(f"Starting TCP Counting Server with {students} students")
        with TCPCountingServer(students) as server:
            try:
                server.start()
            except OSError:
                return 1
            server.run()
    except _Shutdown as stop:
        print(f"\nReceived signal {stop.signum}, shutting down...")
        return stop.signum
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print()
    print("Server shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())