"""UDP counting game peer: students count together over a multicast group."""

from __future__ import annotations

import errno
import os
import signal
import socket
import sys
import threading
import time
from typing import Callable

from countinggame.progress import _elapsed_ms
from countinggame.protocol import (
    MULTICAST_GROUP,
    MULTICAST_PORT,
    RECV_SIZE,
    is_turn,
    leave_multicast,
    open_multicast_socket,
    parse_count,
    validate_student,
)
from countinggame.tcp_client import _atoi, _raise_shutdown, _Shutdown

VERBOSE_LIMIT = 20
RESTART_TIMEOUT_MS = 8000
SEND_BUFFER_SIZE = 1024 * 1024
RETRY_DELAY = 0.01
POLL_INTERVAL = 0.5


class UDPCountingPeer:
    """One student in the multicast counting game.

    Student 0 opens the game and restarts it from 0 when the group stays
    silent for eight seconds.
    """

    def __init__(self, student_id: int, total_students: int,
                 group: str = MULTICAST_GROUP, port: int = MULTICAST_PORT,
                 clock: Callable[[], float] = time.monotonic,
                 sock: socket.socket | None = None) -> None:
        self.student_id = student_id
        self.total_students = total_students
        self.group = group
        self.port = port
        self.current_count = 0
        self.running = True
        self._clock = clock
        self.last_count_time = clock()
        self._sock = sock
        self._lock = threading.Lock()

    def __enter__(self) -> UDPCountingPeer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def destination(self) -> tuple[str, int]:
        """Address every count is sent to."""
        return (self.group, self.port)

    def connect(self) -> None:
        """Join the multicast group unless a socket was given; raises OSError on failure."""
        if self._sock is None:
            try:
                self._sock = open_multicast_socket(self.group, self.port)
            except OSError as exc:
                print(f"Multicast setup failed: {exc.strerror}", file=sys.stderr)
                raise
            try:
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, SEND_BUFFER_SIZE)
            except OSError as exc:
                print(f"Warning: Failed to set send buffer size: {exc.strerror}", file=sys.stderr)
        print(f"Connected to multicast group {self.group}:{self.port} as student {self.student_id}")
        print(f"Waiting for my turn (when count % {self.total_students} == {self.student_id})...")
        self.last_count_time = self._clock()

    def send_count(self, count: int) -> bool:
        """Multicast one count, retrying once if the network buffer is full."""
        sock = self._sock
        if sock is None:
            print("Send failed: not connected", file=sys.stderr)
            return False
        message = str(count).encode("ascii")
        try:
            sock.sendto(message, self.destination)
        except OSError as exc:
            if exc.errno != errno.ENOBUFS:
                print(f"Send failed: {exc.strerror}", file=sys.stderr)
                return False
            print("\n[warning] Network buffer full, retrying...")
            time.sleep(RETRY_DELAY)
            try:
                sock.sendto(message, self.destination)
            except OSError as retry_exc:
                print(f"Send failed after retry: {retry_exc.strerror}", file=sys.stderr)
                return False
        return True

    def handle_datagram(self, data: bytes | str) -> int | None:
        """React to one received count; return the count sent in reply, if any."""
        try:
            received = parse_count(data)
        except ValueError:
            return None
        with self._lock:
            self.current_count = received + 1
            self.last_count_time = self._clock()
            count = self.current_count
        if count <= VERBOSE_LIMIT:
            print(f"Received count: {received} (next expected: {count})")
        if not is_turn(count, self.student_id, self.total_students):
            return None
        if count <= VERBOSE_LIMIT:
            print(f"My turn! Sending count: {count}")
        self.send_count(count)
        return count

    def handle_initial_turn(self) -> bool:
        """Student 0 opens the game by sending 0; return whether it did."""
        if self.student_id == 0 and self.current_count == 0:
            print("Starting the game! Sending count: 0")
            self.send_count(0)
            self.last_count_time = self._clock()
            return True
        return False

    def receive_messages(self) -> None:
        """Read counts from the group until receiving fails or the peer stops."""
        while self.running:
            sock = self._sock
            if sock is None:
                break
            try:
                data, _ = sock.recvfrom(RECV_SIZE)
            except OSError as exc:
                if self.running:
                    print(f"Receive failed: {exc.strerror}", file=sys.stderr)
                break
            if not data:
                if self.running:
                    print("Receive failed: empty datagram", file=sys.stderr)
                break
            self.handle_datagram(data)

    def tick(self, now: float) -> bool:
        """Run one silence check; return whether student 0 restarted the count."""
        if self.student_id != 0:
            return False
        with self._lock:
            if _elapsed_ms(now, self.last_count_time) <= RESTART_TIMEOUT_MS:
                return False
            self.current_count = 0
            self.last_count_time = now
        print("\n[timeout] No activity for 8 seconds. Restarting from 0...")
        self.send_count(0)
        return True

    def check_timeout(self) -> None:
        """Check for silence every half second while the peer runs."""
        while self.running:
            time.sleep(POLL_INTERVAL)
            if not self.running:
                break
            self.tick(self._clock())

    def run(self) -> None:
        """Play until stopped, then close."""
        self.handle_initial_turn()
        threads = [
            threading.Thread(target=self.receive_messages, daemon=True),
            threading.Thread(target=self.check_timeout, daemon=True),
        ]
        for thread in threads:
            thread.start()
        print("Peer running. Press Ctrl-C to quit...")
        print(f"Will enter silent mode after receiving {VERBOSE_LIMIT} counts.")
        if self.student_id == 0:
            print("As student 0, I will restart counting if no activity for 5 seconds.")
        try:
            for thread in threads:
                thread.join()
        finally:
            self.close()

    def close(self) -> None:
        """Stop, leave the multicast group and close the socket."""
        self.running = False
        sock, self._sock = self._sock, None
        if sock is not None:
            leave_multicast(sock, self.group)
            sock.close()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "udp_peer"
    if len(argv) != 2:
        print(f"Usage: {prog} <student_id> <total_students>")
        print("student_id should be between 0 and (total_students-1)")
        return 1

    student_id = _atoi(argv[0])
    total_students = _atoi(argv[1])
    try:
        validate_student(student_id, total_students)
    except ValueError as exc:
        print(f"Error: {exc}")
        return 1

    previous = {sig: signal.signal(sig, _raise_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        with UDPCountingPeer(student_id, total_students) as peer:
            try:
                peer.connect()
            except OSError:
                return 1
            print()
            print("=== UDP Counting Game ===")
            print(f"Student ID: {student_id}")
            print(f"Multicast: {MULTICAST_GROUP}:{MULTICAST_PORT}")
            print(f"I count when: count % {total_students} == {student_id}")
            print("=========================")
            print()
            peer.run()
    except _Shutdown as stop:
        print(f"\nReceived signal {stop.signum}, shutting down...")
        return stop.signum
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print()
    print("Peer shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())