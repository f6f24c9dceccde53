"""UDP counting game presenter: watches the multicast group and shows progress."""

from __future__ import annotations

import os
import signal
import socket
import sys
import threading
import time
from typing import Callable

from countinggame.progress import ProgressMonitor, _elapsed_ms
from countinggame.protocol import (
    MULTICAST_GROUP,
    MULTICAST_PORT,
    RECV_SIZE,
    _trunc_mod,
    leave_multicast,
    open_multicast_socket,
    parse_count,
)
from countinggame.tcp_client import _atoi, _raise_shutdown, _Shutdown

DEFAULT_STUDENTS = 13
TIMEOUT_MS = 5000
POLL_INTERVAL = 0.5


class UDPCountingPresenter:
    """Listens to the counts multicast by the peers and reports progress and stalls."""

    def __init__(self, students: int = DEFAULT_STUDENTS, group: str = MULTICAST_GROUP,
                 port: int = MULTICAST_PORT,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.max_students = students
        self.group = group
        self.port = port
        self.current_count = 0
        self.running = True
        self._clock = clock
        self.monitor = ProgressMonitor(students, start=clock())
        self._sock: socket.socket | None = None
        self._fixed_seconds = False
        self._lock = threading.Lock()

    def __enter__(self) -> UDPCountingPresenter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self) -> None:
        """Join the multicast group; raises OSError on failure."""
        try:
            self._sock = open_multicast_socket(self.group, self.port)
        except OSError as exc:
            print(f"Multicast setup failed: {exc.strerror}", file=sys.stderr)
            raise
        print(f"UDP Counting Presenter listening on multicast {self.group}:{self.port}")
        print(f"Monitoring {self.max_students} students...")
        self.monitor = ProgressMonitor(self.max_students, start=self._clock())

    def _show(self, text: str) -> None:
        # Once a fixed-precision rate line is shown, later seconds use it too.
        if text.startswith("\r"):
            self._fixed_seconds = True
        print(text, end="", flush=True)

    def handle_datagram(self, data: bytes | str) -> int | None:
        """Take one received datagram; return the count it held, if any."""
        try:
            received = parse_count(data)
        except ValueError:
            return None
        now = self._clock()
        with self._lock:
            self.current_count = received + 1
            self.monitor.record(now)
            if self.monitor.should_display(now):
                self._show(self.monitor.render(received, now))
                self.monitor.last_display = now
        return received

    def receive_messages(self) -> None:
        """Read datagrams until the presenter stops."""
        while self.running:
            sock = self._sock
            if sock is None:
                break
            try:
                data, _ = sock.recvfrom(RECV_SIZE)
            except OSError as exc:
                if self.running:
                    print(f"Receive failed: {exc.strerror}", file=sys.stderr)
                continue
            if data:
                self.handle_datagram(data)

    def tick(self, now: float) -> str | None:
        """Run one stall check; return the waiting message shown, if any."""
        with self._lock:
            since_last = _elapsed_ms(now, self.monitor.last_count_time)
            if since_last <= TIMEOUT_MS:
                return None
            count = self.current_count
            expected = _trunc_mod(count, self.max_students)
            seconds = since_last / 1000
            shown = f"{seconds:.3f}" if self._fixed_seconds else f"{seconds:g}"
            message = (f"\n[waiting] Waiting for count {count} from student {expected}"
                       f" (timeout: {shown}s)")
            self.monitor.last_count_time = now
        print(message)
        return message

    def check_timeout(self) -> None:
        """Check for stalls every half second while the presenter runs."""
        while self.running:
            time.sleep(POLL_INTERVAL)
            if not self.running:
                break
            self.tick(self._clock())

    def run(self) -> None:
        """Watch the game until stopped, then close."""
        threads = [
            threading.Thread(target=self.receive_messages, daemon=True),
            threading.Thread(target=self.check_timeout, daemon=True),
        ]
        for thread in threads:
            thread.start()
        print("Presenter running. Press Ctrl-C to quit...")
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
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "udp_presenter"
    if len(argv) != 1:
        print(f"Usage: {prog} <total_students>")
        return 1

    students = _atoi(argv[0])
    if students <= 0:
        print("Error: number of students must be positive")
        return 1

    previous = {sig: signal.signal(sig, _raise_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        print(f"Starting UDP Counting Presenter with {students} students")
        with UDPCountingPresenter(students) as presenter:
            try:
                presenter.start()
            except OSError:
                return 1
            presenter.run()
    except _Shutdown as stop:
        print(f"\nReceived signal {stop.signum}, shutting down...")
        return stop.signum
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print()
    print("Presenter shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())