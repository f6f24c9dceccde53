"""Minimal multicast chat: every line typed is sent to the group and echoed by all members."""

from __future__ import annotations

import signal
import socket
import sys
import threading
from typing import Iterable

from countinggame.protocol import (
    MULTICAST_GROUP,
    MULTICAST_PORT,
    RECV_SIZE,
    leave_multicast,
    open_multicast_socket,
)
from countinggame.tcp_client import _raise_shutdown, _Shutdown

PROMPT = "> "


def _prompt() -> None:
    print(PROMPT, end="", flush=True)


class MulticastChat:
    """Sends typed lines to a multicast group and prints what the group says."""

    def __init__(self, group: str = MULTICAST_GROUP, port: int = MULTICAST_PORT,
                 sock: socket.socket | None = None) -> None:
        self.group = group
        self.port = port
        self.running = True
        self._sock = sock

    def __enter__(self) -> MulticastChat:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def setup(self) -> None:
        """Join the multicast group unless a socket was given; raises OSError on failure."""
        if self._sock is None:
            try:
                self._sock = open_multicast_socket(self.group, self.port)
            except OSError as exc:
                print(f"Multicast setup failed: {exc.strerror}", file=sys.stderr)
                raise
        print(f"Connected to multicast group {self.group}:{self.port}")
        print("Type messages to send (Ctrl-C to quit):")

    def send_message(self, message: str) -> bool:
        """Send one message to the group; report and return False on failure."""
        sock = self._sock
        if sock is None:
            print("Send failed: not connected", file=sys.stderr)
            return False
        try:
            sock.sendto(message.encode("utf-8"), (self.group, self.port))
        except OSError as exc:
            print(f"Send failed: {exc.strerror}", file=sys.stderr)
            return False
        return True

    def receive_messages(self) -> None:
        """Print each received message until receiving fails or the chat stops."""
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
            text = data.split(b"\0", 1)[0].decode("utf-8", errors="replace")
            print(f"[received] {text}")
            _prompt()

    def handle_user_input(self, lines: Iterable[str]) -> int:
        """Send every non-empty line; return how many were sent."""
        sent = 0
        for line in lines:
            if not self.running:
                break
            message = line.rstrip("\n")
            if message and self.send_message(message):
                sent += 1
            _prompt()
        return sent

    def run(self) -> None:
        """Chat from standard input, then wait for the receiver and close."""
        receiver = threading.Thread(target=self.receive_messages, daemon=True)
        receiver.start()
        _prompt()
        try:
            self.handle_user_input(sys.stdin)
            receiver.join()
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
    """Command-line entry point; takes no arguments."""
    previous = {sig: signal.signal(sig, _raise_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        with MulticastChat() as chat:
            try:
                chat.setup()
            except OSError:
                return 1
            print("\n=== UDP Multicast Chat ===")
            print(f"Multicast: {MULTICAST_GROUP}:{MULTICAST_PORT}")
            print("==========================\n")
            chat.run()
    except _Shutdown as stop:
        print(f"\nReceived signal {stop.signum}, shutting down...")
        return stop.signum
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print("Example shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())