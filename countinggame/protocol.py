"""Wire format and socket helpers shared by the counting game programs."""

from __future__ import annotations

import codecs
import contextlib
import re
import socket
import struct

SERVER_PORT = 35701
MULTICAST_GROUP = "239.255.1.1"
MULTICAST_PORT = 36702
RECV_SIZE = 1023

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_COUNT_RE = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class LineBuffer:
    """Accumulates received chunks and yields complete newline-terminated lines."""

    def __init__(self) -> None:
        self._pending = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._pending

    def feed(self, data: bytes | str) -> list[str]:
        """Add a chunk and return the lines it completes, without their newlines."""
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        # A chunk is treated as a C string: anything after a NUL byte is dropped.
        text = self._pending + data.split("\0", 1)[0]
        *lines, self._pending = text.split("\n")
        return lines


def parse_count(text: str | bytes) -> int:
    """Parse a leading decimal integer the way the game's peers do.

    Leading whitespace is skipped and trailing text is ignored. Raises
    ValueError if there are no digits or the value does not fit in 32 bits.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    match = _COUNT_RE.match(text)
    if match is None:
        raise ValueError(f"no count in {text!r}")
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"count out of range: {match.group(1)}")
    return value


def _trunc_mod(value: int, modulus: int) -> int:
    """Remainder whose sign follows the dividend, as in truncating division."""
    remainder = abs(value) % abs(modulus)
    return -remainder if value < 0 else remainder


def is_turn(count: int, student_id: int, total_students: int) -> bool:
    """Whether the given student is the one to say ``count``."""
    return _trunc_mod(count, total_students) == student_id


def validate_student(student_id: int, total_students: int) -> int:
    """Return ``student_id`` if it lies in ``0 .. total_students-1``, else raise ValueError."""
    if student_id < 0 or student_id >= total_students:
        raise ValueError(f"student_id must be between 0 and {total_students - 1}")
    return student_id


def _membership(group: str) -> bytes:
    return struct.pack("4s4s", socket.inet_aton(group), socket.inet_aton("0.0.0.0"))


def open_multicast_socket(group: str = MULTICAST_GROUP, port: int = MULTICAST_PORT) -> socket.socket:
    """Open a UDP socket bound to ``port`` that has joined the multicast ``group``."""
    membership = _membership(group)
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        sock.bind(("", port))
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
    except OSError:
        sock.close()
        raise
    return sock


def leave_multicast(sock: socket.socket, group: str = MULTICAST_GROUP) -> None:
    """Drop membership of ``group``; failures are ignored."""
    with contextlib.suppress(OSError, ValueError):
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, _membership(group))