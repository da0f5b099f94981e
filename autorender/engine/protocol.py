"""Length-prefixed wire protocol for the preview worker.

Each connection carries exactly one request and one response:

    request:  u32 little-endian byte length + UTF-8 script
    response: u32 little-endian byte length + UTF-8 result

The worker answers "OK" when the script ran and the exception text
otherwise.
"""

from __future__ import annotations

import logging
import socket
import struct
import time
from typing import Callable

from ..core.errors import ProtocolError, ProtocolIOError, ProtocolTimeoutError

logger = logging.getLogger(__name__)

HEADER = struct.Struct("<I")


def encode_frame(text: str) -> bytes:
    """Encode text as a length-prefixed UTF-8 frame."""
    data = text.encode("utf-8")
    return HEADER.pack(len(data)) + data


def decode_frame(frame: bytes) -> str:
    """Decode a complete frame produced by encode_frame.

    Raises:
        ValueError: If the frame is truncated
    """
    if len(frame) < HEADER.size:
        raise ValueError(f"Frame too short: {len(frame)} bytes")
    (length,) = HEADER.unpack_from(frame)
    payload = frame[HEADER.size:HEADER.size + length]
    if len(payload) < length:
        raise ValueError(f"Truncated frame: expected {length} bytes, got {len(payload)}")
    return payload.decode("utf-8")


class _Deadline:
    """Single time budget shared by every step of an exchange."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._end = time.monotonic() + timeout

    def remaining(self) -> float:
        left = self._end - time.monotonic()
        if left <= 0:
            raise ProtocolTimeoutError(f"No response from worker within {self.timeout:g}s")
        return left


def read_exact(sock: socket.socket, size: int, deadline: _Deadline | None = None) -> bytes:
    """Read exactly ``size`` bytes from a socket.

    Raises:
        ProtocolIOError: If the peer closes the connection early
    """
    buf = bytearray()
    while len(buf) < size:
        if deadline is not None:
            sock.settimeout(deadline.remaining())
        chunk = sock.recv(size - len(buf))
        if not chunk:
            raise ProtocolIOError(
                f"Connection closed after {len(buf)} of {size} bytes"
            )
        buf.extend(chunk)
    return bytes(buf)


def exchange(
    host: str,
    port: int,
    script: str,
    timeout: float,
    on_sent: Callable[[], None] | None = None,
) -> str:
    """Send one script to the worker and return its result text.

    Connect, write and read all share one deadline of ``timeout`` seconds.

    Args:
        host: Worker address
        port: Worker port
        script: Script source to execute
        timeout: Total time budget in seconds
        on_sent: Called once the request has been written

    Raises:
        ProtocolTimeoutError: If the deadline passes
        ProtocolIOError: On connection or socket failure
    """
    deadline = _Deadline(timeout)
    try:
        with socket.create_connection((host, port), timeout=deadline.remaining()) as sock:
            sock.settimeout(deadline.remaining())
            sock.sendall(encode_frame(script))
            if on_sent is not None:
                on_sent()
            (length,) = HEADER.unpack(read_exact(sock, HEADER.size, deadline))
            payload = read_exact(sock, length, deadline)
    except ProtocolError:
        raise
    except socket.timeout as e:
        raise ProtocolTimeoutError(f"No response from worker within {timeout:g}s") from e
    except OSError as e:
        raise ProtocolIOError(str(e)) from e

    logger.debug(f"Worker replied with {length} bytes")
    return payload.decode("utf-8", errors="replace")
