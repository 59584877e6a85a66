"""Message queues for control messages, carried over named pipes."""

from __future__ import annotations

import logging
import struct
from typing import Optional

from locsvc.ctrl_msg import CtrlMessage, decode_message, encode_message
from locsvc.pipe import pipe_get, pipe_read, pipe_remove, pipe_unblock, pipe_write

log = logging.getLogger(__name__)

_SIZE_FIELD = struct.Struct("<I")
_FLUSH_CHUNK = 128


class MessageQueueError(Exception):
    """Raised when a message cannot be sent or received intact."""


def msg_get(q_path: str, mode: int) -> int:
    """Open the message queue at ``q_path`` and return its identifier."""
    return pipe_get(q_path, mode)


def msg_remove(q_path: Optional[str], msgqid: int) -> None:
    """Close the queue and remove its path."""
    pipe_remove(q_path, msgqid)


def msg_send(msgqid: int, message: CtrlMessage) -> int:
    """Send one message and return the number of bytes written.

    Raises MessageQueueError if the message is not written whole.
    """
    data = encode_message(message)
    try:
        written = pipe_write(msgqid, data)
    except OSError as exc:
        log.error("pipe broken: %s, msgsz = %d", exc, len(data))
        raise MessageQueueError(f"pipe broken: {exc}") from exc
    if written != len(data):
        log.error("pipe broken %d, msgsz = %d", written, len(data))
        raise MessageQueueError(f"short write: {written} of {len(data)} bytes")
    return written


def _read_exact(msgqid: int, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            chunk = pipe_read(msgqid, remaining)
        except OSError as exc:
            raise MessageQueueError(f"pipe broken: {exc}") from exc
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    data = b"".join(chunks)
    if len(data) != size:
        log.error("pipe broken, read %d of %d bytes", len(data), size)
        raise MessageQueueError(f"pipe broken: read {len(data)} of {size} bytes")
    return data


def msg_receive(msgqid: int, max_size: int) -> CtrlMessage:
    """Receive one message of at most ``max_size`` bytes and decode it.

    Raises MessageQueueError if the pipe breaks, the message is larger than
    ``max_size`` or its contents are malformed.
    """
    size_bytes = _read_exact(msgqid, _SIZE_FIELD.size)
    (msgsz,) = _SIZE_FIELD.unpack(size_bytes)
    if max_size < msgsz:
        log.error("msgbuf is too small %d < %d", max_size, msgsz)
        raise MessageQueueError(f"buffer too small: {max_size} < {msgsz}")
    if msgsz < _SIZE_FIELD.size:
        raise MessageQueueError(f"declared message size {msgsz} is invalid")
    rest = _read_exact(msgqid, msgsz - _SIZE_FIELD.size)
    try:
        return decode_message(size_bytes + rest)
    except ValueError as exc:
        raise MessageQueueError(str(exc)) from exc


def msg_unblock(msgqid: int) -> None:
    """Release any lock held on the queue."""
    pipe_unblock(msgqid)


def msg_flush(msgqid: int) -> int:
    """Discard queued data until end of stream and return how many bytes went."""
    total = 0
    while True:
        chunk = pipe_read(msgqid, _FLUSH_CHUNK)
        if not chunk:
            return total
        log.debug("flushed %r", chunk)
        total += len(chunk)