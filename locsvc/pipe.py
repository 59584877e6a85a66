"""Named-pipe primitives backing the daemon message queues."""

from __future__ import annotations

import fcntl
import logging
import os
from typing import Optional

log = logging.getLogger(__name__)

PIPE_PERMISSIONS = 0o660
_UNLOCK_LENGTH = 32


def pipe_get(pipe_name: str, mode: int) -> int:
    """Create (if needed) and open a named pipe, returning its descriptor.

    Raises OSError if the pipe cannot be created or opened.
    """
    log.debug("%s, mode = %d", pipe_name, mode)
    try:
        os.mkfifo(pipe_name, PIPE_PERMISSIONS)
    except FileExistsError:
        pass

    # mkfifo is subject to the umask, so set the group permissions explicitly.
    try:
        os.chmod(pipe_name, PIPE_PERMISSIONS)
    except OSError as exc:
        log.error("pipe_get failed to change mode for %s, error = %s", pipe_name, exc)

    fd = os.open(pipe_name, mode)
    log.debug("fd = %d, %s", fd, pipe_name)
    return fd


def pipe_remove(pipe_name: Optional[str], fd: int) -> None:
    """Close the descriptor and unlink the pipe path, ignoring failures."""
    try:
        os.close(fd)
    except OSError:
        pass
    if pipe_name:
        try:
            os.unlink(pipe_name)
        except OSError:
            pass
    log.debug("fd = %d, %s", fd, pipe_name)


def pipe_write(fd: int, data: bytes) -> int:
    """Write data to the pipe and return the number of bytes written."""
    return os.write(fd, data)


def pipe_read(fd: int, size: int) -> bytes:
    """Read up to ``size`` bytes from the pipe."""
    return os.read(fd, size)


def pipe_unblock(fd: int) -> None:
    """Release any record lock on the first bytes of the pipe.

    Raises OSError if the lock operation fails.
    """
    log.debug("unblock fd = %d", fd)
    try:
        fcntl.lockf(fd, fcntl.LOCK_UN, _UNLOCK_LENGTH)
    except OSError as exc:
        log.error("fcntl failure, %s", exc)
        raise