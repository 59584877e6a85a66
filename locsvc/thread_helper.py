"""A worker thread running init, pre, a repeated task and post stages."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)

THREAD_NAME = "loc_eng_dmn_conn"

Stage = Callable[[Any], Any]
CreateThread = Callable[[str, Callable[[Any], None], Any], Any]


class ThreadHelperError(Exception):
    """Raised when the worker thread cannot be started or joined."""


class ThreadHelper:
    """Runs ``proc_init`` once, signals readiness, then ``proc_pre`` once,
    ``proc`` repeatedly until unblocked or failing, and finally ``proc_post``.

    A stage fails by raising an exception.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._exit = False
        self._ready = False
        self._thread: Any = None
        self._context: Any = None
        self._proc_init: Optional[Stage] = None
        self._proc_pre: Optional[Stage] = None
        self._proc: Optional[Stage] = None
        self._proc_post: Optional[Stage] = None

    @property
    def exiting(self) -> bool:
        return self._exit

    @property
    def ready(self) -> bool:
        return self._ready

    def signal_wait(self) -> bool:
        """Block until ready or exiting; return True if ready and not exiting."""
        with self._cond:
            self._cond.wait_for(lambda: self._ready or self._exit)
            return not self._exit

    def signal_ready(self) -> None:
        """Mark the helper ready and wake a waiter."""
        with self._cond:
            self._ready = True
            self._cond.notify_all()

    def signal_block(self) -> bool:
        """Clear the ready flag and return its previous value."""
        previous = self._ready
        with self._cond:
            self._ready = False
        return previous

    def _fail(self, stage: str) -> None:
        log.exception("%s stage failed in %r", stage, self)
        with self._cond:
            self._exit = True
            self._cond.notify_all()

    def _main(self) -> None:
        if self._proc_init is not None:
            try:
                self._proc_init(self._context)
            except Exception:
                self._fail("init")
                self.signal_ready()
                return

        self.signal_ready()

        if self._proc_pre is not None:
            try:
                self._proc_pre(self._context)
            except Exception:
                self._fail("pre")
                return

        while True:
            if self._proc is not None:
                try:
                    self._proc(self._context)
                except Exception:
                    self._fail("task")
            if self._exit:
                break

        if self._proc_post is not None:
            try:
                self._proc_post(self._context)
            except Exception:
                log.exception("post stage failed in %r", self)

    @staticmethod
    def _thread_entry(helper: "ThreadHelper") -> None:
        helper._main()

    def launch(
        self,
        proc_init: Optional[Stage],
        proc_pre: Optional[Stage],
        proc: Optional[Stage],
        proc_post: Optional[Stage],
        create_thread: Optional[CreateThread] = None,
        context: Any = None,
    ) -> None:
        """Start the worker and wait for its initialisation to finish.

        ``create_thread(name, start, arg)`` may supply the thread; it must
        return an object with ``join()`` and arrange for ``start(arg)`` to run.
        Raises ThreadHelperError if the thread cannot start or init fails.
        """
        with self._cond:
            self._exit = False
            self._ready = False
        if context is not None:
            self._context = context
        self._proc_init = proc_init
        self._proc_pre = proc_pre
        self._proc = proc
        self._proc_post = proc_post

        try:
            if create_thread is not None:
                self._thread = create_thread(THREAD_NAME, self._thread_entry, self)
            else:
                thread = threading.Thread(
                    target=self._thread_entry, args=(self,), name=THREAD_NAME, daemon=True
                )
                thread.start()
                self._thread = thread
        except Exception as exc:
            raise ThreadHelperError(f"cannot start thread: {exc}") from exc

        if not self.signal_wait():
            raise ThreadHelperError("worker initialisation failed")

    def unblock(self) -> None:
        """Ask the task loop to stop after its current iteration."""
        with self._cond:
            self._exit = True
            self._cond.notify_all()

    def join(self) -> None:
        """Wait for the worker thread to finish."""
        if self._thread is None:
            raise ThreadHelperError("no thread has been launched")
        try:
            self._thread.join()
        except Exception as exc:
            raise ThreadHelperError(f"cannot join thread: {exc}") from exc
        finally:
            self._thread = None