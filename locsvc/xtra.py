"""XTRA assistance data: injection into the engine and server-address requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

log = logging.getLogger(__name__)


class XtraAdapter(Protocol):
    """Engine adapter: queues messages and carries out XTRA operations."""

    def send_msg(self, msg: Any) -> Any: ...

    def set_xtra_data(self, data: bytes, length: int) -> Any: ...

    def request_xtra_server(self) -> Any: ...


@dataclass
class XtraCallbacks:
    """Callbacks into the framework for downloads and server reports."""

    download_request_cb: Optional[Callable[..., Any]] = None
    report_xtra_server_cb: Optional[Callable[..., Any]] = None


class _RequestXtraServer:
    def __init__(self, adapter: XtraAdapter) -> None:
        self.adapter = adapter
        log.debug("%s", self.description)

    @property
    def description(self) -> str:
        return "LocEngRequestXtraServer"

    def proc(self) -> None:
        self.adapter.request_xtra_server()


class _InjectXtraData:
    def __init__(self, adapter: XtraAdapter, data: bytes) -> None:
        self.adapter = adapter
        self.data = bytes(data)
        log.debug("%s", self.description)

    @property
    def description(self) -> str:
        return f"length: {len(self.data)}"

    def proc(self) -> None:
        self.adapter.set_xtra_data(self.data, len(self.data))


class XtraModule:
    """Holds the XTRA callbacks and sends XTRA work to the engine adapter."""

    def __init__(self, adapter: XtraAdapter) -> None:
        self.adapter = adapter
        self.download_request_cb: Optional[Callable[..., Any]] = None
        self.report_xtra_server_cb: Optional[Callable[..., Any]] = None

    def init(self, callbacks: Optional[XtraCallbacks]) -> None:
        """Store the callbacks. Raises ValueError if ``callbacks`` is None."""
        if callbacks is None:
            log.error("loc_eng_xtra_init: failed, cb is NULL")
            raise ValueError("XTRA callbacks are required")
        self.download_request_cb = callbacks.download_request_cb
        self.report_xtra_server_cb = callbacks.report_xtra_server_cb

    def inject_data(self, data: bytes) -> None:
        """Queue a copy of ``data`` for injection into the engine."""
        self.adapter.send_msg(_InjectXtraData(self.adapter, data))

    def request_server(self) -> None:
        """Queue a request for the XTRA server addresses."""
        self.adapter.send_msg(_RequestXtraServer(self.adapter))