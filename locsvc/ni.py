"""Network-initiated location requests: notify the user and relay the answer."""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

log = logging.getLogger(__name__)

NO_RESPONSE_TIME = 20
"""Seconds to wait for a user response when the request names no timeout."""

TIMEOUT_MARGIN = 5
"""Extra seconds allowed before a 'no response' answer is sent automatically."""

NOTIF_KEY_ADDRESS = "Address"

PRIVACY_OVERRIDE = 0x0004
NEED_NOTIFY = 0x0001
NEED_VERIFY = 0x0002


class UserResponse(enum.IntEnum):
    """The user's answer to a network-initiated request."""

    ACCEPT = 1
    DENY = 2
    NORESP = 3


@dataclass
class NiNotification:
    """A network-initiated request as shown to the user."""

    ni_type: int = 0
    notify_flags: int = 0
    timeout: float = 0
    default_response: int = UserResponse.NORESP
    requestor_id: str = ""
    text: str = ""
    requestor_id_encoding: int = 0
    text_encoding: int = 0
    extras: str = ""
    notification_id: int = 0


class NiAdapter(Protocol):
    """Engine adapter: queues messages and passes NI responses to the modem."""

    def send_msg(self, msg: Any) -> Any: ...

    def inform_ni_response(self, response: UserResponse, payload: Any) -> Any: ...


NotifyCallback = Callable[[NiNotification], Any]


class _InformNiResponse:
    def __init__(self, adapter: NiAdapter, response: UserResponse, payload: Any) -> None:
        self.adapter = adapter
        self.response = response
        self.payload = payload
        self.log()

    def proc(self) -> None:
        self.adapter.inform_ni_response(self.response, self.payload)

    def log(self) -> None:
        log.debug("LocEngInformNiResponse - response: %s, payload: %r",
                  self.response.name, self.payload)


class NiHandler:
    """Tracks one outstanding network-initiated request at a time.

    Each accepted request starts a timer thread; when the user answers with
    :meth:`respond`, or the timer runs out, the answer is queued on the
    adapter together with the request's pass-through data.
    """

    def __init__(
        self,
        adapter: NiAdapter,
        mute_one_session: Optional[Callable[[], Any]] = None,
        no_response_time: float = NO_RESPONSE_TIME,
        timeout_margin: float = TIMEOUT_MARGIN,
    ) -> None:
        self.adapter = adapter
        self.mute_one_session = mute_one_session
        self.no_response_time = no_response_time
        self.timeout_margin = timeout_margin
        self._notify_cb: Optional[NotifyCallback] = None
        self._cond = threading.Condition()
        self._resp_time_left: float = 0
        self._resp_recvd = False
        self._raw_request: Any = None
        self._req_id = 0
        self._resp = UserResponse.NORESP
        self._thread: Optional[threading.Thread] = None

    @property
    def request_id(self) -> int:
        """Identifier the next notification will carry."""
        return self._req_id

    @property
    def busy(self) -> bool:
        """True while a request is waiting for its answer."""
        with self._cond:
            return self._raw_request is not None

    def init(self, notify_cb: Optional[NotifyCallback]) -> None:
        """Register the user-notification callback.

        Raises ValueError if ``notify_cb`` is None and RuntimeError if the
        handler was already initialised.
        """
        if notify_cb is None:
            log.error("loc_eng_ni_init: failed, no cb.")
            raise ValueError("a notification callback is required")
        if self._notify_cb is not None:
            log.error("loc_eng_ni_init: already inited.")
            raise RuntimeError("NI handler is already initialised")
        with self._cond:
            self._resp_time_left = 0
            self._resp_recvd = False
            self._raw_request = None
            self._req_id = 0
        self._notify_cb = notify_cb

    def _require_init(self) -> NotifyCallback:
        if self._notify_cb is None:
            log.error("loc_eng_ni_init hasn't happened yet.")
            raise RuntimeError("NI handler has not been initialised")
        return self._notify_cb

    def request(self, notification: NiNotification, pass_through: Any) -> bool:
        """Show a request to the user and start its response timer.

        Returns False, dropping the request, if another one is in progress.
        ``pass_through`` must not be None; it is handed back with the answer.
        Raises RuntimeError if the handler is not initialised.
        """
        notify_cb = self._require_init()
        if pass_through is None:
            raise ValueError("pass-through data is required")

        with self._cond:
            if self._raw_request is not None:
                log.warning(
                    "notification in progress, new NI request ignored, type: %d",
                    notification.ni_type,
                )
                return False
            self._raw_request = pass_through
            notification.notification_id = self._req_id
            timeout = notification.timeout if notification.timeout else self.no_response_time
            self._resp_time_left = self.timeout_margin + timeout

        if notification.notify_flags == PRIVACY_OVERRIDE and self.mute_one_session:
            self.mute_one_session()

        log.info("Notification: notif_type: %d, timeout: %s, default_resp: %d",
                 notification.ni_type, notification.timeout, notification.default_response)
        log.info("              requestor_id: %s (encoding: %d)",
                 notification.requestor_id, notification.requestor_id_encoding)
        log.info("              text: %s text (encoding: %d)",
                 notification.text, notification.text_encoding)
        if notification.extras:
            log.info("              extras: %s", notification.extras)
        log.info("Automatically sends 'no response' in %s seconds (to clear status)",
                 self._resp_time_left)

        self._thread = threading.Thread(target=self._wait_for_response, name="loc_eng_ni",
                                        daemon=True)
        self._thread.start()

        notify_cb(notification)
        return True

    def _wait_for_response(self) -> None:
        msg: Optional[_InformNiResponse] = None
        with self._cond:
            deadline = time.monotonic() + self._resp_time_left
            while not self._resp_recvd:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not self._cond.wait(remaining):
                    if not self._resp_recvd:
                        self._resp = UserResponse.NORESP
                        log.debug("NI response timed out")
                        break
            self._resp_recvd = False
            if self._raw_request is not None:
                msg = _InformNiResponse(self.adapter, self._resp, self._raw_request)
                self._raw_request = None
            self._resp_time_left = 0
            self._req_id += 1

        if msg is not None:
            self.adapter.send_msg(msg)

    def respond(self, notif_id: int, user_response: UserResponse) -> None:
        """Deliver the user's answer to the outstanding request.

        Raises RuntimeError if not initialised and ValueError if ``notif_id``
        does not match the outstanding request or none is outstanding.
        """
        self._require_init()
        with self._cond:
            if notif_id != self._req_id or self._raw_request is None:
                log.error("reqID %d and notif_id %d mismatch or no request, response: %s",
                          self._req_id, notif_id, user_response)
                raise ValueError(
                    f"no outstanding NI request with id {notif_id} (current {self._req_id})"
                )
            log.info("send user response %s for notif %d", user_response, notif_id)
            self._resp = UserResponse(user_response)
            self._resp_recvd = True
            self._cond.notify_all()

    def reset_on_engine_restart(self) -> None:
        """Drop an outstanding request without answering it (the modem restarted)."""
        if self._notify_cb is None:
            log.debug("loc_eng_ni_init hasn't happened yet.")
            return
        with self._cond:
            if self._raw_request is None:
                return
            self._raw_request = None
            self._resp_recvd = True
            self._cond.notify_all()