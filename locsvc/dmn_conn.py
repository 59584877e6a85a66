"""Server that listens for daemon control messages and answers on response queues."""

from __future__ import annotations

import grp
import logging
import os
import time
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from locsvc.ctrl_msg import MESSAGE_SIZE, CtrlMessage, CtrlType
from locsvc.handler import LocSenderId, Sink, handle_if_release, handle_if_request
from locsvc.msgqueue import MessageQueueError, msg_get, msg_receive, msg_remove, msg_send
from locsvc.thread_helper import CreateThread, ThreadHelper

log = logging.getLogger(__name__)

QUEUE_PERMISSIONS = 0o660
GPS_GROUP = "gps"
_RECEIVE_SLACK = 256
_RETRY_DELAY = 0.001


@dataclass(frozen=True)
class QueuePaths:
    """Filesystem paths of the request queue and the four response queues."""

    loc_api: str = "/tmp/gpsone_loc_api_q"
    loc_api_resp: str = "/tmp/gpsone_loc_api_resp_q"
    quipc_ctrl: str = "/tmp/quipc_ctrl_q"
    msapm_ctrl: str = "/tmp/msapm_ctrl_q"
    msapu_ctrl: str = "/tmp/msapu_ctrl_q"


ANDROID_QUEUE_PATHS = QueuePaths(
    loc_api="/data/misc/gpsone_d/gpsone_loc_api_q",
    loc_api_resp="/data/misc/gpsone_d/gpsone_loc_api_resp_q",
    quipc_ctrl="/data/misc/gpsone_d/quipc_ctrl_q",
    msapm_ctrl="/data/misc/gpsone_d/msapm_ctrl_q",
    msapu_ctrl="/data/misc/gpsone_d/msapu_ctrl_q",
)

_RESPONSE_QUEUES = {
    LocSenderId.QUIPC: "quipc_ctrl",
    LocSenderId.MSAPM: "msapm_ctrl",
    LocSenderId.MSAPU: "msapu_ctrl",
    LocSenderId.GPSONE_DAEMON: "loc_api_resp",
}


def _share_with_gps_group(path: str, gid: Optional[int]) -> None:
    try:
        os.chmod(path, QUEUE_PERMISSIONS)
    except OSError as exc:
        log.error("failed to change mode for %s, error = %s", path, exc)
    if gid is None:
        return
    try:
        os.chown(path, -1, gid)
    except OSError as exc:
        log.error("chown for pipe failed, pipe %s, gid = %d, error = %s", path, gid, exc)


class LocApiServer:
    """Receives interface requests on one queue and hands them to ``sink``.

    Responses produced by the engine are sent back with :meth:`data_conn`.
    """

    def __init__(self, paths: Optional[QueuePaths] = None, sink: Optional[Sink] = None) -> None:
        self.paths = paths or QueuePaths()
        self.sink = sink
        self._helper = ThreadHelper()
        self._queues: Dict[str, int] = {}
        self._served = 0

    def _proc_init(self, _context: Any) -> None:
        try:
            gid: Optional[int] = grp.getgrnam(GPS_GROUP).gr_gid
        except KeyError:
            log.error("getgrnam for %s failed", GPS_GROUP)
            gid = None

        for field in fields(self.paths):
            path = getattr(self.paths, field.name)
            self._queues[field.name] = msg_get(path, os.O_RDWR)
            if field.name in ("loc_api", "loc_api_resp"):
                _share_with_gps_group(path, gid)
        log.debug("loc_api_server_msgqid = %d", self._queues["loc_api"])

    def _proc(self, _context: Any) -> None:
        self.serve_once()

    def _proc_post(self, _context: Any) -> None:
        log.debug("removing queues")
        for name, qid in self._queues.items():
            msg_remove(getattr(self.paths, name), qid)
        self._queues.clear()

    def serve_once(self) -> Optional[CtrlMessage]:
        """Receive and handle one message; return it, or None if receiving failed."""
        self._served += 1
        log.debug("%d listening on %s...", self._served, self.paths.loc_api)
        try:
            message = msg_receive(self._queues["loc_api"], MESSAGE_SIZE + _RECEIVE_SLACK)
        except MessageQueueError as exc:
            log.error("fail receiving msg from gpsone_daemon, retry later: %s", exc)
            time.sleep(_RETRY_DELAY)
            return None

        log.debug("received ctrl_type = %r", message.ctrl_type)
        try:
            if message.ctrl_type == CtrlType.IF_REQUEST:
                handle_if_request(message, self.sink)
            elif message.ctrl_type == CtrlType.IF_RELEASE:
                handle_if_release(message, self.sink)
            elif message.ctrl_type == CtrlType.UNBLOCK:
                log.debug("GPSONE_UNBLOCK")
            else:
                log.error("unsupported ctrl_type = %r", message.ctrl_type)
        except (ValueError, RuntimeError) as exc:
            log.error("cannot handle %r: %s", message.ctrl_type, exc)
        return message

    def launch(self, create_thread: Optional[CreateThread] = None) -> None:
        """Open the queues and start serving on a worker thread.

        Raises ThreadHelperError if the worker cannot start or the queues
        cannot be opened.
        """
        self._helper.launch(
            self._proc_init,
            None,
            self._proc,
            self._proc_post,
            create_thread,
            self.paths.loc_api,
        )

    def unblock(self) -> None:
        """Ask the server to stop and wake it from a blocking receive."""
        self._helper.unblock()
        log.debug("sending unblock")
        qid = self._queues.get("loc_api")
        if qid is not None:
            try:
                msg_send(qid, CtrlMessage(ctrl_type=CtrlType.UNBLOCK))
            except (MessageQueueError, OSError) as exc:
                log.error("cannot send unblock: %s", exc)

    def join(self) -> None:
        """Wait for the server thread to finish."""
        self._helper.join()

    def data_conn(self, sender_id: int, status: int) -> None:
        """Send a response with ``status`` to the queue of ``sender_id``.

        Unknown senders are logged and ignored. Raises MessageQueueError if
        the response cannot be sent.
        """
        name = _RESPONSE_QUEUES.get(sender_id)
        if name is None:
            log.debug("invalid sender ID %r", sender_id)
            return
        qid = self._queues.get(name)
        if qid is None:
            raise MessageQueueError(f"response queue {name} is not open")
        log.debug("sender_id = %r, queue = %d", sender_id, qid)
        try:
            msg_send(qid, CtrlMessage(ctrl_type=CtrlType.RESPONSE, result=status))
        except MessageQueueError:
            log.debug("error! conn_glue_msgsnd failed")
            raise