"""Turn interface request/release control messages into A-GPS engine requests."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from locsvc.ctrl_msg import CtrlMessage, IfRequestSenderId, IfRequestType

log = logging.getLogger(__name__)


class AgpsType(enum.IntEnum):
    """Kind of data connection the engine is asked to manage."""

    ANY = 0
    SUPL = 1
    C2K = 2
    WWAN_ANY = 3
    WIFI = 4


class LocSenderId(enum.IntEnum):
    """Which client asked for the connection; selects the response queue."""

    QUIPC = 0
    MSAPM = 1
    MSAPU = 2
    GPSONE_DAEMON = 3
    MODEM = 4


@dataclass(frozen=True)
class WifiRequest:
    """Request or release of a Wi-Fi connection on behalf of a client."""

    agps_type: AgpsType
    sender_id: LocSenderId
    ssid: str
    password: str
    is_request: bool


@dataclass(frozen=True)
class BitRequest:
    """Request or release of a connection on behalf of the daemon itself."""

    agps_type: AgpsType
    ipv4_addr: int
    ipv6_addr: bytes
    is_request: bool


AgpsRequest = Union[WifiRequest, BitRequest]
Sink = Callable[[AgpsRequest], Any]

_AGPS_TYPES: Dict[int, AgpsType] = {
    IfRequestType.SUPL: AgpsType.SUPL,
    IfRequestType.WIFI: AgpsType.WIFI,
    IfRequestType.ANY: AgpsType.ANY,
}

_WIFI_SENDERS: Dict[int, LocSenderId] = {
    IfRequestSenderId.QUIPC: LocSenderId.QUIPC,
    IfRequestSenderId.MSAPM: LocSenderId.MSAPM,
    IfRequestSenderId.MSAPU: LocSenderId.MSAPU,
}


def _build(message: CtrlMessage, is_request: bool) -> AgpsRequest:
    request = message.if_request
    if request is None:
        raise ValueError("control message carries no interface request")

    agps_type = _AGPS_TYPES.get(int(request.type))
    if agps_type is None:
        log.debug("invalid IF_REQUEST_TYPE %r", request.type)
        raise ValueError(f"invalid interface request type: {request.type!r}")
    log.debug("IF_REQUEST_TYPE_%s", agps_type.name)

    sender = int(request.sender_id)
    if sender in _WIFI_SENDERS:
        log.debug("IF_REQUEST_SENDER_ID_%s", _WIFI_SENDERS[sender].name)
        return WifiRequest(
            agps_type=agps_type,
            sender_id=_WIFI_SENDERS[sender],
            ssid=request.ssid,
            password=request.password,
            is_request=is_request,
        )
    if sender == IfRequestSenderId.GPSONE_DAEMON:
        log.debug("IF_REQUEST_SENDER_ID_GPSONE_DAEMON")
        return BitRequest(
            agps_type=agps_type,
            ipv4_addr=int(request.ipv4_addr),
            ipv6_addr=bytes(request.ipv6_addr),
            is_request=is_request,
        )
    log.debug("invalid IF_REQUEST_SENDER_ID %r", request.sender_id)
    raise ValueError(f"invalid interface request sender: {request.sender_id!r}")


def _dispatch(message: CtrlMessage, sink: Optional[Sink], is_request: bool) -> AgpsRequest:
    if sink is None:
        log.error("no A-GPS data handle")
        raise RuntimeError("no A-GPS data handle to deliver the request to")
    agps_request = _build(message, is_request)
    sink(agps_request)
    return agps_request


def handle_if_request(message: CtrlMessage, sink: Optional[Sink]) -> AgpsRequest:
    """Deliver an interface request to ``sink`` and return what was delivered.

    Raises RuntimeError if there is no sink and ValueError if the request
    type or sender is not recognised.
    """
    return _dispatch(message, sink, True)


def handle_if_release(message: CtrlMessage, sink: Optional[Sink]) -> AgpsRequest:
    """Deliver an interface release to ``sink`` and return what was delivered.

    Raises RuntimeError if there is no sink and ValueError if the request
    type or sender is not recognised.
    """
    return _dispatch(message, sink, False)