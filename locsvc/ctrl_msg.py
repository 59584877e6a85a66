"""Control messages exchanged with the location daemon over named pipes."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Optional, Type, TypeVar, Union

SSID_BUF_SIZE = 32 + 1
IPV6_ADDR_SIZE = 16

# size_t msgsz; uint16 reserved1; (pad); uint32 reserved2; uint8 ctrl_type; (pad)
_HEADER = struct.Struct("<IH2xIB3x")
_IF_REQUEST = struct.Struct(
    f"<IIL{IPV6_ADDR_SIZE}s{SSID_BUF_SIZE}s{SSID_BUF_SIZE}s"
)
_INT = struct.Struct("<i")

HEADER_SIZE = _HEADER.size
UNION_SIZE = (_IF_REQUEST.size + 3) // 4 * 4
MESSAGE_SIZE = HEADER_SIZE + UNION_SIZE


class CtrlType(enum.IntEnum):
    """Message kinds; 0x00-0xEF are reserved for the daemon itself."""

    IF_REQUEST = 0xF0
    IF_RELEASE = 0xF1
    RESPONSE = 0xF2
    UNBLOCK = 0xF3


class ResponseResult(enum.IntEnum):
    IF_REQUEST_SUCCESS = 0xF0
    IF_RELEASE_SUCCESS = 0xF1
    IF_FAILURE = 0xF2


class IfRequestType(enum.IntEnum):
    SUPL = 0
    WIFI = 1
    ANY = 2


class IfRequestSenderId(enum.IntEnum):
    QUIPC = 0
    MSAPM = 1
    MSAPU = 2
    GPSONE_DAEMON = 3
    MODEM = 4


_E = TypeVar("_E", bound=enum.IntEnum)


def _coerce(enum_cls: Type[_E], value: int) -> Union[_E, int]:
    try:
        return enum_cls(value)
    except ValueError:
        return int(value)


@dataclass
class IfRequest:
    """Request to bring up or release a data interface."""

    type: int
    sender_id: int
    ipv4_addr: int = 0
    ipv6_addr: bytes = bytes(IPV6_ADDR_SIZE)
    ssid: str = ""
    password: str = ""


@dataclass
class CtrlMessage:
    """A decoded control message; the payload used depends on ``ctrl_type``."""

    ctrl_type: int
    result: int = 0
    reserved: int = 0
    if_request: Optional[IfRequest] = None


def _encode_cstr(text: str, field_name: str) -> bytes:
    raw = text.encode("utf-8")
    if len(raw) >= SSID_BUF_SIZE:
        raise ValueError(
            f"{field_name} is {len(raw)} bytes; at most {SSID_BUF_SIZE - 1} allowed"
        )
    return raw


def _decode_cstr(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", "replace")


def _encode_if_request(request: IfRequest) -> bytes:
    ipv6 = bytes(request.ipv6_addr)
    if len(ipv6) != IPV6_ADDR_SIZE:
        raise ValueError(f"ipv6_addr must be {IPV6_ADDR_SIZE} bytes, got {len(ipv6)}")
    try:
        return _IF_REQUEST.pack(
            int(request.type),
            int(request.sender_id),
            int(request.ipv4_addr),
            ipv6,
            _encode_cstr(request.ssid, "ssid"),
            _encode_cstr(request.password, "password"),
        )
    except struct.error as exc:
        raise ValueError(f"cannot encode interface request: {exc}") from exc


def _decode_if_request(body: bytes) -> IfRequest:
    req_type, sender, ipv4, ipv6, ssid, secret = _IF_REQUEST.unpack_from(body)
    return IfRequest(
        type=_coerce(IfRequestType, req_type),
        sender_id=_coerce(IfRequestSenderId, sender),
        ipv4_addr=ipv4,
        ipv6_addr=ipv6,
        ssid=_decode_cstr(ssid),
        password=_decode_cstr(secret),
    )


def encode_message(message: CtrlMessage) -> bytes:
    """Encode a message into its fixed-size wire form, with ``msgsz`` filled in."""
    ctrl_type = int(message.ctrl_type)
    try:
        if ctrl_type in (CtrlType.IF_REQUEST, CtrlType.IF_RELEASE):
            request = message.if_request or IfRequest(0, 0)
            body = _encode_if_request(request)
        elif ctrl_type == CtrlType.RESPONSE:
            body = _INT.pack(int(message.result))
        elif ctrl_type == CtrlType.UNBLOCK:
            body = _INT.pack(int(message.reserved))
        else:
            body = b""
        header = _HEADER.pack(MESSAGE_SIZE, 0, 0, ctrl_type)
    except struct.error as exc:
        raise ValueError(f"cannot encode control message: {exc}") from exc
    return header + body.ljust(UNION_SIZE, b"\0")


def decode_message(data: bytes) -> CtrlMessage:
    """Decode a message received from a pipe.

    Raises ValueError if the data is shorter than the header or than the size
    the header declares.
    """
    data = bytes(data)
    if len(data) < HEADER_SIZE:
        raise ValueError(f"message too short: {len(data)} < {HEADER_SIZE}")
    msgsz, _reserved1, _reserved2, ctrl_type = _HEADER.unpack_from(data)
    if msgsz < HEADER_SIZE:
        raise ValueError(f"declared message size {msgsz} is below header size")
    if msgsz > len(data):
        raise ValueError(f"message truncated: {len(data)} < declared {msgsz}")
    body = data[HEADER_SIZE:msgsz].ljust(UNION_SIZE, b"\0")

    kind = _coerce(CtrlType, ctrl_type)
    message = CtrlMessage(ctrl_type=kind)
    if kind in (CtrlType.IF_REQUEST, CtrlType.IF_RELEASE):
        message.if_request = _decode_if_request(body)
    elif kind == CtrlType.RESPONSE:
        message.result = _coerce(ResponseResult, _INT.unpack_from(body)[0])
    elif kind == CtrlType.UNBLOCK:
        message.reserved = _INT.unpack_from(body)[0]
    return message