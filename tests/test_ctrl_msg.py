import struct

import pytest

from locsvc.ctrl_msg import (
    HEADER_SIZE,
    IPV6_ADDR_SIZE,
    MESSAGE_SIZE,
    CtrlMessage,
    CtrlType,
    IfRequest,
    IfRequestSenderId,
    IfRequestType,
    ResponseResult,
    decode_message,
    encode_message,
)


def test_encoded_size_and_msgsz_header():
    data = encode_message(CtrlMessage(CtrlType.UNBLOCK))
    assert len(data) == MESSAGE_SIZE
    assert struct.unpack_from("<I", data)[0] == MESSAGE_SIZE


def test_unblock_ctrl_type_byte():
    data = encode_message(CtrlMessage(CtrlType.UNBLOCK))
    assert data[HEADER_SIZE - 4] == 0xF3


def test_response_round_trip():
    message = CtrlMessage(CtrlType.RESPONSE, result=ResponseResult.IF_FAILURE)
    decoded = decode_message(encode_message(message))
    assert decoded.ctrl_type is CtrlType.RESPONSE
    assert decoded.result is ResponseResult.IF_FAILURE
    assert int(decoded.result) == 0xF2


def test_if_request_round_trip():
    password = "password"
    request = IfRequest(
        type=IfRequestType.WIFI,
        sender_id=IfRequestSenderId.MSAPM,
        ipv4_addr=0x0A000001,
        ipv6_addr=bytes(range(IPV6_ADDR_SIZE)),
        ssid="example-net",
        password=password,
    )
    message = CtrlMessage(CtrlType.IF_REQUEST, if_request=request)
    decoded = decode_message(encode_message(message))
    assert decoded == message


def test_if_release_round_trip_keeps_enums():
    request = IfRequest(IfRequestType.SUPL, IfRequestSenderId.GPSONE_DAEMON)
    decoded = decode_message(
        encode_message(CtrlMessage(CtrlType.IF_RELEASE, if_request=request))
    )
    assert decoded.ctrl_type is CtrlType.IF_RELEASE
    assert decoded.if_request.type is IfRequestType.SUPL
    assert decoded.if_request.sender_id is IfRequestSenderId.GPSONE_DAEMON


def test_unknown_values_are_preserved_as_ints():
    request = IfRequest(type=9, sender_id=17)
    decoded = decode_message(
        encode_message(CtrlMessage(CtrlType.IF_REQUEST, if_request=request))
    )
    assert decoded.if_request.type == 9
    assert decoded.if_request.sender_id == 17

    other = decode_message(encode_message(CtrlMessage(0x10)))
    assert other.ctrl_type == 0x10
    assert other.if_request is None


def test_unblock_reserved_round_trip():
    decoded = decode_message(encode_message(CtrlMessage(CtrlType.UNBLOCK, reserved=-3)))
    assert decoded.reserved == -3


def test_ssid_too_long_rejected():
    request = IfRequest(IfRequestType.WIFI, IfRequestSenderId.QUIPC, ssid="x" * 33)
    with pytest.raises(ValueError):
        encode_message(CtrlMessage(CtrlType.IF_REQUEST, if_request=request))


def test_ssid_at_limit_accepted():
    request = IfRequest(IfRequestType.WIFI, IfRequestSenderId.QUIPC, ssid="y" * 32)
    decoded = decode_message(
        encode_message(CtrlMessage(CtrlType.IF_REQUEST, if_request=request))
    )
    assert decoded.if_request.ssid == "y" * 32


def test_bad_ipv6_length_rejected():
    request = IfRequest(IfRequestType.ANY, IfRequestSenderId.MSAPU, ipv6_addr=b"\x01\x02")
    with pytest.raises(ValueError):
        encode_message(CtrlMessage(CtrlType.IF_REQUEST, if_request=request))


def test_ctrl_type_out_of_byte_range_rejected():
    with pytest.raises(ValueError):
        encode_message(CtrlMessage(300))


def test_decode_short_data_rejected():
    with pytest.raises(ValueError):
        decode_message(b"\x00" * (HEADER_SIZE - 1))


def test_decode_truncated_body_rejected():
    data = encode_message(CtrlMessage(CtrlType.RESPONSE, result=1))
    with pytest.raises(ValueError):
        decode_message(data[:-1])


def test_decode_declared_size_below_header_rejected():
    data = bytearray(encode_message(CtrlMessage(CtrlType.UNBLOCK)))
    struct.pack_into("<I", data, 0, 2)
    with pytest.raises(ValueError):
        decode_message(bytes(data))