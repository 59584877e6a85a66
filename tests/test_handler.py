import pytest

from locsvc.ctrl_msg import CtrlMessage, CtrlType, IfRequest, IfRequestSenderId, IfRequestType
from locsvc.handler import (
    AgpsType,
    BitRequest,
    LocSenderId,
    WifiRequest,
    handle_if_release,
    handle_if_request,
)


def _message(req_type, sender, ctrl_type=CtrlType.IF_REQUEST, **kwargs):
    return CtrlMessage(ctrl_type=ctrl_type, if_request=IfRequest(req_type, sender, **kwargs))


@pytest.mark.parametrize(
    "sender, expected",
    [
        (IfRequestSenderId.QUIPC, LocSenderId.QUIPC),
        (IfRequestSenderId.MSAPM, LocSenderId.MSAPM),
        (IfRequestSenderId.MSAPU, LocSenderId.MSAPU),
    ],
)
def test_wifi_request_is_delivered(sender, expected):
    delivered = []
    password = "password"
    message = _message(IfRequestType.WIFI, sender, ssid="testnet", password=password)
    result = handle_if_request(message, delivered.append)
    assert delivered == [result]
    assert result == WifiRequest(AgpsType.WIFI, expected, "testnet", password, True)


def test_daemon_request_becomes_bit_request():
    delivered = []
    ipv6 = bytes(range(16))
    message = _message(
        IfRequestType.SUPL, IfRequestSenderId.GPSONE_DAEMON, ipv4_addr=0x0A000001, ipv6_addr=ipv6
    )
    result = handle_if_request(message, delivered.append)
    assert result == BitRequest(AgpsType.SUPL, 0x0A000001, ipv6, True)
    assert delivered == [result]


@pytest.mark.parametrize(
    "req_type, expected",
    [
        (IfRequestType.SUPL, AgpsType.SUPL),
        (IfRequestType.WIFI, AgpsType.WIFI),
        (IfRequestType.ANY, AgpsType.ANY),
    ],
)
def test_request_type_mapping(req_type, expected):
    result = handle_if_request(_message(req_type, IfRequestSenderId.MSAPM), lambda r: None)
    assert result.agps_type is expected


def test_release_marks_not_request():
    delivered = []
    message = _message(IfRequestType.ANY, IfRequestSenderId.QUIPC, ctrl_type=CtrlType.IF_RELEASE)
    result = handle_if_release(message, delivered.append)
    assert result.is_request is False
    assert delivered == [result]


def test_release_for_daemon():
    message = _message(
        IfRequestType.WIFI, IfRequestSenderId.GPSONE_DAEMON, ctrl_type=CtrlType.IF_RELEASE
    )
    result = handle_if_release(message, lambda r: None)
    assert isinstance(result, BitRequest)
    assert result.is_request is False


def test_invalid_type_raises_and_delivers_nothing():
    delivered = []
    with pytest.raises(ValueError):
        handle_if_request(_message(7, IfRequestSenderId.QUIPC), delivered.append)
    assert delivered == []


def test_modem_sender_is_rejected():
    delivered = []
    with pytest.raises(ValueError):
        handle_if_release(_message(IfRequestType.SUPL, IfRequestSenderId.MODEM), delivered.append)
    assert delivered == []


def test_missing_sink_raises():
    with pytest.raises(RuntimeError):
        handle_if_request(_message(IfRequestType.SUPL, IfRequestSenderId.QUIPC), None)


def test_missing_payload_raises():
    with pytest.raises(ValueError):
        handle_if_request(CtrlMessage(ctrl_type=CtrlType.IF_REQUEST), lambda r: None)