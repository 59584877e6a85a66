import pytest

from locsvc.nmea import (
    BLANK_POSITION_SENTENCES,
    ExtendedFlags,
    LocationExtended,
    NmeaContext,
    put_checksum,
)
from locsvc.nmea_sv import SvInfo, SvStatus, generate_sv


def _run(status, extended=None, context=None):
    out = []
    if context is None:
        context = NmeaContext()
    context.nmea_cb = lambda now, sentence, length: out.append(sentence)
    generate_sv(context, status, extended or LocationExtended())
    return context, out


def _body(sentence):
    return sentence.rsplit("*", 1)[0]


def test_empty_status_sends_blank_gsv_and_position_sentences():
    _, out = _run(SvStatus())
    expected = [put_checksum("$GPGSV,1,1,0,"), put_checksum("$GLGSV,1,1,0,")]
    expected += [put_checksum(s) for s in BLANK_POSITION_SENTENCES]
    assert out == expected


def test_single_gps_satellite_rounding():
    status = SvStatus([SvInfo(prn=5, snr=45.5, elevation=39.6, azimuth=82.5)])
    _, out = _run(status)
    assert _body(out[0]) == "$GPGSV,1,1,01,05,40,083,46"
    assert out[1] == put_checksum("$GLGSV,1,1,0,")


def test_zero_snr_is_omitted():
    status = SvStatus([SvInfo(prn=5, snr=0.0, elevation=40.0, azimuth=83.0)])
    _, out = _run(status)
    assert _body(out[0]) == "$GPGSV,1,1,01,05,40,083,"


def test_five_gps_satellites_span_two_sentences():
    svs = [SvInfo(prn=p, snr=30, elevation=10, azimuth=100) for p in (1, 2, 3, 4, 6)]
    _, out = _run(SvStatus(svs))
    gsv = [s for s in out if s.startswith("$GPGSV")]
    assert len(gsv) == 2
    assert gsv[0].startswith("$GPGSV,2,1,05")
    assert gsv[1].startswith("$GPGSV,2,2,05")
    assert _body(gsv[0]).count(",30") == 4
    assert ",06," in gsv[1]


def test_glonass_and_out_of_range_satellites():
    svs = [
        SvInfo(prn=70, snr=20, elevation=15, azimuth=200),
        SvInfo(prn=40, snr=20, elevation=15, azimuth=200),
        SvInfo(prn=120, snr=20, elevation=15, azimuth=200),
    ]
    _, out = _run(SvStatus(svs))
    assert out[0] == put_checksum("$GPGSV,1,1,0,")
    assert out[1].startswith("$GLGSV,1,1,01,70,")
    assert ",40," not in out[1]


def test_sentences_carry_valid_checksums():
    svs = [SvInfo(prn=p, snr=25, elevation=p, azimuth=p * 3) for p in range(1, 10)]
    svs += [SvInfo(prn=p, snr=25, elevation=5, azimuth=7) for p in range(65, 70)]
    _, out = _run(SvStatus(svs, used_in_fix_mask=0b111))
    assert out
    for sentence in out:
        assert put_checksum(_body(sentence)) == sentence


def test_used_mask_and_dop_are_cached():
    extended = LocationExtended(flags=ExtendedFlags.HAS_DOP, pdop=1.5, hdop=0.9, vdop=1.2)
    status = SvStatus([SvInfo(prn=3, snr=40, elevation=50, azimuth=10)], used_in_fix_mask=4)
    context, out = _run(status, extended)
    assert context.sv_used_mask == 4
    assert (context.pdop, context.hdop, context.vdop) == (1.5, 0.9, 1.2)
    assert not any(s.startswith("$GPGGA") for s in out)


def test_dop_cleared_without_dop_flag():
    context = NmeaContext(pdop=2.0, hdop=2.0, vdop=2.0)
    status = SvStatus([SvInfo(prn=3, snr=40, elevation=50, azimuth=10)], used_in_fix_mask=4)
    context, _ = _run(status, LocationExtended(), context)
    assert (context.pdop, context.hdop, context.vdop) == (0.0, 0.0, 0.0)
    assert context.sv_used_mask == 4


def test_no_fix_leaves_cache_untouched():
    context = NmeaContext(sv_used_mask=9)
    context, out = _run(SvStatus([SvInfo(prn=3)]), None, context)
    assert context.sv_used_mask == 9
    assert out[-4:] == [put_checksum(s) for s in BLANK_POSITION_SENTENCES]


@pytest.mark.parametrize("count,expected", [(4, 1), (8, 2), (9, 3)])
def test_sentence_count(count, expected):
    svs = [SvInfo(prn=p, snr=10) for p in range(1, count + 1)]
    _, out = _run(SvStatus(svs))
    assert len([s for s in out if s.startswith("$GPGSV")]) == expected