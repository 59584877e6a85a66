"""NMEA 0183 satellites-in-view sentences from satellite status reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Sequence

from locsvc.nmea import (
    BLANK_POSITION_SENTENCES,
    NMEA_SENTENCE_MAX_LENGTH,
    ExtendedFlags,
    LocationExtended,
    NmeaContext,
    put_checksum,
)

log = logging.getLogger(__name__)

GPS_PRN_RANGE = range(1, 32 + 1)
GLONASS_PRN_RANGE = range(65, 96 + 1)
_SVS_PER_SENTENCE = 4


@dataclass
class SvInfo:
    """One satellite in view: PRN, signal-to-noise ratio and position in the sky."""

    prn: int
    snr: float = 0.0
    elevation: float = 0.0
    azimuth: float = 0.0


@dataclass
class SvStatus:
    """Satellites in view and the bit mask of those used in the fix (bit 0 = PRN 1)."""

    sv_list: List[SvInfo] = field(default_factory=list)
    used_in_fix_mask: int = 0


def _round(value: float) -> int:
    return int(0.5 + value)


def _gsv_sentences(talker: str, svs: Sequence[SvInfo]) -> Iterator[str]:
    if not svs:
        yield put_checksum(f"${talker}GSV,1,1,0,")
        return

    total = -(-len(svs) // _SVS_PER_SENTENCE)
    for number in range(1, total + 1):
        start = (number - 1) * _SVS_PER_SENTENCE
        parts = [f"${talker}GSV,{total},{number},{len(svs):02d}"]
        for sv in svs[start:start + _SVS_PER_SENTENCE]:
            parts.append(
                f",{sv.prn:02d},{_round(sv.elevation):02d},{_round(sv.azimuth):03d},"
            )
            if sv.snr > 0:
                parts.append(f"{_round(sv.snr):02d}")
        body = "".join(parts)
        if len(body) >= NMEA_SENTENCE_MAX_LENGTH:
            log.error("NMEA Error in string formatting")
            raise ValueError(
                f"NMEA sentence would exceed {NMEA_SENTENCE_MAX_LENGTH} characters"
            )
        yield put_checksum(body)


def generate_sv(
    context: NmeaContext,
    sv_status: SvStatus,
    extended: LocationExtended,
) -> None:
    """Send $GPGSV and $GLGSV sentences for a satellite report.

    Satellites outside the GPS and GLONASS PRN ranges are left out. If no
    satellite is used in the fix, blank position sentences follow; otherwise
    the used-in-fix mask and (when present) the DOP values are cached in
    ``context`` for the next position report.
    """
    gps = [sv for sv in sv_status.sv_list if sv.prn in GPS_PRN_RANGE]
    glonass = [sv for sv in sv_status.sv_list if sv.prn in GLONASS_PRN_RANGE]

    for sentence in _gsv_sentences("GP", gps):
        context.send(sentence)
    for sentence in _gsv_sentences("GL", glonass):
        context.send(sentence)

    if sv_status.used_in_fix_mask == 0:
        for blank in BLANK_POSITION_SENTENCES:
            context.send(put_checksum(blank))
        return

    context.sv_used_mask = sv_status.used_in_fix_mask
    if extended.flags & ExtendedFlags.HAS_DOP:
        context.pdop = extended.pdop
        context.hdop = extended.hdop
        context.vdop = extended.vdop
    else:
        context.clear_dop()