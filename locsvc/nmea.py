"""NMEA 0183 sentence generation from position reports."""

from __future__ import annotations

import enum
import logging
import math
import struct
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

log = logging.getLogger(__name__)

NMEA_SENTENCE_MAX_LENGTH = 200

BLANK_POSITION_SENTENCES = (
    "$GPGSA,A,1,,,,,,,,,,,,,,,",
    "$GPVTG,,T,,M,,N,,K,N",
    "$GPRMC,,V,,,,,,,,,,N",
    "$GPGGA,,,,,,0,,,,,,,,",
)

_KNOTS_PER_MPS = 3600.0 / 1852.0
_KMH_PER_MPS = 3.6
_MAX_SV_IN_MASK = 32
_MAX_SV_IN_GSA = 12

NmeaCallback = Callable[[int, str, int], Any]


class LocationFlags(enum.IntFlag):
    """Which fields of a :class:`GpsLocation` are valid."""

    HAS_LAT_LONG = 0x0001
    HAS_ALTITUDE = 0x0002
    HAS_SPEED = 0x0004
    HAS_BEARING = 0x0008
    HAS_ACCURACY = 0x0010


class ExtendedFlags(enum.IntFlag):
    """Which fields of a :class:`LocationExtended` are valid."""

    HAS_ALTITUDE_MEAN_SEA_LEVEL = 0x0001
    HAS_DOP = 0x0002
    HAS_MAG_DEV = 0x0004
    HAS_MODE_IND = 0x0008
    HAS_VERT_UNC = 0x0010
    HAS_SPEED_UNC = 0x0020


@dataclass
class GpsLocation:
    """A position fix; ``timestamp`` is milliseconds since the epoch (UTC)."""

    flags: int = 0
    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    speed: float = 0.0
    bearing: float = 0.0
    accuracy: float = 0.0
    timestamp: int = 0


@dataclass
class LocationExtended:
    """Extra fix information: sea-level altitude, dilution of precision, declination."""

    flags: int = 0
    altitude_mean_sea_level: float = 0.0
    pdop: float = 0.0
    hdop: float = 0.0
    vdop: float = 0.0
    magnetic_deviation: float = 0.0


@dataclass
class NmeaContext:
    """State shared between satellite and position reports, and the sentence sink.

    ``sv_used_mask`` and the DOP values are cached from the last satellite
    report; ``standalone`` tells whether the engine runs in autonomous mode.
    """

    nmea_cb: Optional[NmeaCallback] = None
    standalone: bool = True
    sv_used_mask: int = 0
    pdop: float = 0.0
    hdop: float = 0.0
    vdop: float = 0.0

    def send(self, sentence: str) -> None:
        """Hand a finished sentence to the callback with the current time in ms."""
        now = time.time_ns() // 1_000_000
        if self.nmea_cb is not None:
            self.nmea_cb(now, sentence, len(sentence))
        log.debug("NMEA <%s", sentence)

    @property
    def has_cached_dop(self) -> bool:
        return self.pdop > 0 and self.hdop > 0 and self.vdop > 0

    def clear_dop(self) -> None:
        self.pdop = 0.0
        self.hdop = 0.0
        self.vdop = 0.0


def put_checksum(sentence: str) -> str:
    """Append ``*XX\\r\\n`` where XX is the XOR of every character after ``$``.

    Raises ValueError if the sentence does not start with ``$`` or is not ASCII.
    """
    if not sentence.startswith("$"):
        raise ValueError(f"NMEA sentence must start with '$': {sentence!r}")
    checksum = 0
    for byte in sentence[1:].encode("ascii"):
        checksum ^= byte
    return f"{sentence}*{checksum:02X}\r\n"


def _f32(value: float) -> float:
    """Round a value to single precision, as the fix fields are stored."""
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


class _Sentence:
    def __init__(self, start: str) -> None:
        self._parts: List[str] = []
        self._length = 0
        self.add(start)

    def add(self, piece: str) -> None:
        if self._length + len(piece) >= NMEA_SENTENCE_MAX_LENGTH:
            log.error("NMEA Error in string formatting")
            raise ValueError(
                f"NMEA sentence would exceed {NMEA_SENTENCE_MAX_LENGTH} characters"
            )
        self._parts.append(piece)
        self._length += len(piece)

    def finish(self) -> str:
        return put_checksum("".join(self._parts))


def _mode_indicator(location: GpsLocation, context: NmeaContext) -> str:
    if not location.flags & LocationFlags.HAS_LAT_LONG:
        return "N"  # no fix
    return "A" if context.standalone else "D"


def _gga_quality(location: GpsLocation, context: NmeaContext) -> str:
    if not location.flags & LocationFlags.HAS_LAT_LONG:
        return "0"
    return "1" if context.standalone else "2"


def _lat_lon_fields(location: GpsLocation) -> str:
    if not location.flags & LocationFlags.HAS_LAT_LONG:
        return ",,,,"
    latitude = location.latitude
    longitude = location.longitude
    if latitude > 0:
        lat_hemisphere = "N"
    else:
        lat_hemisphere = "S"
        latitude = -latitude
    if longitude < 0:
        lon_hemisphere = "W"
        longitude = -longitude
    else:
        lon_hemisphere = "E"
    lat_minutes = math.fmod(latitude * 60.0, 60.0)
    lon_minutes = math.fmod(longitude * 60.0, 60.0)
    lat_degrees = int(math.floor(latitude)) & 0xFF
    lon_degrees = int(math.floor(longitude)) & 0xFF
    return (
        f"{lat_degrees:02d}{lat_minutes:09.6f},{lat_hemisphere},"
        f"{lon_degrees:03d}{lon_minutes:09.6f},{lon_hemisphere},"
    )


def _used_svs(mask: int) -> List[int]:
    mask &= 0xFFFFFFFF
    used = []
    prn = 1
    while mask > 0 and len(used) < _MAX_SV_IN_MASK:
        if mask & 1:
            used.append(prn)
        mask >>= 1
        prn += 1
    return used


def _utc_fields(timestamp_ms: int) -> time.struct_time:
    seconds = int(timestamp_ms / 1000) if abs(timestamp_ms) < 2**52 else (
        abs(timestamp_ms) // 1000 * (1 if timestamp_ms >= 0 else -1)
    )
    return time.gmtime(seconds)


def _gsa(context: NmeaContext, extended: LocationExtended, used: List[int]) -> str:
    if not used:
        fix_type = "1"
    elif len(used) <= 3:
        fix_type = "2"
    else:
        fix_type = "3"
    sentence = _Sentence(f"$GPGSA,A,{fix_type},")
    for slot in range(_MAX_SV_IN_GSA):
        sentence.add(f"{used[slot]:02d}," if slot < len(used) else ",")
    if extended.flags & ExtendedFlags.HAS_DOP:
        sentence.add(
            f"{_f32(extended.pdop):.1f},{_f32(extended.hdop):.1f},{_f32(extended.vdop):.1f}"
        )
    elif context.has_cached_dop:
        sentence.add(f"{context.pdop:.1f},{context.hdop:.1f},{context.vdop:.1f}")
    else:
        sentence.add(",,")
    return sentence.finish()


def _vtg(context: NmeaContext, location: GpsLocation) -> str:
    if location.flags & LocationFlags.HAS_BEARING:
        bearing = _f32(location.bearing)
        # The magnetic track is reported equal to the true track.
        sentence = _Sentence(f"$GPVTG,{bearing:.1f},T,{bearing:.1f},M,")
    else:
        sentence = _Sentence("$GPVTG,,T,,M,")
    if location.flags & LocationFlags.HAS_SPEED:
        speed = _f32(location.speed)
        knots = _f32(speed * _KNOTS_PER_MPS)
        kmh = _f32(speed * _KMH_PER_MPS)
        sentence.add(f"{knots:.1f},N,{kmh:.1f},K,")
    else:
        sentence.add(",N,,K,")
    sentence.add(_mode_indicator(location, context))
    return sentence.finish()


def _rmc(context: NmeaContext, location: GpsLocation, extended: LocationExtended,
         utc: time.struct_time) -> str:
    sentence = _Sentence(f"$GPRMC,{utc.tm_hour:02d}{utc.tm_min:02d}{utc.tm_sec:02d},A,")
    sentence.add(_lat_lon_fields(location))
    if location.flags & LocationFlags.HAS_SPEED:
        sentence.add(f"{_f32(_f32(location.speed) * _KNOTS_PER_MPS):.1f},")
    else:
        sentence.add(",")
    if location.flags & LocationFlags.HAS_BEARING:
        sentence.add(f"{_f32(location.bearing):.1f},")
    else:
        sentence.add(",")
    sentence.add(f"{utc.tm_mday:02d}{utc.tm_mon:02d}{utc.tm_year % 100:02d},")
    if extended.flags & ExtendedFlags.HAS_MAG_DEV:
        variation = _f32(extended.magnetic_deviation)
        direction = "E"
        if variation < 0.0:
            direction = "W"
            variation = -variation
        sentence.add(f"{variation:.1f},{direction},")
    else:
        sentence.add(",,")
    sentence.add(_mode_indicator(location, context))
    return sentence.finish()


def _gga(context: NmeaContext, location: GpsLocation, extended: LocationExtended,
         utc: time.struct_time, used_count: int) -> str:
    sentence = _Sentence(f"$GPGGA,{utc.tm_hour:02d}{utc.tm_min:02d}{utc.tm_sec:02d},")
    sentence.add(_lat_lon_fields(location))
    quality = _gga_quality(location, context)
    if extended.flags & ExtendedFlags.HAS_DOP:
        sentence.add(f"{quality},{used_count:02d},{_f32(extended.hdop):.1f},")
    elif context.has_cached_dop:
        sentence.add(f"{quality},{used_count:02d},{context.hdop:.1f},")
    else:
        sentence.add(f"{quality},{used_count:02d},,")
    has_msl = bool(extended.flags & ExtendedFlags.HAS_ALTITUDE_MEAN_SEA_LEVEL)
    if has_msl:
        sentence.add(f"{extended.altitude_mean_sea_level:.1f},M,")
    else:
        sentence.add(",,")
    if has_msl and location.flags & LocationFlags.HAS_ALTITUDE:
        separation = location.altitude - extended.altitude_mean_sea_level
        sentence.add(f"{separation:.1f},M,,")
    else:
        sentence.add(",,,")
    return sentence.finish()


def generate_pos(
    context: NmeaContext,
    location: GpsLocation,
    extended: LocationExtended,
    generate_nmea: bool,
) -> None:
    """Send GSA, VTG, RMC and GGA sentences for a position report.

    When ``generate_nmea`` is false, blank sentences are sent instead. The
    cached DOP values are cleared afterwards; the cached satellite mask is
    consumed by a full report. Raises ValueError if a sentence would exceed
    the maximum NMEA length.
    """
    utc = _utc_fields(location.timestamp)

    if generate_nmea:
        used = _used_svs(context.sv_used_mask)
        context.sv_used_mask = 0
        context.send(_gsa(context, extended, used))
        context.send(_vtg(context, location))
        context.send(_rmc(context, location, extended, utc))
        context.send(_gga(context, location, extended, utc, len(used)))
    else:
        for blank in BLANK_POSITION_SENTENCES:
            context.send(put_checksum(blank))

    context.clear_dop()