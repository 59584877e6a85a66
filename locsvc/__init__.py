"""Location service engine parts: NMEA generation, daemon control pipes, NI and XTRA handling."""

__version__ = "0.1.0"