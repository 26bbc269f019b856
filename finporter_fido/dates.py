"""Date resolution for Fidelity exports.

Fidelity "run date" and "date sold" cells carry a bare ``MM/DD/YYYY`` with no
time of day. They resolve to noon in the caller's zone unless another time is
given, which keeps the calendar day stable across US zones.

The resolver is a pure function: the zone is always an argument. Only the
importer entry points fall back to :func:`host_time_zone`.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

DEFAULT_TIME_OF_DAY = "12:00"

# Generic wall-clock abbreviations used in the positions "Date downloaded" banner.
_GENERIC_ZONES: dict[str, str] = {
    "ET": "America/New_York",
    "CT": "America/Chicago",
    "MT": "America/Denver",
    "PT": "America/Los_Angeles",
    "AKT": "America/Anchorage",
    "HT": "Pacific/Honolulu",
}

_EXPORTED_AT_RE = re.compile(
    r"^(?P<stamp>\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}\s*[AaPp][Mm])\s+(?P<zone>[A-Za-z]+)$"
)


class _HostZone(tzinfo):
    """The host's local zone, applying its daylight-saving rules per date.

    Offsets come from the C library via ``datetime.astimezone()`` on the naive
    wall time, so the result follows ``TZ`` and the system zone database.
    """

    def _local(self, dt: datetime) -> datetime:
        return dt.replace(tzinfo=None).astimezone()

    def utcoffset(self, dt: datetime | None) -> timedelta | None:
        if dt is None:
            return None
        return self._local(dt).utcoffset()

    def dst(self, dt: datetime | None) -> timedelta | None:
        return None

    def tzname(self, dt: datetime | None) -> str | None:
        if dt is None:
            return None
        return self._local(dt).tzname()

    def fromutc(self, dt: datetime) -> datetime:
        return dt.replace(tzinfo=UTC).astimezone().replace(tzinfo=self)

    def __repr__(self) -> str:
        return "host_time_zone()"


_HOST_ZONE = _HostZone()


def host_time_zone() -> tzinfo:
    """Return the host's local zone with its per-date UTC offsets."""

    return _HOST_ZONE


def parse_fido_mmddyyyy(
    mmddyyyy: str | None,
    def_time_of_day: str | None = None,
    *,
    time_zone: tzinfo,
) -> datetime | None:
    """Resolve a naked ``MM/DD/YYYY`` date into an absolute UTC instant.

    ``def_time_of_day`` is ``HH:MM`` (default ``"12:00"``) and must be exactly
    five characters. Returns ``None`` when the date is missing, the time of
    day is malformed, or the combination does not parse.
    """

    time_of_day = def_time_of_day if def_time_of_day is not None else DEFAULT_TIME_OF_DAY
    if mmddyyyy is None or len(time_of_day) != 5:
        return None

    try:
        naive = datetime.strptime(f"{mmddyyyy.strip()} {time_of_day}", "%m/%d/%Y %H:%M")
    except ValueError:
        return None
    return naive.replace(tzinfo=time_zone).astimezone(UTC)


def parse_fido_exported_at(value: str | None) -> datetime | None:
    """Parse a banner value such as ``07/30/2021 2:26 PM ET`` into UTC.

    Unknown zone abbreviations and malformed values yield ``None``.
    """

    if value is None:
        return None
    m = _EXPORTED_AT_RE.match(value.strip())
    if m is None:
        return None
    zone_name = _GENERIC_ZONES.get(m.group("zone").upper())
    if zone_name is None:
        return None

    stamp = " ".join(m.group("stamp").split()).upper()
    # "2:26PM" and "2:26 PM" both occur; normalize to a single space.
    stamp = re.sub(r"(\d)([AP]M)$", r"\1 \2", stamp)
    try:
        naive = datetime.strptime(stamp, "%m/%d/%Y %I:%M %p")
    except ValueError:
        return None
    return naive.replace(tzinfo=ZoneInfo(zone_name)).astimezone(UTC)


__all__ = [
    "DEFAULT_TIME_OF_DAY",
    "host_time_zone",
    "parse_fido_exported_at",
    "parse_fido_mmddyyyy",
]
