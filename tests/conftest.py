"""
Shared pytest fixtures and iCal helpers.
"""

import pytest

from calendar_combine.models import CombineConfig

_DTSTAMP = "20231224T000000Z"

BERLIN_VTIMEZONE = (
    "BEGIN:VTIMEZONE\r\n"
    "TZID:Europe/Berlin\r\n"
    "BEGIN:STANDARD\r\n"
    "DTSTART:19701025T030000\r\n"
    "TZOFFSETFROM:+0200\r\n"
    "TZOFFSETTO:+0100\r\n"
    "RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU\r\n"
    "TZNAME:CET\r\n"
    "END:STANDARD\r\n"
    "BEGIN:DAYLIGHT\r\n"
    "DTSTART:19700329T020000\r\n"
    "TZOFFSETFROM:+0100\r\n"
    "TZOFFSETTO:+0200\r\n"
    "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU\r\n"
    "TZNAME:CEST\r\n"
    "END:DAYLIGHT\r\n"
    "END:VTIMEZONE\r\n"
)


def make_vevent(
    uid: str,
    summary: str = "Test Event",
    dtstart: str | None = "DTSTART:20240301T100000Z",
    extra_lines: list[str] = (),
) -> str:
    """Return a minimal VEVENT iCal string (no VCALENDAR wrapper).

    ``dtstart`` is a full content line so tests can vary parameters; pass None
    to leave DTSTART out entirely.
    """
    lines = ["BEGIN:VEVENT", f"UID:{uid}", f"SUMMARY:{summary}", f"DTSTAMP:{_DTSTAMP}"]
    if dtstart is not None:
        lines.append(dtstart)
    lines.extend(extra_lines)
    lines.append("END:VEVENT")
    return "\r\n".join(lines) + "\r\n"


def wrap_vcalendar(*bodies: str, prodid: str = "-//TestSuite//EN") -> str:
    """Wrap VEVENT (or other component) strings in a minimal VCALENDAR."""
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        f"PRODID:{prodid}\r\n" + "".join(bodies) + "END:VCALENDAR\r\n"
    )


@pytest.fixture
def source_a() -> str:
    """One UTC event carrying private details."""
    return wrap_vcalendar(
        make_vevent(
            "dentist-1@a.example",
            summary="Dentist",
            dtstart="DTSTART:20240101T100000Z",
            extra_lines=["DTEND:20240101T110000Z", "LOCATION:Clinic"],
        )
    )


@pytest.fixture
def source_b() -> str:
    """One floating, weekly-recurring event."""
    return wrap_vcalendar(
        make_vevent(
            "standup-1@b.example",
            summary="Standup",
            dtstart="DTSTART:20240102T090000",
            extra_lines=["DURATION:PT15M", "RRULE:FREQ=WEEKLY"],
        )
    )


@pytest.fixture
def source_files(tmp_path, source_a, source_b):
    a = tmp_path / "a.ics"
    b = tmp_path / "b.ics"
    a.write_text(source_a, encoding="utf-8")
    b.write_text(source_b, encoding="utf-8")
    return a, b


@pytest.fixture
def combine_config(tmp_path):
    return CombineConfig(
        calendar_urls=["https://a.example/cal.ics", "https://b.example/cal.ics"],
        output=tmp_path / "out" / "combined.ics",
    )
