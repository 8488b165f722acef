"""
Calendar merging and event obfuscation: strips event content while keeping
the scheduling shape.
"""

import datetime
from collections.abc import Iterable
from collections.abc import Sequence
from copy import deepcopy

from icalendar import Calendar
from icalendar import Event
from icalendar import vText
from icalendar.cal import Component

from calendar_combine.document import iter_events
from calendar_combine.document import new_calendar
from calendar_combine.document import parse_calendar
from calendar_combine.document import serialize_calendar

# Copied onto a redacted event, in this order. RRULE is here so a busy
# placeholder for a recurring event keeps recurring.
ESSENTIAL_PROPERTIES = ("dtstart", "dtend", "duration", "rrule", "uid")

BUSY_SUMMARY = "BUSY"

# Date-time properties whose TZID must resolve in the combined calendar.
_ZONED_PROPERTIES = ("DTSTART", "DTEND", "RECURRENCE-ID", "EXDATE", "RDATE")


def _first(value):
    """Repeated property names are stored as a list; the first copy wins."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


class EventObfuscator:
    """Builds busy placeholders and normalizes event start zones."""

    @staticmethod
    def redact(event: Event) -> Event:
        """
        Return a new VEVENT carrying only the essential properties of event.

        Property values are deep copies, so the result never shares state with
        the source tree. SUMMARY is always set to BUSY_SUMMARY; nothing else
        from the source (location, description, attendees, alarms, X-
        properties, ...) is carried over.
        """
        redacted = Event()
        for name in ESSENTIAL_PROPERTIES:
            value = _first(event.get(name))
            if value is not None:
                redacted[name] = deepcopy(value)
        redacted["summary"] = vText(BUSY_SUMMARY)
        return redacted

    @staticmethod
    def _floating_dtstarts(event: Event) -> list:
        values = event.get("dtstart")
        if values is None:
            return []
        if not isinstance(values, list):
            values = [values]
        floating = []
        for prop in values:
            if "TZID" in prop.params:
                continue
            value = getattr(prop, "dt", None)
            # A date-only DTSTART is an all-day event: there is no instant to zone.
            if isinstance(value, datetime.datetime) and value.tzinfo is None:
                floating.append(prop)
        return floating

    @classmethod
    def is_floating_dtstart(cls, event: Event) -> bool:
        """True when any DTSTART is a date-time with neither a zone nor a TZID."""
        return bool(cls._floating_dtstarts(event))

    @classmethod
    def ensure_dtstart_zone(cls, event: Event) -> bool:
        """
        Attach UTC to every floating DTSTART in place.

        DTSTART values that already carry a TZID or a zone are left alone, as
        are DTEND and DURATION. Returns True when a zone was attached.
        """
        floating = cls._floating_dtstarts(event)
        for prop in floating:
            prop.dt = prop.dt.replace(tzinfo=datetime.timezone.utc)
        return bool(floating)


def _referenced_tzids(events: Iterable[Event]) -> list[str]:
    tzids: list[str] = []
    for event in events:
        for name in _ZONED_PROPERTIES:
            values = event.get(name)
            if values is None:
                continue
            if not isinstance(values, list):
                values = [values]
            for value in values:
                tzid = getattr(value, "params", {}).get("TZID")
                if tzid and tzid not in tzids:
                    tzids.append(tzid)
    return tzids


def _timezone_definitions(sources: Sequence[Component], tzids: list[str]) -> list[Component]:
    """Copy the first VTIMEZONE found for each TZID, searching sources in order."""
    found: dict[str, Component] = {}
    for source in sources:
        for tz in source.walk("VTIMEZONE"):
            tzid = str(tz.get("TZID", ""))
            if tzid in tzids and tzid not in found:
                found[tzid] = deepcopy(tz)
    return [found[tzid] for tzid in tzids if tzid in found]


def merge_calendars(sources: Sequence[Calendar], obfuscate: bool = False) -> Calendar:
    """
    Merge the VEVENTs of several calendars into one new calendar.

    Events are taken from each source in document order (nested events
    included) and sources are concatenated in the order given; nothing is
    sorted, dropped or deduplicated. With obfuscate set each event is replaced
    by a busy placeholder (see EventObfuscator.redact). In both cases a
    floating DTSTART is pinned to UTC on the copy that goes into the result,
    and the VTIMEZONE definitions the copied events refer to are carried over.

    The sources are never modified.
    """
    events = []
    for source in sources:
        for event in iter_events(source):
            if obfuscate:
                event = EventObfuscator.redact(event)
            else:
                event = deepcopy(event)
            EventObfuscator.ensure_dtstart_zone(event)
            events.append(event)

    combined = new_calendar()
    for tz in _timezone_definitions(sources, _referenced_tzids(events)):
        combined.add_component(tz)
    for event in events:
        combined.add_component(event)
    return combined


def combine_texts(texts: Iterable[str | bytes], obfuscate: bool = False) -> str:
    """Parse, merge and serialize in one step. FormatError aborts the whole merge."""
    sources = [parse_calendar(text) for text in texts]
    return serialize_calendar(merge_calendars(sources, obfuscate=obfuscate))
