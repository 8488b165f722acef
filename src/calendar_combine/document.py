"""
iCalendar document parsing and serialization.
"""

import re

from icalendar import Calendar
from icalendar import Event
from icalendar.cal import Component

from calendar_combine.models import FormatError

PRODID = "-//calendar-combine//EN"
VERSION = "2.0"

# A line break followed by one space or tab continues the previous line.
_FOLD = re.compile(r"\r?\n[ \t]")


def _check_structure(text: str) -> None:
    """Raise FormatError unless every BEGIN is closed by an END of the same name."""
    stack: list[str] = []
    for line in _FOLD.sub("", text).splitlines():
        name, _, value = line.partition(":")
        keyword = name.split(";", 1)[0].strip().upper()
        if keyword not in ("BEGIN", "END"):
            continue
        component = value.strip().upper()
        if keyword == "BEGIN":
            stack.append(component)
        elif not stack:
            raise FormatError(f"END:{component} without a matching BEGIN")
        elif stack[-1] != component:
            raise FormatError(f"END:{component} does not close BEGIN:{stack[-1]}")
        else:
            stack.pop()
    if stack:
        raise FormatError(f"BEGIN:{stack[-1]} is never closed")


def _collect_errors(comp: Component) -> list[str]:
    """Return the parse errors recorded on comp and all of its subcomponents."""
    errors = []
    for sub in comp.walk():
        for prop_name, message in sub.errors:
            where = f"{sub.name}.{prop_name}" if prop_name else sub.name
            errors.append(f"{where}: {message}")
    return errors


def parse_calendar(text: str | bytes) -> Calendar:
    """
    Parse iCalendar text into a Calendar tree.

    Bytes must be UTF-8. Components and properties the merge does not look at
    (VALARM, X- properties, unknown components) are kept as they are.

    Raises:
        FormatError: the text is not a single well-formed VCALENDAR
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FormatError(f"Calendar is not valid UTF-8: {e}") from e
    text = text.lstrip("\ufeff")

    if not text.strip():
        raise FormatError("Empty calendar document")

    # The library pairs END lines with BEGIN lines by position, not by name.
    _check_structure(text)

    try:
        comp = Calendar.from_ical(text)
    except ValueError as e:
        raise FormatError(str(e)) from e

    if comp.name.upper() != "VCALENDAR":
        raise FormatError(f"Expected a VCALENDAR root component, found {comp.name}")

    # VCALENDAR and VEVENT swallow malformed lines into .errors instead of
    # raising, so surface them here.
    errors = _collect_errors(comp)
    if errors:
        raise FormatError("Malformed content: " + "; ".join(errors))

    return comp


def serialize_calendar(cal: Calendar) -> str:
    """Render a Calendar tree as folded, CRLF-terminated iCalendar text."""
    return cal.to_ical().decode("utf-8")


def new_calendar() -> Calendar:
    """Return an empty VCALENDAR with the mandatory PRODID and VERSION set."""
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", VERSION)
    return cal


def iter_events(cal: Component) -> list[Event]:
    """Return every VEVENT under cal, at any depth, in document order."""
    return [comp for comp in cal.walk("VEVENT") if comp is not cal]
