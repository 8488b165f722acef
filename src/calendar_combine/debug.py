"""
Debug/inspect tools for calendar events.

Importable functions:
  dump_event(vevent, console, show_raw=True): render one event in a Rich Panel
"""

from icalendar import Event
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text


def fmt_prop(vevent: Event, name: str):
    value = vevent.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0]
    return format_value(value)


def collect_multi(vevent: Event, name: str) -> list[str]:
    """Collect all values for a repeating property (e.g. EXDATE, ATTENDEE)."""
    value = vevent.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [format_value(v) for v in value]


def format_value(value) -> str:
    """Render a property value as its iCal text, with any TZID prefixed."""
    try:
        text = value.to_ical()
    except AttributeError:
        return str(value)
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    tzid = getattr(value, "params", {}).get("TZID")
    return f"{text} [{tzid}]" if tzid else text


def dump_event(vevent: Event, console: Console, show_raw: bool = True) -> None:
    """Render a single VEVENT as a Rich Panel."""
    summary = fmt_prop(vevent, "SUMMARY") or "(no summary)"

    lines = Text()

    def row(label: str, value) -> None:
        if value is None:
            return
        lines.append(f"  {label:<14}: ", style="bold cyan")
        lines.append(f"{value}\n")

    row("SUMMARY", summary)
    row("UID", fmt_prop(vevent, "UID") or "(no UID)")
    row("RECURRENCE-ID", fmt_prop(vevent, "RECURRENCE-ID"))
    row("DTSTART", fmt_prop(vevent, "DTSTART"))
    row("DTEND", fmt_prop(vevent, "DTEND"))
    row("DURATION", fmt_prop(vevent, "DURATION"))
    row("RRULE", fmt_prop(vevent, "RRULE"))
    for ex in collect_multi(vevent, "EXDATE"):
        row("EXDATE", ex)
    row("LOCATION", fmt_prop(vevent, "LOCATION"))
    row("TRANSP", fmt_prop(vevent, "TRANSP"))
    row("STATUS", fmt_prop(vevent, "STATUS"))

    # X-properties
    for name in vevent:
        if name.upper().startswith("X-"):
            for val in collect_multi(vevent, name):
                row(name.upper(), val)

    for attendee in collect_multi(vevent, "ATTENDEE"):
        row("ATTENDEE", attendee)

    alarms = [c for c in vevent.subcomponents if c.name == "VALARM"]
    if alarms:
        row("VALARM", f"{len(alarms)} alarm(s)")

    console.print(Panel(lines, title=f"[bold]{summary}[/bold]", expand=False))

    if show_raw:
        raw = vevent.to_ical().decode("utf-8")
        console.print(
            Panel(
                Syntax(raw, "ical", theme="monokai", word_wrap=True),
                title="Raw iCal",
                expand=False,
            )
        )
