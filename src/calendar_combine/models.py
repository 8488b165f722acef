"""
Pure data models. No network or iCalendar imports.
"""

from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

DEFAULT_CONFIG = Path.home() / ".config/calendar-combine.conf"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_WORKERS = 4

# Fewer sources than this is a configuration mistake, not a merge.
MIN_SOURCES = 2


class CalendarCombineError(Exception):
    """Base exception for calendar combine errors."""

    pass


class FormatError(CalendarCombineError):
    """Source text is not syntactically valid iCalendar."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        message = super().__str__()
        if self.source:
            return f"{self.source}: {message}"
        return message


class SourceError(CalendarCombineError):
    """A source calendar could not be retrieved."""

    pass


class PublishError(CalendarCombineError):
    """The combined calendar could not be written to its destination."""

    pass


@dataclass
class CombineConfig:
    """Configuration for a combine run."""

    calendar_urls: list[str] = field(default_factory=list)
    output: Path | None = None  # None writes to stdout
    obfuscate: bool = False
    verbose: bool = False
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    dry_run: bool = False
    yes: bool = False  # Auto-confirm without prompting


@dataclass
class CombineStats:
    """Statistics for a combine run."""

    sources: int = 0
    events: int = 0
    redacted: int = 0
    zoned: int = 0
    bytes_written: int = 0
