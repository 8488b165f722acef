"""
CalendarCombiner: download, parse, merge, publish.
"""

import logging

from calendar_combine.combiner import EventObfuscator
from calendar_combine.combiner import merge_calendars
from calendar_combine.document import iter_events
from calendar_combine.document import parse_calendar
from calendar_combine.document import serialize_calendar
from calendar_combine.models import MIN_SOURCES
from calendar_combine.models import CalendarCombineError
from calendar_combine.models import CombineConfig
from calendar_combine.models import CombineStats
from calendar_combine.models import FormatError
from calendar_combine.publish import CONTENT_TYPE
from calendar_combine.publish import publish_calendar
from calendar_combine.sources import CalendarDownloader


class CalendarCombiner:
    """Main combine pipeline."""

    def __init__(self, config: CombineConfig, downloader: CalendarDownloader | None = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.stats = CombineStats()
        self._downloader = downloader

    def run(self) -> CombineStats:
        """Execute the combine process."""
        urls = self.config.calendar_urls
        self.logger.debug("Found %d calendar URLs", len(urls))
        if len(urls) < MIN_SOURCES:
            raise CalendarCombineError(f"At least {MIN_SOURCES} calendar URLs are required")

        self.logger.info("Downloading %d calendars...", len(urls))
        downloader = self._downloader or CalendarDownloader(timeout=self.config.timeout)
        try:
            texts = downloader.download_all(urls, max_workers=self.config.max_workers)
        finally:
            if self._downloader is None:
                downloader.close()

        output = self.combine(urls, texts)

        if self.config.dry_run:
            self.logger.info(
                "[DRY RUN] Would write %d events (%d characters) to %s",
                self.stats.events,
                len(output),
                self.config.output or "stdout",
            )
            return self.stats

        result = publish_calendar(output, self.config.output)
        self.stats.bytes_written = result.size
        self.logger.info(
            "Published %d events to %s (%s, %d bytes)",
            self.stats.events,
            result.destination or "stdout",
            CONTENT_TYPE,
            result.size,
        )
        return self.stats

    def combine(self, urls: list[str], texts: list[str]) -> str:
        """Parse every source text and return the serialized combined calendar."""
        self.logger.debug(
            "Combining %d calendars, obfuscate: %s", len(texts), self.config.obfuscate
        )
        sources = []
        for index, (url, text) in enumerate(zip(urls, texts, strict=True), 1):
            self.logger.debug("Processing calendar %d", index)
            try:
                calendar = parse_calendar(text)
            except FormatError as e:
                e.source = url
                raise
            events = iter_events(calendar)
            self.logger.debug("Calendar %d has %d events", index, len(events))
            self.stats.zoned += sum(1 for ev in events if EventObfuscator.is_floating_dtstart(ev))
            sources.append(calendar)

        combined = merge_calendars(sources, obfuscate=self.config.obfuscate)
        self.stats.sources = len(sources)
        self.stats.events = len(iter_events(combined))
        if self.config.obfuscate:
            self.stats.redacted = self.stats.events
        if self.stats.zoned:
            self.logger.debug("Pinned %d floating start times to UTC", self.stats.zoned)

        output = serialize_calendar(combined)
        if self.config.verbose:
            self.logger.debug("Combined iCal:\n%s", output)
        self.logger.info(
            "Combined calendar created with %d total events (%d characters)",
            self.stats.events,
            len(output),
        )
        return output
