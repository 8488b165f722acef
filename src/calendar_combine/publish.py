"""
Writes the combined calendar to its destination.
"""

import logging
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from calendar_combine.models import PublishError

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/calendar"


@dataclass
class PublishResult:
    destination: Path | None  # None means stdout
    content_type: str
    size: int


def publish_calendar(text: str, destination: Path | None = None) -> PublishResult:
    """
    Write iCalendar text to destination, or to stdout when destination is None.

    Files are replaced atomically: readers polling the published feed never
    see a half-written calendar.
    """
    data = text.encode("utf-8")

    if destination is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return PublishResult(None, CONTENT_TYPE, len(data))

    destination = Path(destination)
    logger.debug("Writing combined calendar to %s", destination)
    tmp_name = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
        )
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        # mkstemp creates 0600; the feed is meant to be served.
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, destination)
        tmp_name = None
    except OSError as e:
        raise PublishError(f"Failed to write {destination}: {e}") from e
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)

    logger.debug("Wrote %d bytes (%s) to %s", len(data), CONTENT_TYPE, destination)
    return PublishResult(destination, CONTENT_TYPE, len(data))
