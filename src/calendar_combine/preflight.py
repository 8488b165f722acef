"""
Preflight checks run before combining to catch common misconfigurations early.
"""

import logging
import os
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from calendar_combine.models import MIN_SOURCES
from calendar_combine.models import CombineConfig
from calendar_combine.sources import describe_source

logger = logging.getLogger(__name__)


def run_preflight_checks(cfg: CombineConfig, console: Console) -> bool:
    """Return True if the combine may proceed; print issues and return False otherwise."""
    issues: list[tuple[str, str, str]] = []  # (label, detail, hint)

    # 1. Enough sources to merge
    if len(cfg.calendar_urls) < MIN_SOURCES:
        logger.error("Only %d calendar source(s) configured", len(cfg.calendar_urls))
        issues.append(
            (
                "Sources",
                f"{len(cfg.calendar_urls)} configured, at least {MIN_SOURCES} required",
                "Pass URLs on the command line or set CALENDAR_URLS",
            )
        )

    # 2. Every source is something we can fetch
    for i, url in enumerate(cfg.calendar_urls, 1):
        kind, location = describe_source(url)
        if kind == "invalid":
            logger.error("Unsupported calendar location: %s", url)
            issues.append(
                (f"Source {i}", f"Unsupported location: {url}", "Use an http(s):// or file:// URL")
            )
        elif kind == "file" and not Path(location).is_file():
            logger.error("Calendar file not found: %s", location)
            issues.append((f"Source {i}", f"File not found: {location}", "Check the path"))

    # 3. Output directory creatable + writable
    if cfg.output is not None and not cfg.dry_run:
        out_dir = Path(cfg.output).parent
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create output directory %s: %s", out_dir, e)
            issues.append(("Output", f"{out_dir}: {e}", f"Check permissions on {out_dir.parent}"))
        else:
            if not os.access(out_dir, os.W_OK):
                logger.error("Output directory not writable: %s", out_dir)
                issues.append(
                    (
                        "Output",
                        f"{out_dir} is not writable",
                        "The combined calendar is written to a temporary file "
                        "in the same directory before being moved into place",
                    )
                )

    if issues:
        _print_issues(issues, console)
        return False

    return True


def _print_issues(issues: list[tuple[str, str, str]], console: Console) -> None:
    body = Text()
    for i, (label, detail, hint) in enumerate(issues):
        if i:
            body.append("\n")
        body.append(f"  ✗  {label}: ", style="bold red")
        body.append(detail, style="bold red")
        body.append(f"\n       → {hint}", style="yellow")

    console.print(Panel(body, title="[bold red]Preflight checks failed[/bold red]"))
