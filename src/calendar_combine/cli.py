"""
Command-line interface for Calendar Combine.
"""

import logging
import os
from configparser import ConfigParser
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from calendar_combine.combine import CalendarCombiner
from calendar_combine.models import DEFAULT_CONFIG
from calendar_combine.models import DEFAULT_MAX_WORKERS
from calendar_combine.models import DEFAULT_TIMEOUT
from calendar_combine.models import CalendarCombineError
from calendar_combine.models import CombineConfig
from calendar_combine.sources import describe_source
from calendar_combine.sources import get_calendar_urls

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Combine several iCalendar feeds into one, optionally as busy-only placeholders.",
)

# stdout may carry the combined calendar itself, so everything else goes to stderr.
console = Console(stderr=True)

CONFIG_SECTION = "calendar-combine"

ENV_URLS = "CALENDAR_URLS"
ENV_OUTPUT = "CALENDAR_COMBINE_OUTPUT"
ENV_OBFUSCATE = "CALENDAR_COMBINE_OBFUSCATE"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


# ---------------------------------------------------------------------------
# Global state shared across subcommands
# ---------------------------------------------------------------------------


@dataclass
class _State:
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG)
    verbose: bool = False


state = _State()


@app.callback()
def _global(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help=f"Config file path (default: {DEFAULT_CONFIG})"),
    ] = DEFAULT_CONFIG,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug output"),
    ] = False,
) -> None:
    state.config_path = config
    state.verbose = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
    # urllib3 connection chatter drowns out our own debug output.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_config_file(config_path: Path) -> dict[str, str]:
    if not config_path.exists():
        return {}
    parser = ConfigParser()
    parser.read(config_path)
    if CONFIG_SECTION not in parser:
        return {}
    return dict(parser[CONFIG_SECTION])


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise typer.BadParameter(f"{name} must be true or false, got {value!r}")


def _resolve_sources(
    urls: list[str] | None, config_file: dict[str, str] | None = None
) -> tuple[list[str], str]:
    """Return (urls, origin) using the first of CLI, environment, config file that is set."""
    if urls:
        return [u.strip() for u in urls if u.strip()], "command line"
    env_urls = get_calendar_urls(os.environ.get(ENV_URLS))
    if env_urls:
        return env_urls, f"${ENV_URLS}"
    if config_file is None:
        config_file = _load_config_file(state.config_path)
    config_urls = get_calendar_urls(config_file.get("calendar_urls"))
    if config_urls:
        return config_urls, str(state.config_path)
    return [], "none"


def _build_config(
    urls: list[str] | None,
    output: Path | None,
    obfuscate: bool | None,
    timeout: float | None,
    workers: int,
    dry_run: bool,
    yes: bool,
) -> CombineConfig:
    config_file = _load_config_file(state.config_path)

    calendar_urls, _ = _resolve_sources(urls, config_file)

    if output is None:
        out_value = os.environ.get(ENV_OUTPUT) or config_file.get("output")
        if out_value and out_value != "-":
            output = Path(out_value).expanduser()
    elif str(output) == "-":
        output = None

    if obfuscate is None:
        if ENV_OBFUSCATE in os.environ:
            obfuscate = _parse_bool(os.environ[ENV_OBFUSCATE], ENV_OBFUSCATE)
        elif "obfuscate" in config_file:
            obfuscate = _parse_bool(config_file["obfuscate"], "obfuscate")
        else:
            obfuscate = False

    if timeout is None:
        try:
            timeout = float(config_file.get("timeout", DEFAULT_TIMEOUT))
        except ValueError:
            raise typer.BadParameter(
                f"timeout must be a number, got {config_file['timeout']!r}"
            ) from None

    return CombineConfig(
        calendar_urls=calendar_urls,
        output=output,
        obfuscate=obfuscate,
        verbose=state.verbose,
        timeout=timeout,
        max_workers=workers,
        dry_run=dry_run,
        yes=yes,
    )


def _run_combine(cfg: CombineConfig) -> None:
    """Core combine runner: display panel, confirm, run, show results."""
    from calendar_combine.preflight import run_preflight_checks

    if not run_preflight_checks(cfg, console):
        raise typer.Exit(1)

    # -- Info panel ----------------------------------------------------------
    info = Text()
    for i, url in enumerate(cfg.calendar_urls, 1):
        info.append(f"  Source {i}:  ", style="bold")
        info.append(f"{url}\n")
    info.append("  Output:    ", style="bold")
    info.append(f"{cfg.output or 'stdout'}\n")
    info.append("  Events:    ", style="bold")
    if cfg.obfuscate:
        info.append("BUSY placeholders", style="bold yellow")
        info.append(" (times and recurrence only)", style="dim")
    else:
        info.append("copied as-is", style="bold green")
    if cfg.dry_run:
        info.append("\n  Mode:      ")
        info.append("DRY RUN", style="bold magenta")

    console.print(Panel(info, title="[bold]Calendar Combine[/bold]"))

    # -- Confirmation --------------------------------------------------------
    if cfg.output is not None and cfg.output.exists() and not cfg.yes and not cfg.dry_run:
        typer.confirm(f"Overwrite {cfg.output}?", abort=True, err=True)

    # -- Run -----------------------------------------------------------------
    try:
        stats = CalendarCombiner(cfg).run()
    except CalendarCombineError as e:
        console.print(f"[bold red]Combine failed:[/] {e}")
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted by user[/]")
        raise typer.Exit(130) from None
    except Exception as e:
        console.print_exception()
        console.print(f"[bold red]Unexpected error:[/] {e}")
        raise typer.Exit(1) from e

    # -- Results table -------------------------------------------------------
    results = Table.grid(padding=(0, 2))
    results.add_column(style="bold")
    results.add_column(justify="right")
    results.add_row("Sources", str(stats.sources))
    results.add_row("Events", str(stats.events))
    results.add_row("Redacted", str(stats.redacted))
    results.add_row("Pinned to UTC", str(stats.zoned))
    if not cfg.dry_run:
        results.add_row("Bytes written", str(stats.bytes_written))

    console.print(Panel(results, title="[bold]Results[/bold]", expand=False))


# ---------------------------------------------------------------------------
# Subcommand: combine
# ---------------------------------------------------------------------------

_DRY_RUN = Annotated[
    bool, typer.Option("--dry-run", "-n", help="Combine but do not write the output")
]
_YES = Annotated[bool, typer.Option("--yes", "-y", help="Overwrite the output without asking")]


@app.command()
def combine(
    urls: Annotated[
        list[str] | None,
        typer.Argument(help=f"Source calendar URLs or paths (default: ${ENV_URLS} or config)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output .ics path, '-' for stdout"),
    ] = None,
    obfuscate: Annotated[
        bool | None,
        typer.Option(
            "--obfuscate/--no-obfuscate",
            help="Replace event details with BUSY, keeping times and recurrence",
        ),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout", help=f"Per-download timeout in seconds (default: {DEFAULT_TIMEOUT:g})"
        ),
    ] = None,
    workers: Annotated[
        int, typer.Option("--workers", min=1, help="Concurrent downloads")
    ] = DEFAULT_MAX_WORKERS,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Merge the events of all source calendars into one calendar.

    Events are concatenated in source order; nothing is sorted or
    deduplicated. With [cyan]--obfuscate[/] each event keeps only its
    UID, start, end/duration and recurrence rule and is titled BUSY.
    """
    _run_combine(_build_config(urls, output, obfuscate, timeout, workers, dry_run, yes))


# ---------------------------------------------------------------------------
# Subcommand: sources
# ---------------------------------------------------------------------------


@app.command()
def sources() -> None:
    """List the configured source calendars."""
    urls, origin = _resolve_sources(None)
    if not urls:
        console.print(
            f"[yellow]No sources configured. Set[/] [cyan]${ENV_URLS}[/] "
            f"[yellow]or[/] [cyan]calendar_urls[/] [yellow]in {state.config_path}.[/]"
        )
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="bold", justify="right", width=3)
    table.add_column("Location", overflow="fold")
    table.add_column("Kind")
    kind_style = {"http": "green", "file": "cyan", "invalid": "bold red"}
    for i, url in enumerate(urls, 1):
        kind, _ = describe_source(url)
        table.add_row(str(i), Text(url), Text(kind, style=kind_style[kind]))

    console.print(Panel(table, title=f"[bold]Sources[/bold] [dim]({origin})[/dim]", expand=False))


# ---------------------------------------------------------------------------
# Subcommand: inspect
# ---------------------------------------------------------------------------


@app.command()
def inspect(
    source: Annotated[str, typer.Argument(help="Calendar URL or path to inspect")],
    title: Annotated[
        str | None, typer.Option(help="Filter by SUMMARY substring (case-insensitive)")
    ] = None,
    uid: Annotated[
        str | None, typer.Option(help="Filter by UID substring (case-insensitive)")
    ] = None,
    obfuscate: Annotated[
        bool, typer.Option("--obfuscate", help="Show events as they look once obfuscated")
    ] = False,
    no_raw: Annotated[bool, typer.Option("--no-raw", help="Omit the raw iCal block")] = False,
) -> None:
    """Inspect / debug events in a calendar."""
    from calendar_combine.combiner import EventObfuscator
    from calendar_combine.debug import dump_event
    from calendar_combine.document import iter_events
    from calendar_combine.document import parse_calendar
    from calendar_combine.sources import download_calendar

    try:
        calendar = parse_calendar(download_calendar(source, timeout=DEFAULT_TIMEOUT))
    except CalendarCombineError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None

    events = iter_events(calendar)
    console.print(f"[bold]Calendar:[/] {source}")
    console.print(f"[bold]Events:[/] {len(events)} total")

    title_filter = title.lower() if title else None
    uid_filter = uid.lower() if uid else None

    count = 0
    for vevent in events:
        # Filter on the source event: every redacted SUMMARY reads BUSY.
        if title_filter and title_filter not in str(vevent.get("SUMMARY", "")).lower():
            continue
        if uid_filter and uid_filter not in str(vevent.get("UID", "")).lower():
            continue
        if obfuscate:
            vevent = EventObfuscator.redact(vevent)
            EventObfuscator.ensure_dtstart_zone(vevent)
        count += 1
        dump_event(vevent, console, show_raw=not no_raw)

    console.print(f"\n[bold]Matched {count} event(s)[/bold]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()
