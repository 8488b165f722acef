"""
Tests for the typer CLI: configuration resolution and the combine/inspect/sources commands.

Sources are local .ics files so no network is involved.
"""

import pytest
from typer.testing import CliRunner

from calendar_combine import cli
from calendar_combine.document import iter_events
from calendar_combine.document import parse_calendar

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (cli.ENV_URLS, cli.ENV_OUTPUT, cli.ENV_OBFUSCATE):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "calendar-combine.conf"


def _invoke(config_path, *args):
    return runner.invoke(cli.app, ["--config", str(config_path), *args])


# ---------------------------------------------------------------------------
# TestCombineCommand
# ---------------------------------------------------------------------------


class TestCombineCommand:
    def test_combines_files(self, config_path, source_files, tmp_path):
        out = tmp_path / "combined.ics"
        a, b = source_files
        result = _invoke(config_path, "combine", str(a), str(b), "-o", str(out), "-y")

        assert result.exit_code == 0, result.output
        events = iter_events(parse_calendar(out.read_text(encoding="utf-8")))
        assert [str(ev["SUMMARY"]) for ev in events] == ["Dentist", "Standup"]

    def test_obfuscate_flag(self, config_path, source_files, tmp_path):
        out = tmp_path / "combined.ics"
        a, b = source_files
        result = _invoke(config_path, "combine", str(a), str(b), "-o", str(out), "--obfuscate")

        assert result.exit_code == 0, result.output
        text = out.read_text(encoding="utf-8")
        assert "Dentist" not in text
        assert text.count("SUMMARY:BUSY") == 2

    def test_sources_from_environment(self, config_path, source_files, tmp_path, monkeypatch):
        out = tmp_path / "combined.ics"
        monkeypatch.setenv(cli.ENV_URLS, ",".join(str(p) for p in source_files))
        monkeypatch.setenv(cli.ENV_OBFUSCATE, "true")
        result = _invoke(config_path, "combine", "-o", str(out))

        assert result.exit_code == 0, result.output
        assert "SUMMARY:BUSY" in out.read_text(encoding="utf-8")

    def test_settings_from_config_file(self, config_path, source_files, tmp_path):
        out = tmp_path / "from-config.ics"
        a, b = source_files
        config_path.write_text(
            "[calendar-combine]\n"
            f"calendar_urls = {a},\n    {b}\n"
            f"output = {out}\n"
            "obfuscate = yes\n",
            encoding="utf-8",
        )
        result = _invoke(config_path, "combine")

        assert result.exit_code == 0, result.output
        assert "SUMMARY:BUSY" in out.read_text(encoding="utf-8")

    def test_config_file_read_once(self, config_path, source_files, tmp_path, monkeypatch):
        a, b = source_files
        config_path.write_text(
            f"[calendar-combine]\ncalendar_urls = {a},{b}\n", encoding="utf-8"
        )
        calls = []
        load = cli._load_config_file

        def counting_load(path):
            calls.append(path)
            return load(path)

        monkeypatch.setattr(cli, "_load_config_file", counting_load)
        result = _invoke(config_path, "combine", "-o", str(tmp_path / "combined.ics"))

        assert result.exit_code == 0, result.output
        assert len(calls) == 1

    def test_verbose_flag_reaches_config(self, config_path, source_files, monkeypatch):
        seen = []
        monkeypatch.setattr(cli, "_run_combine", seen.append)
        a, b = source_files
        result = _invoke(config_path, "--verbose", "combine", str(a), str(b), "-o", "-")

        assert result.exit_code == 0, result.output
        assert seen[0].verbose is True

    def test_cli_overrides_config(self, config_path, source_files, tmp_path):
        out = tmp_path / "combined.ics"
        a, b = source_files
        config_path.write_text("[calendar-combine]\nobfuscate = true\n", encoding="utf-8")
        result = _invoke(
            config_path, "combine", str(a), str(b), "-o", str(out), "--no-obfuscate"
        )

        assert result.exit_code == 0, result.output
        assert "SUMMARY:Dentist" in out.read_text(encoding="utf-8")

    def test_stdout(self, config_path, source_files):
        a, b = source_files
        result = _invoke(config_path, "combine", str(a), str(b), "-o", "-")

        assert result.exit_code == 0, result.output
        assert "BEGIN:VCALENDAR" in result.stdout

    def test_dry_run(self, config_path, source_files, tmp_path):
        out = tmp_path / "combined.ics"
        a, b = source_files
        result = _invoke(config_path, "combine", str(a), str(b), "-o", str(out), "--dry-run")

        assert result.exit_code == 0, result.output
        assert not out.exists()

    def test_single_source_fails_preflight(self, config_path, source_files, tmp_path):
        result = _invoke(
            config_path, "combine", str(source_files[0]), "-o", str(tmp_path / "x.ics")
        )
        assert result.exit_code == 1

    def test_malformed_source_fails(self, config_path, source_files, tmp_path):
        bad = tmp_path / "bad.ics"
        bad.write_text("BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\n", encoding="utf-8")
        out = tmp_path / "combined.ics"
        result = _invoke(config_path, "combine", str(source_files[0]), str(bad), "-o", str(out))

        assert result.exit_code == 1
        assert not out.exists()

    def test_existing_output_declined(self, config_path, source_files, tmp_path):
        out = tmp_path / "combined.ics"
        out.write_text("keep", encoding="utf-8")
        a, b = source_files
        result = runner.invoke(
            cli.app,
            ["--config", str(config_path), "combine", str(a), str(b), "-o", str(out)],
            input="n\n",
        )

        assert result.exit_code != 0
        assert out.read_text(encoding="utf-8") == "keep"

    def test_invalid_boolean_in_environment(self, config_path, source_files, tmp_path, monkeypatch):
        monkeypatch.setenv(cli.ENV_OBFUSCATE, "maybe")
        a, b = source_files
        result = _invoke(config_path, "combine", str(a), str(b), "-o", str(tmp_path / "x.ics"))
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# TestSourcesCommand
# ---------------------------------------------------------------------------


class TestSourcesCommand:
    def test_lists_environment_sources(self, config_path, monkeypatch):
        monkeypatch.setenv(cli.ENV_URLS, "https://a.example/x.ics,ftp://b.example/y.ics")
        result = _invoke(config_path, "sources")

        assert result.exit_code == 0, result.output
        assert "https://a.example/x.ics" in result.output
        assert "invalid" in result.output

    def test_nothing_configured(self, config_path):
        result = _invoke(config_path, "sources")
        assert result.exit_code == 0
        assert "No sources configured" in result.output


# ---------------------------------------------------------------------------
# TestInspectCommand
# ---------------------------------------------------------------------------


class TestInspectCommand:
    def test_dumps_events(self, config_path, source_files):
        result = _invoke(config_path, "inspect", str(source_files[0]), "--no-raw")

        assert result.exit_code == 0, result.output
        assert "Dentist" in result.output
        assert "Clinic" in result.output
        assert "Matched 1 event(s)" in result.output

    def test_obfuscated_view(self, config_path, source_files):
        result = _invoke(config_path, "inspect", str(source_files[0]), "--obfuscate")

        assert result.exit_code == 0, result.output
        assert "BUSY" in result.output
        assert "Clinic" not in result.output

    def test_title_filter_matches_source_summary(self, config_path, source_files):
        result = _invoke(
            config_path, "inspect", str(source_files[0]), "--title", "dent", "--obfuscate"
        )
        assert "Matched 1 event(s)" in result.output

        result = _invoke(config_path, "inspect", str(source_files[0]), "--title", "nothing")
        assert "Matched 0 event(s)" in result.output

    def test_unreadable_source(self, config_path, tmp_path):
        result = _invoke(config_path, "inspect", str(tmp_path / "missing.ics"))
        assert result.exit_code == 1
