"""Tests for the command line interface."""

from __future__ import annotations

from click.testing import CliRunner
import pytest

from scdesk import main
from scdesk.main import cli

URL = "https://soundcloud.com/artist/track"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, config_dir, monkeypatch, download_dir):
    monkeypatch.setenv("SCDESK_DEFAULT_DOWNLOAD_DIRECTORY", str(download_dir))

    def run(*args, downloader=None):
        if downloader is not None:
            monkeypatch.setenv("SCDESK_DOWNLOADER_PATH", str(downloader))
        return runner.invoke(cli, ["--config-dir", str(config_dir), *args])

    return run


class TestDownloadCommand:
    def test_success(self, invoke, make_downloader):
        result = invoke("download", URL, downloader=make_downloader("echo fetching\nexit 0\n"))

        assert result.exit_code == 0, result.output
        assert "fetching" in result.output
        assert "Downloaded track" in result.output

    def test_failure_exit_code(self, invoke, make_downloader):
        result = invoke("download", URL, downloader=make_downloader("exit 2\n"))

        assert result.exit_code == 1
        assert "Download failed with status: 2" in result.output

    def test_missing_downloader(self, invoke, tmp_path):
        result = invoke("download", URL, downloader=tmp_path / "missing" / "scdl")

        assert result.exit_code == 2
        assert "ERROR: scdl not found" in result.output

    def test_invalid_url(self, invoke, make_downloader):
        result = invoke("download", "not-a-url", downloader=make_downloader("exit 0\n"))

        assert result.exit_code == 2
        assert "No valid URL to download." in result.output

    def test_flac_flag(self, invoke, make_downloader):
        result = invoke(
            "download", URL, "--flac", downloader=make_downloader('echo "$5"\nexit 0\n')
        )

        assert result.exit_code == 0, result.output
        assert "--flac" in result.output

    def test_lossless_follows_config_by_default(self, invoke, make_downloader, monkeypatch):
        monkeypatch.setenv("SCDESK_USE_LOSSLESS", "true")
        result = invoke("download", URL, downloader=make_downloader('echo "$5"\nexit 0\n'))

        assert result.exit_code == 0, result.output
        assert "--flac" in result.output

    def test_no_flac_overrides_config(self, invoke, make_downloader, monkeypatch):
        monkeypatch.setenv("SCDESK_USE_LOSSLESS", "true")
        result = invoke(
            "download", URL, "--no-flac", downloader=make_downloader('echo "$5"\nexit 0\n')
        )

        assert result.exit_code == 0, result.output
        assert "Downloaded track" in result.output
        assert "--flac" not in result.output


class TestStartCommand:
    @pytest.fixture
    def recorded(self, monkeypatch):
        calls = []
        monkeypatch.setattr(main, "setup_logging", lambda **kwargs: calls.append(kwargs))
        monkeypatch.setattr(main, "log_system_info", lambda: None)
        monkeypatch.setattr(main.Application, "start_gui", lambda self: None)
        return calls

    def test_json_logs_enables_structured_file_log(self, invoke, recorded):
        result = invoke("--json-logs", "start")

        assert result.exit_code == 0, result.output
        file_setup = recorded[-1]
        assert file_setup["log_file"] is not None
        assert file_setup["structured_logging"] is True

    def test_plain_file_log_by_default(self, invoke, recorded):
        result = invoke("start")

        assert result.exit_code == 0, result.output
        assert recorded[-1]["structured_logging"] is False


class TestCheckCommand:
    def test_reports_missing_tools(self, invoke, tmp_path):
        result = invoke("check", downloader=tmp_path / "missing" / "scdl")

        assert result.exit_code == 1
        assert "scdl not found" in result.output

    def test_reports_found_downloader(self, invoke, make_downloader):
        result = invoke("check", downloader=make_downloader("exit 0\n"))
        assert "✓ scdl" in result.output


def test_help_lists_commands(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("start", "download", "check"):
        assert command in result.output
