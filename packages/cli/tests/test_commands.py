"""Tests for CLI commands."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from packages.cli import __version__
from packages.cli.main import app
from packages.core.config import LogLevel, clear_config_cache
from packages.core.errors import EncodeError, ExportCancelledError
from packages.core.types import FitMode
from packages.video import ExportResult


@pytest.fixture
def mock_exporter(mocker):
    """Patch TimelineExporter in the export command."""
    exporter = MagicMock()
    exporter.export = AsyncMock(return_value=ExportResult(
        output_bytes=b"video-bytes",
        suggested_file_name="cut.mp4",
        mime_type="video/mp4",
        metadata={"container": "mp4", "video_codec": "avc", "audio_codec": "aac"},
    ))
    mocker.patch("packages.cli.commands.export.TimelineExporter", return_value=exporter)
    return exporter


class TestVersion:
    """Tests for --version."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"localcut v{__version__}" in result.stdout


class TestLogLevel:
    """Tests for the CLI log level."""

    @pytest.fixture
    def debug_env(self, monkeypatch):
        def apply(value):
            if value is None:
                monkeypatch.delenv("LOCALCUT_DEBUG", raising=False)
            else:
                monkeypatch.setenv("LOCALCUT_DEBUG", value)
            clear_config_cache()

        yield apply
        clear_config_cache()

    def test_quiet_by_default(self, cli_runner, quiet_logging, debug_env):
        debug_env(None)

        cli_runner.invoke(app, ["formats", "--no-probe"])

        quiet_logging.assert_called_once_with(LogLevel.WARNING)

    def test_verbose_flag(self, cli_runner, quiet_logging, debug_env):
        debug_env(None)

        cli_runner.invoke(app, ["-v", "formats", "--no-probe"])

        quiet_logging.assert_called_once_with(LogLevel.DEBUG)

    def test_debug_mode_enables_debug_logs(self, cli_runner, quiet_logging, debug_env):
        """Test LOCALCUT_DEBUG turns on debug logging without -v."""
        debug_env("1")

        cli_runner.invoke(app, ["formats", "--no-probe"])

        quiet_logging.assert_called_once_with(LogLevel.DEBUG)


class TestInfoCommand:
    """Tests for the info command."""

    def test_shows_timeline(self, cli_runner, project_file):
        result = cli_runner.invoke(app, ["info", str(project_file), "--no-probe"])

        assert result.exit_code == 0
        assert "Duration:" in result.stdout
        assert "Clips: 2" in result.stdout

    def test_missing_project(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["info", str(tmp_path / "nope.json")])

        assert result.exit_code == 1
        assert "Project not found" in result.stdout

    def test_invalid_json(self, cli_runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        result = cli_runner.invoke(app, ["info", str(path)])

        assert result.exit_code == 1
        assert "Invalid project file" in result.stdout


class TestValidateCommand:
    """Tests for the validate command."""

    def test_valid(self, cli_runner, project_file):
        result = cli_runner.invoke(app, ["validate", str(project_file), "--no-probe"])

        assert result.exit_code == 0
        assert "Timeline is valid" in result.stdout

    def test_overlap(self, cli_runner, overlapping_project_file):
        result = cli_runner.invoke(app, ["validate", str(overlapping_project_file), "--no-probe"])

        assert result.exit_code == 1
        assert "clips 'c1' and 'c2' overlap" in result.stdout


class TestFormatsCommand:
    """Tests for the formats command."""

    def test_without_probe(self, cli_runner):
        result = cli_runner.invoke(app, ["formats", "--no-probe"])

        assert result.exit_code == 0
        assert "video/webm" in result.stdout
        assert "mkv" in result.stdout

    def test_probe_without_ffmpeg(self, cli_runner, mocker):
        caps = MagicMock()
        caps.available_encoders = AsyncMock(return_value=frozenset())
        mocker.patch("packages.cli.commands.formats.FfmpegCapabilities", return_value=caps)

        result = cli_runner.invoke(app, ["formats"])

        assert result.exit_code == 0
        assert "ffmpeg not found" in result.stdout


class TestExportCommand:
    """Tests for the export command."""

    def test_export_saves_file(self, cli_runner, project_file, tmp_path, mock_exporter):
        out_dir = tmp_path / "exports"

        result = cli_runner.invoke(app, [
            "export", str(project_file), "-o", str(out_dir),
            "--width", "640", "--height", "360", "--fit", "cover", "--name", "cut",
        ])

        assert result.exit_code == 0
        assert (out_dir / "cut.mp4").read_bytes() == b"video-bytes"
        assert "Export complete" in result.stdout

        timeline, options = mock_exporter.export.await_args.args
        assert [track.id for track in timeline.tracks] == ["overlay", "main"]
        assert (options.width, options.height) == (640, 360)
        assert options.fit_mode == FitMode.COVER
        assert options.filename_base == "cut"
        assert options.abort_signal is not None

    def test_invalid_timeline_is_not_exported(
        self, cli_runner, overlapping_project_file, mock_exporter
    ):
        result = cli_runner.invoke(app, ["export", str(overlapping_project_file)])

        assert result.exit_code == 1
        assert "overlap" in result.stdout
        mock_exporter.export.assert_not_called()

    def test_bad_fit_mode(self, cli_runner, project_file, mock_exporter):
        result = cli_runner.invoke(app, ["export", str(project_file), "--fit", "sideways"])

        assert result.exit_code == 1
        mock_exporter.export.assert_not_called()

    def test_cancelled(self, cli_runner, project_file, tmp_path, mock_exporter):
        mock_exporter.export.side_effect = ExportCancelledError("interrupted")

        result = cli_runner.invoke(app, ["export", str(project_file), "-o", str(tmp_path)])

        assert result.exit_code == 130
        assert "Export cancelled" in result.stdout

    def test_failed(self, cli_runner, project_file, tmp_path, mock_exporter):
        mock_exporter.export.side_effect = EncodeError("ffmpeg crashed", container="mp4")

        result = cli_runner.invoke(app, ["export", str(project_file), "-o", str(tmp_path)])

        assert result.exit_code == 1
        assert "Export failed" in result.stdout
        assert not list(tmp_path.glob("*.mp4"))
