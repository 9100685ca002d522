"""Shared fixtures for CLI tests."""

import json

import pytest
from typer.testing import CliRunner


@pytest.fixture
def cli_runner():
    """Create a CliRunner instance for testing CLI commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(mocker):
    """Keep the CLI callback from rebinding root log handlers to the runner's streams."""
    return mocker.patch("packages.cli.main.configure_logging")


@pytest.fixture
def project_data():
    """A two-clip project whose assets need no probing."""
    return {
        "assets": [
            {"id": "clip", "kind": "video", "path": "media/clip.mp4", "duration": 10.0,
             "width": 1920, "height": 1080, "has_audio": True},
            {"id": "logo", "kind": "image", "path": "media/logo.png", "duration": 0.0,
             "width": 500, "height": 500},
        ],
        "tracks": [
            {"id": "overlay", "kind": "image", "label": "Logo", "clips": [
                {"id": "l1", "kind": "image", "start_time": 0, "duration": 4,
                 "trim_start": 0, "trim_end": 4, "asset_id": "logo"},
            ]},
            {"id": "main", "kind": "video", "clips": [
                {"id": "c1", "kind": "video", "start_time": 0, "duration": 5,
                 "trim_start": 0, "trim_end": 5, "asset_id": "clip"},
            ]},
        ],
    }


@pytest.fixture
def project_file(tmp_path, project_data):
    """Write the project JSON to a temporary directory."""
    path = tmp_path / "project.json"
    path.write_text(json.dumps(project_data))
    return path


@pytest.fixture
def overlapping_project_file(tmp_path, project_data):
    """Project with two overlapping clips on the main track."""
    project_data["tracks"][1]["clips"].append(
        {"id": "c2", "kind": "video", "start_time": 3, "duration": 2,
         "trim_start": 0, "trim_end": 2, "asset_id": "clip"}
    )
    path = tmp_path / "overlapping.json"
    path.write_text(json.dumps(project_data))
    return path


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Render rich tables wide enough that cells do not wrap."""
    from packages.cli.utils.display import console

    monkeypatch.setattr(console, "width", 200)
