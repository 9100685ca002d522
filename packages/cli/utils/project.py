"""Project file loading for CLI commands."""

import json
from pathlib import Path
from typing import Any, Callable, Dict

from packages.core.errors import LocalCutError
from packages.timeline import Asset, Timeline
from packages.video import probe_asset

AssetProber = Callable[..., Asset]


def read_project(path: Path) -> Dict[str, Any]:
    """Read a project JSON document.

    Raises:
        LocalCutError: If the file is missing or is not a JSON object
    """
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise LocalCutError(f"Project not found: {path}", code="project_error") from e
    except json.JSONDecodeError as e:
        raise LocalCutError(f"Invalid project file {path}: {e}", code="project_error") from e

    if not isinstance(data, dict):
        raise LocalCutError(f"Invalid project file {path}: expected an object", code="project_error")
    return data


def resolve_assets(
    data: Dict[str, Any],
    base_dir: Path,
    probe_missing: bool = True,
    prober: AssetProber = probe_asset,
) -> Dict[str, Any]:
    """Resolve asset paths against the project directory.

    Assets missing their kind or duration are probed when probe_missing
    is set; values written in the project win over probed ones.
    """
    assets = []
    for entry in data.get("assets", []):
        entry = dict(entry)
        path = Path(entry.get("path", ""))
        if not path.is_absolute():
            path = base_dir / path
        entry["path"] = str(path)

        if probe_missing and ("kind" not in entry or "duration" not in entry):
            probed = prober(path, asset_id=entry["id"]).to_dict()
            probed.update(entry)
            entry = probed

        assets.append(entry)

    return {**data, "assets": assets}


def load_project(
    path: Path,
    probe_missing: bool = True,
    prober: AssetProber = probe_asset,
) -> Timeline:
    """Load a project file into a Timeline.

    Args:
        path: Project JSON file
        probe_missing: Probe assets lacking kind or duration
        prober: Asset probe (default: ffprobe)

    Returns:
        Timeline
    """
    path = Path(path)
    data = resolve_assets(read_project(path), path.resolve().parent, probe_missing, prober)
    try:
        return Timeline.from_dict(data)
    except (KeyError, ValueError, TypeError) as e:
        raise LocalCutError(f"Invalid project file {path}: {e}", code="project_error") from e
