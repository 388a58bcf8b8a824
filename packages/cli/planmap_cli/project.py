"""Project directory support — finds and loads .planmap/ configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from start (default: cwd) looking for a .planmap/ directory."""
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / ".planmap").is_dir():
            return parent
    return None


def load_project_config(project_root: Path | None = None) -> dict[str, Any]:
    """Load .planmap/config.yaml from the project root, or {} when there is none."""
    root = project_root or find_project_root()
    if root is None:
        return {}
    config_path = root / ".planmap" / "config.yaml"
    if not config_path.exists():
        return {}
    config = yaml.safe_load(config_path.read_text()) or {}
    db_path = config.get("db_path")
    if db_path and not Path(db_path).is_absolute():
        config["db_path"] = str(root / db_path)
    return config
