"""RiskVisio - risk, incident and compliance tracking API."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version as _pkg_version
from pathlib import Path


def _get_version() -> str:
    """Get version from installed metadata, falling back to pyproject.toml."""
    try:
        return _pkg_version("riskvisio-api")
    except PackageNotFoundError:
        pass
    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data.get("project", {}).get("version", "unknown")
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = _get_version()
