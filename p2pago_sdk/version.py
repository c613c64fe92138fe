"""
Version of the p2pago SDK.

Installed distributions report their metadata version; a source checkout
falls back to the pyproject.toml next to the package.
"""
import importlib.metadata
import pathlib
from typing import Optional

import tomli

DISTRIBUTION = "p2pago-sdk"
DEFAULT_VERSION = "0.1.0"
PYPROJECT = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def _version_from_pyproject(path: pathlib.Path) -> Optional[str]:
    try:
        with path.open("rb") as f:
            project = tomli.load(f).get("project") or {}
    except (OSError, tomli.TOMLDecodeError):
        return None
    version = project.get("version")
    return version if isinstance(version, str) else None


def get_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return _version_from_pyproject(PYPROJECT) or DEFAULT_VERSION


__version__ = get_version()
