"""
Version information for the PredictOS SDK.

Installed distributions report their metadata version; a source checkout
reads it from pyproject.toml.
"""
import importlib.metadata
import pathlib

import tomli

DISTRIBUTION_NAME = "predictos-sdk"
DEFAULT_VERSION = "0.1.0"
PYPROJECT_PATH = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def version_from_pyproject(path: pathlib.Path) -> str:
    """Read ``[project].version`` from a pyproject.toml file."""
    with path.open("rb") as f:
        return tomli.load(f)["project"]["version"]


def get_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION_NAME)
    except importlib.metadata.PackageNotFoundError:
        pass
    try:
        return version_from_pyproject(PYPROJECT_PATH)
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        return DEFAULT_VERSION


__version__ = get_version()
