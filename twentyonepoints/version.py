from importlib import metadata
from pathlib import Path

import tomli as tomllib

DISTRIBUTION_NAME = "twentyonepoints"


def get_version() -> str:
    """
    Get the service version.

    Prefers pyproject.toml next to the package (source checkouts), then the
    installed distribution metadata; "unknown" if neither is available.
    """
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"

    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)
        version = pyproject.get("project", {}).get("version")
        if version:
            return version

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"
