"""Version and platform directory utilities for artifact-resolver."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as meta_version

from platformdirs import PlatformDirs


def version() -> str:
    """Get the installed version of artifact-resolver."""
    try:
        return meta_version("artifact-resolver")
    except PackageNotFoundError:
        return "0.0.0"


APP_DIRS = PlatformDirs("artifact-resolver", "artifact-resolver")
