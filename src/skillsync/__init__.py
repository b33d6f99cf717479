"""skillsync: keep agent skills in sync across assistant folders."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("skillsync")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
