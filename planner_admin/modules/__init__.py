"""Feature modules of the admin directory."""

from . import audit, common, directory, system

__all__ = ["audit", "common", "directory", "system"]
