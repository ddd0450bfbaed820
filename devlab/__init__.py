"""
Foundation package for the DEVLAB orchestration layer.

Kept import-light so the clients under ``apps/`` can depend on it without
pulling in the generative runtime.
"""

from importlib import metadata


def get_version() -> str:
    """Return the installed project version."""
    try:
        return metadata.version("devlab-orchestration")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
