"""
errors.py
Exception hierarchy shared by the registry, shim and transfer modules.
The CLI maps every DockvolError to a one-line diagnostic and exit status 1.
"""

from __future__ import annotations


class DockvolError(Exception):
    """Base class for all errors reported to the operator."""


class ConfigError(DockvolError):
    pass


class ResolutionError(DockvolError):
    """A token, container or mount path did not resolve."""


class AmbiguousTokenError(ResolutionError):
    def __init__(self, token: str, matches: list[str]):
        self.token = token
        self.matches = matches
        super().__init__(
            f"ambiguous volume id {token!r} matches {len(matches)} volumes: {', '.join(matches)}"
        )


class VolumeInUseError(DockvolError):
    def __init__(self, token: str, containers: list[str]):
        self.token = token
        self.containers = containers
        super().__init__(f"volume is in use, cannot remove: {token}")


class EngineError(DockvolError):
    """A call to the docker engine failed (transport, API or build error)."""


class CommandFailedError(DockvolError):
    """A one-shot command ran but exited non-zero inside its container."""

    def __init__(self, what: str, status_code: int, output: str = ""):
        self.status_code = status_code
        self.output = output
        msg = f"{what} failed (exit {status_code})"
        if output.strip():
            msg += f": {output.strip()}"
        super().__init__(msg)


class ProtocolError(DockvolError):
    """Export archive or import manifest does not have the expected layout."""
