"""Error hierarchy raised by the plugin workflow."""

from __future__ import annotations


class PluginError(Exception):
    """Base class for failures that abort a plugin run."""


class ConfigError(PluginError):
    """Raised when plugin options or registry documents cannot be read."""


class DaemonConnectionError(PluginError):
    """Raised when no candidate daemon endpoint answered the liveness probe."""


class BuildContextError(PluginError):
    """Raised when the build context archive cannot be assembled."""


class NoImagesError(PluginError):
    """Raised when the image/tag cross product is empty."""

    def __init__(self) -> None:
        super().__init__("no such image is configured")


class DaemonStreamError(PluginError):
    """Raised when the daemon embeds an error in a progress stream."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BuildError(DaemonStreamError):
    """Daemon-reported build failure."""


class PushError(DaemonStreamError):
    """Daemon-reported push failure."""
