class MarkpadError(Exception):
    """Base class for errors raised by the host-facing Markpad API."""


class ConfigError(MarkpadError):
    """Invalid feature flags, render options or configuration file."""


class FormatSpecError(MarkpadError):
    """Invalid FormatSpec, or a format name that does not exist."""
