from __future__ import annotations


class ConfigurationError(ValueError):
    """Field configuration or config file is unusable."""


class FlatteningError(ValueError):
    """A record could not be turned into rows."""


class ExpansionDepthError(FlatteningError):
    """Array expansion nested deeper than the configured limit."""
