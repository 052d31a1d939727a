"""Error types raised by the pitch_accent engine."""


class ConfigurationError(ValueError):
    """Raised when an engine component is constructed with invalid settings.

    Invalid frequency ranges, weights that do not sum to one and non-positive
    buffer sizes are rejected when the configuration is built, never clamped
    later at analysis time.
    """
