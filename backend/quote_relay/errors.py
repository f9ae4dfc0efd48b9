class QuoteRelayError(Exception):
    """Base class for relay errors."""


class ConfigError(QuoteRelayError):
    pass


class UnauthorizedError(QuoteRelayError):
    """Read token missing or wrong."""

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)
