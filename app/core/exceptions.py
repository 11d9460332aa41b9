"""
Domain exceptions for the trending service.

Routers translate these into HTTP errors; services raise them and never
return error codes.
"""


class TrendingError(Exception):
    """Base class for trending service errors."""


class ValidationError(TrendingError):
    """Malformed interaction input (missing required field, unknown type)."""


class NotFoundError(TrendingError):
    """A catalog entry or badge that was asked for does not exist."""


class PersistenceError(TrendingError):
    """A durable-store write failed. Logged; in-memory state is kept."""


class ConfigError(TrendingError):
    """An admin config update was rejected; the previous config is retained."""


class RankingUnavailableError(TrendingError):
    """No ranking has ever been computed and the current attempt failed."""
