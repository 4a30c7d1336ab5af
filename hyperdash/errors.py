"""Custom exceptions for the dashboard."""


class HyperdashError(Exception):
    """Base exception for dashboard errors."""
    pass


class DataError(HyperdashError):
    """Raised when a source download fails or returns no usable data."""
    pass


class SourceFormatError(DataError):
    """Raised when a source responds with an unexpected payload shape."""
    pass


class CacheError(HyperdashError):
    """Raised when memoization operations fail."""
    pass
