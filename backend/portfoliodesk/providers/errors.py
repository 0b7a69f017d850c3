from __future__ import annotations


class FetchError(RuntimeError):
    """Raised when an upstream provider cannot deliver data for a symbol."""


class RateLimitError(FetchError):
    """Raised when the provider signals that the call budget is exhausted."""


class InvalidQuoteError(FetchError):
    def __init__(self, message: str = "Invalid or incomplete quote data received") -> None:
        super().__init__(message)
