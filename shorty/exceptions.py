"""
Shorty exceptions.

The allocator recovers from exactly one of these (UniqueViolationError);
everything else propagates with its kind intact so the HTTP layer can map
it to a response without re-deriving the cause.
"""


class ShortyError(Exception):
    """Base exception for Shorty."""

    pass


class InvalidURLError(ShortyError, ValueError):
    """Raised when a URL is malformed or not an absolute http(s) URL."""

    pass


class StoreError(ShortyError):
    """Raised when the store fails for any reason."""

    pass


class UniqueViolationError(StoreError):
    """Raised when an insert would duplicate an existing short code."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code already exists: {short_code}")


class ShortLinkNotFoundError(ShortyError):
    """Raised when no short link matches the requested code."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short link not found: {short_code}")


class AllocationError(ShortyError):
    """Base exception for short code allocation failures."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)


class AllocationExhaustedError(AllocationError):
    """Raised when every allocation attempt collided with an existing code."""

    def __init__(self, attempts: int):
        super().__init__(f"No unique short code after {attempts} attempts", attempts)


class StoreFailureError(AllocationError):
    """Raised when the store fails for a reason other than a code collision."""

    def __init__(self, attempts: int):
        super().__init__(f"Store failure on allocation attempt {attempts}", attempts)
