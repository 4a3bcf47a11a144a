"""Short code allocation with bounded retry against the store.

Random codes are generated without coordination, so the store's unique index
is the only arbiter of uniqueness. The allocator's job is to retry against
that arbiter with a hard ceiling.

Allocation Loop
===============
::
    ┌──────────────────┐
    │ generator.next() │◄──────────────────────┐
    └────────┬─────────┘                       │
             ▼                                 │
    ┌──────────────────┐                       │
    │ store.try_insert │                       │
    └────────┬─────────┘                       │
             │                                 │
     ┌───────┼────────────────┐                │
     ▼       ▼                ▼                │
   row   UniqueViolation   StoreError          │
     │       │                │                │
     │       ▼                ▼                │
     │   attempts += 1    StoreFailureError    │
     │       │            (no retry)           │
     │       ├─ attempts < max ────────────────┘
     │       └─ attempts == max ─► AllocationExhaustedError
     ▼
   ShortLink

Key Behaviours
===============
- Each attempt is a single insert; there is no existence check before it.
- There is no delay between attempts: collisions are independent random
  draws, not contention.
- No lock is taken; concurrent allocations are serialized by the database.
"""

import logging

from prometheus_client import Counter

from shorty.exceptions import AllocationExhaustedError, StoreError, StoreFailureError, UniqueViolationError
from shorty.generator import CodeGenerator
from shorty.models import ShortLink
from shorty.store import ShortLinkStore

__all__ = ["ShortCodeAllocator", "DEFAULT_MAX_ATTEMPTS"]

DEFAULT_MAX_ATTEMPTS = 10

logger = logging.getLogger("shorty.allocator")

SHORT_CODE_COLLISIONS_TOTAL = Counter(
    "shorty_short_code_collisions_total",
    "Insert attempts rejected because the short code already existed",
)


class ShortCodeAllocator:
    """Reserve a fresh short code for a long URL.

    Example:
        >>> allocator = ShortCodeAllocator(SQLAlchemyShortLinkStore(db), RandomCodeGenerator(6))
        >>> link = await allocator.allocate("https://example.com/")
        >>> link.short_code
        'aZ3kP9'
    """

    def __init__(self, store: ShortLinkStore, generator: CodeGenerator, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if not isinstance(max_attempts, int) or max_attempts < 1:
            raise ValueError(f"max_attempts must be a positive integer, got {max_attempts!r}")
        self._store = store
        self._generator = generator
        self.max_attempts = max_attempts

    async def allocate(self, original_url: str) -> ShortLink:
        """Insert ``original_url`` under a newly generated short code.

        Args:
            original_url: Normalized absolute http(s) URL.

        Returns:
            ShortLink: The persisted link.

        Raises:
            AllocationExhaustedError: ``max_attempts`` consecutive collisions.
            StoreFailureError: Any other store error; the cause is chained.
        """
        attempts = 0
        while True:
            short_code = self._generator.next()
            try:
                return await self._store.try_insert(short_code, original_url)
            except UniqueViolationError as exc:
                attempts += 1
                SHORT_CODE_COLLISIONS_TOTAL.inc()
                logger.debug(f"Short code collision on {short_code} (attempt {attempts}/{self.max_attempts})")
                if attempts >= self.max_attempts:
                    logger.error(f"Short code allocation exhausted after {attempts} attempts")
                    raise AllocationExhaustedError(attempts) from exc
            except StoreError as exc:
                logger.error(f"Store failure while allocating short code: {exc}")
                raise StoreFailureError(attempts + 1) from exc
