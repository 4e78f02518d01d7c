"""
FIFO eviction for token storage.

A token is minted on nearly every request and most are never redeemed, so
storage is bounded by dropping the oldest tokens first.
"""

from __future__ import annotations

import logging

from .storage import TokenStorage

logger = logging.getLogger("csrfguard.eviction")


def enforce_limit(storage: TokenStorage, limit: int) -> int:
    """
    Remove the oldest tokens until at most ``limit`` remain.

    Args:
        storage: Storage to trim
        limit: Maximum number of retained tokens (``<= 0`` disables)

    Returns:
        Number of evicted tokens
    """
    if limit < 1:
        return 0

    evicted = 0
    count = storage.count()
    while count > limit:
        key = storage.oldest_key()
        if key is None:
            break
        storage.remove(key)
        remaining = storage.count()
        if remaining >= count:
            logger.warning("Storage did not shrink after removing %r; eviction stopped", key)
            break
        count = remaining
        evicted += 1

    if evicted:
        logger.debug("Evicted %d CSRF token(s), limit=%d", evicted, limit)
    return evicted
