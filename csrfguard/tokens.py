"""
Token codec - random token values and unique token names.
"""

from __future__ import annotations

import itertools
import secrets
import time
from dataclasses import dataclass
from typing import Dict

from .faults import SecureRandomUnavailableFault

# Process-wide sequence appended to names
_name_sequence = itertools.count()


@dataclass(frozen=True)
class TokenPair:
    """One issuance of an anti-forgery token.

    ``name`` identifies the issuance and is the storage key; ``value`` is the
    secret the client must echo back alongside it.
    """

    name: str
    value: str

    def as_dict(self, prefix: str) -> Dict[str, str]:
        """Return the pair keyed by ``<prefix>_name`` / ``<prefix>_value``."""
        return {
            f"{prefix}_name": self.name,
            f"{prefix}_value": self.value,
        }


def create_value(strength: int) -> str:
    """
    Generate a token value from ``strength`` bytes of secure randomness.

    Args:
        strength: Number of random bytes (the hex result is twice as long)

    Returns:
        Hex-encoded token value

    Raises:
        SecureRandomUnavailableFault: The OS offers no CSPRNG
    """
    try:
        return secrets.token_bytes(strength).hex()
    except (NotImplementedError, OSError) as e:
        raise SecureRandomUnavailableFault(str(e) or type(e).__name__) from e


def create_name(prefix: str) -> str:
    """
    Generate a token name scoped to ``prefix``.

    Layout: prefix + 13 hex digits of microseconds since the epoch + a hex
    sequence number. Unique within the process, not secret.
    """
    micros = time.time_ns() // 1000
    return f"{prefix}{micros:013x}{next(_name_sequence):x}"
