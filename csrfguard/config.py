"""
Guard configuration - typed settings with environment loading.

Merge order (later overrides earlier):
1. Dataclass defaults
2. ``.env`` file (python-dotenv)
3. Process environment variables (``CSRF_*`` prefix)
4. Manual overrides
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from .faults import CSRFConfigFault

logger = logging.getLogger("csrfguard.config")

MIN_STRENGTH = 16


@dataclass(frozen=True)
class GuardConfig:
    """
    CSRF guard settings.

    Attributes:
        prefix: Namespace for body fields, request state keys and the session
            bucket (trailing underscores are trimmed)
        storage_limit: Maximum retained tokens; ``<= 0`` disables eviction
        strength: Bytes of randomness per token value (minimum 16)
        persistent_token_mode: Keep one token per session instead of
            rotating on every request
    """

    prefix: str = "csrf"
    storage_limit: int = 200
    strength: int = MIN_STRENGTH
    persistent_token_mode: bool = False

    def __post_init__(self):
        object.__setattr__(self, "prefix", str(self.prefix).rstrip("_"))
        self.validate()

    def validate(self) -> None:
        """
        Check invariants.

        Raises:
            CSRFConfigFault: On an empty prefix or a strength below 16
        """
        if not self.prefix:
            raise CSRFConfigFault("prefix", "must not be empty")
        if isinstance(self.strength, bool) or not isinstance(self.strength, int):
            raise CSRFConfigFault("strength", "must be an integer")
        if self.strength < MIN_STRENGTH:
            raise CSRFConfigFault("strength", f"Minimum strength is {MIN_STRENGTH}.")
        if isinstance(self.storage_limit, bool) or not isinstance(self.storage_limit, int):
            raise CSRFConfigFault("storage_limit", "must be an integer")

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_env(
        cls,
        env_prefix: str = "CSRF_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "GuardConfig":
        """
        Load configuration from a ``.env`` file and the environment.

        ``CSRF_STORAGE_LIMIT=50`` sets ``storage_limit``; unknown keys are
        ignored.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated GuardConfig

        Raises:
            CSRFConfigFault: A value cannot be converted or fails validation
        """
        known = {f.name: f for f in fields(cls)}
        data: Dict[str, Any] = {}

        sources = []
        if env_file:
            sources.append(dotenv_values(env_file))
        sources.append(os.environ)

        for source in sources:
            for key, value in source.items():
                if value is None or not key.startswith(env_prefix):
                    continue
                name = key[len(env_prefix):].lower()
                if name in known:
                    data[name] = _parse_value(name, value, known[name].type)

        if overrides:
            data.update(overrides)

        logger.debug("Loaded CSRF guard configuration keys: %s", sorted(data))
        return cls(**data)


def _parse_value(name: str, value: str, annotation: Any) -> Any:
    """Convert an environment string according to the field annotation."""
    text = value.strip()
    if annotation in (bool, "bool"):
        lowered = text.lower()
        if lowered in ("true", "yes", "1", "on"):
            return True
        if lowered in ("false", "no", "0", "off", ""):
            return False
        raise CSRFConfigFault(name, f"expected a boolean, got {value!r}")
    if annotation in (int, "int"):
        try:
            return int(text)
        except ValueError:
            raise CSRFConfigFault(name, f"expected an integer, got {value!r}") from None
    return text
