"""
csrfguard - Anti-forgery token middleware for async Python web apps.

Provides:
- Guard: synchronizer-token CSRF middleware with one-time or persistent tokens
- Token storage over sessions, plain mappings, or custom stores
- FIFO eviction bounding the number of outstanding tokens
- Structured faults for configuration and environment errors
"""

__version__ = "0.1.0"

from .config import GuardConfig, MIN_STRENGTH
from .eviction import enforce_limit
from .faults import (
    Fault,
    FaultDomain,
    Severity,
    CSRFConfigFault,
    SessionUnavailableFault,
    SecureRandomUnavailableFault,
    CSRFViolationFault,
)
from .guard import Guard, default_failure_handler, json_failure_handler
from .response import Response
from .storage import (
    TokenStorage,
    MappingStorage,
    MemoryStorage,
    SessionStorage,
    as_storage,
)
from .tokens import TokenPair, create_name, create_value

__all__ = [
    # Middleware
    "Guard",
    "default_failure_handler",
    "json_failure_handler",

    # Configuration
    "GuardConfig",
    "MIN_STRENGTH",

    # Tokens
    "TokenPair",
    "create_name",
    "create_value",

    # Storage
    "TokenStorage",
    "MappingStorage",
    "MemoryStorage",
    "SessionStorage",
    "as_storage",
    "enforce_limit",

    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "CSRFConfigFault",
    "SessionUnavailableFault",
    "SecureRandomUnavailableFault",
    "CSRFViolationFault",

    "Response",
]
