"""
CSRF Guard Faults - Structured fault taxonomy.

Defines:
- Severity levels
- FaultDomain (explicit fault domains)
- Fault base class (structured fault objects)
- Concrete faults raised by the guard, storage, and token codec

Errors are typed fault signals, not bare exceptions. Configuration and
environment faults are fatal and raised immediately; a failed token check
is a normal outcome and never raised (see ``CSRFViolationFault``).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """How serious a guard fault is. FATAL faults stop the request pipeline."""
    INFO = "info"
    WARN = "warn"       # rejected request, expected in normal traffic
    ERROR = "error"
    FATAL = "fatal"     # misconfiguration or missing platform support


class FaultDomain:
    """
    Area a guard fault belongs to.

    Compares equal to its name string, so ``fault.domain == "config"`` holds.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Guard settings and session wiring")
FaultDomain.SECURITY = FaultDomain("security", "Rejected token checks")
FaultDomain.SYSTEM = FaultDomain("system", "Platform capabilities such as the CSPRNG")


# Severity/retryable used when a fault does not set them
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.SECURITY: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.SYSTEM: {"severity": Severity.FATAL, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base class for everything the guard raises or reports.

    Subclasses may declare ``code``, ``message`` and ``domain`` as class
    attributes instead of passing them.

    Attributes:
        code: Stable identifier such as ``"CSRF_CONFIG_INVALID"``
        message: Text for logs; shown to clients only when ``public``
        severity: Taken from ``DOMAIN_DEFAULTS`` when not given
        domain: CONFIG, SECURITY or SYSTEM
        retryable: Whether repeating the call can succeed
        public: Whether failure handlers may echo ``message`` to the client
        metadata: Offending setting, prefix or reason
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form for log records and JSON error bodies."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }


# ============================================================================
# CONFIG Faults
# ============================================================================

class CSRFConfigFault(Fault):
    """Guard configuration is invalid (raised at construction)."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CSRF_CONFIG_INVALID",
            message=f"CSRF middleware failed. Configuration '{key}' is invalid: {reason}",
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            retryable=False,
            public=False,
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


class SessionUnavailableFault(Fault):
    """
    No explicit storage was configured and the request carries no session.

    Raised before any token work happens; the session middleware must run
    ahead of the guard.
    """

    def __init__(self, prefix: str, **kwargs):
        super().__init__(
            code="CSRF_SESSION_UNAVAILABLE",
            message="CSRF middleware failed. Session not found.",
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            retryable=False,
            public=False,
            metadata={"prefix": prefix, **kwargs.get("metadata", {})},
        )


# ============================================================================
# SYSTEM Faults
# ============================================================================

class SecureRandomUnavailableFault(Fault):
    """The operating system provides no cryptographically secure randomness."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            code="CSRF_RANDOM_UNAVAILABLE",
            message=f"Secure random source unavailable: {reason}",
            domain=FaultDomain.SYSTEM,
            severity=Severity.FATAL,
            retryable=False,
            public=False,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class CSRFViolationFault(Fault):
    """
    CSRF token validation failed.

    Never raised by the guard itself. Failure handlers use it to describe
    the rejection (e.g. ``json_failure_handler``).
    """

    def __init__(self, reason: str = "Failed CSRF check!", **kwargs):
        self.reason = reason
        super().__init__(
            code="CSRF_VIOLATION",
            message=reason,
            domain=FaultDomain.SECURITY,
            severity=Severity.WARN,
            retryable=False,
            public=True,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )
