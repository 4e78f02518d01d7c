"""
Tests for the fault taxonomy.
"""

import pytest

from csrfguard.faults import (
    CSRFConfigFault,
    CSRFViolationFault,
    Fault,
    FaultDomain,
    SecureRandomUnavailableFault,
    SessionUnavailableFault,
    Severity,
)


class TestFault:

    def test_requires_code_message_domain(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_domain_defaults_applied(self):
        fault = Fault(code="X", message="m", domain=FaultDomain.SECURITY)
        assert fault.severity == Severity.ERROR
        assert fault.retryable is False
        assert str(fault) == "[X] m"

    def test_to_dict(self):
        fault = CSRFConfigFault("strength", "too small")
        data = fault.to_dict()
        assert data["code"] == "CSRF_CONFIG_INVALID"
        assert data["domain"] == "config"
        assert data["severity"] == "fatal"
        assert data["public"] is False
        assert data["metadata"] == {"key": "strength", "reason": "too small"}

    def test_domain_compares_to_name(self):
        fault = SessionUnavailableFault("csrf")
        assert fault.domain == "config"
        assert repr(fault).startswith("SessionUnavailableFault(code='CSRF_SESSION_UNAVAILABLE'")


class TestConcreteFaults:

    @pytest.mark.parametrize("fault,code,domain", [
        (SessionUnavailableFault("csrf"), "CSRF_SESSION_UNAVAILABLE", FaultDomain.CONFIG),
        (SecureRandomUnavailableFault("no urandom"), "CSRF_RANDOM_UNAVAILABLE", FaultDomain.SYSTEM),
        (CSRFViolationFault(), "CSRF_VIOLATION", FaultDomain.SECURITY),
    ])
    def test_codes_and_domains(self, fault, code, domain):
        assert fault.code == code
        assert fault.domain == domain
        assert isinstance(fault, Exception)

    def test_violation_is_public_warning(self):
        fault = CSRFViolationFault()
        assert fault.public is True
        assert fault.severity == Severity.WARN
        assert fault.message == "Failed CSRF check!"
