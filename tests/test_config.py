"""
Tests for GuardConfig loading and validation.
"""

import textwrap

import pytest

from csrfguard import Guard, GuardConfig
from csrfguard.faults import CSRFConfigFault, FaultDomain, Severity


class TestGuardConfig:

    def test_defaults(self):
        config = GuardConfig()
        assert config.to_dict() == {
            "prefix": "csrf",
            "storage_limit": 200,
            "strength": 16,
            "persistent_token_mode": False,
        }

    def test_prefix_trimmed(self):
        assert GuardConfig(prefix="csrf_").prefix == "csrf"

    @pytest.mark.parametrize("kwargs", [
        {"strength": 8},
        {"strength": 15},
        {"prefix": "___"},
        {"prefix": ""},
        {"strength": "32"},
        {"storage_limit": "10"},
    ])
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(CSRFConfigFault) as exc_info:
            GuardConfig(**kwargs)
        fault = exc_info.value
        assert fault.domain == FaultDomain.CONFIG
        assert fault.severity == Severity.FATAL


class TestFromEnv:

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("CSRF_PREFIX", "xsrf")
        monkeypatch.setenv("CSRF_STORAGE_LIMIT", "50")
        monkeypatch.setenv("CSRF_STRENGTH", "32")
        monkeypatch.setenv("CSRF_PERSISTENT_TOKEN_MODE", "yes")
        monkeypatch.setenv("CSRF_UNKNOWN", "ignored")

        config = GuardConfig.from_env()

        assert config.prefix == "xsrf"
        assert config.storage_limit == 50
        assert config.strength == 32
        assert config.persistent_token_mode is True

    def test_env_file_with_environment_precedence(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(textwrap.dedent("""
            # guard settings
            APP_CSRF_STORAGE_LIMIT=10
            APP_CSRF_PERSISTENT_TOKEN_MODE=true
        """))
        monkeypatch.setenv("APP_CSRF_STORAGE_LIMIT", "20")

        config = GuardConfig.from_env(env_prefix="APP_CSRF_", env_file=str(env_file))

        assert config.storage_limit == 20
        assert config.persistent_token_mode is True

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("CSRF_STORAGE_LIMIT", "20")
        config = GuardConfig.from_env(overrides={"storage_limit": 3})
        assert config.storage_limit == 3

    @pytest.mark.parametrize("key,value", [
        ("CSRF_STORAGE_LIMIT", "many"),
        ("CSRF_PERSISTENT_TOKEN_MODE", "maybe"),
        ("CSRF_STRENGTH", "8"),
    ])
    def test_bad_values_raise(self, monkeypatch, key, value):
        monkeypatch.setenv(key, value)
        with pytest.raises(CSRFConfigFault):
            GuardConfig.from_env()

    def test_guard_from_config(self):
        config = GuardConfig(prefix="form", storage_limit=7, strength=32, persistent_token_mode=True)
        guard = Guard.from_config(config, storage={})
        assert guard.prefix == "form"
        assert guard.strength == 32
        assert guard.storage_limit == 7
        assert guard.persistent_token_mode is True
