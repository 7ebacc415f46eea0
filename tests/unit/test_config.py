import logging

import pytest
from pydantic import ValidationError

from mailgun_guard.config import ConfigurationError, Settings, build_verifier_config
from mailgun_guard.models import RejectionReason, VerificationResult, VerifierConfig


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("MAILGUN_SIGNING_KEY", "key-123")
    monkeypatch.setenv("MAILGUN_SIGNATURE_MAX_AGE_SECONDS", "30")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.mailgun_signing_key == "key-123"
    assert settings.log_level == logging.DEBUG
    config = build_verifier_config(settings)
    assert config.secret == b"key-123"
    assert config.freshness_window == 30
    assert config.expected_method == "POST"


def test_defaults(monkeypatch):
    monkeypatch.setenv("MAILGUN_SIGNING_KEY", "key")
    monkeypatch.delenv("MAILGUN_SIGNATURE_MAX_AGE_SECONDS", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    settings = Settings()

    assert settings.log_level == logging.INFO
    assert build_verifier_config(settings).freshness_window == 15


def test_unknown_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert Settings().log_level == logging.INFO


@pytest.mark.parametrize("key", [None, "", "   "])
def test_missing_signing_key_is_a_startup_error(monkeypatch, key):
    if key is None:
        monkeypatch.delenv("MAILGUN_SIGNING_KEY", raising=False)
    else:
        monkeypatch.setenv("MAILGUN_SIGNING_KEY", key)

    with pytest.raises(ConfigurationError):
        build_verifier_config(Settings())


@pytest.mark.parametrize("window", ["soon", "0", "-5"])
def test_bad_window_is_a_startup_error(monkeypatch, window):
    monkeypatch.setenv("MAILGUN_SIGNING_KEY", "key")
    monkeypatch.setenv("MAILGUN_SIGNATURE_MAX_AGE_SECONDS", window)

    with pytest.raises(ConfigurationError):
        build_verifier_config(Settings())


def test_verifier_config_rejects_empty_secret():
    with pytest.raises(ValidationError):
        VerifierConfig(secret=b"")


def test_verifier_config_is_frozen():
    config = VerifierConfig(secret=b"secret")
    with pytest.raises(ValidationError):
        config.secret = b"other"


def test_rejection_messages():
    assert RejectionReason.WRONG_METHOD.message == "Only POST requests are allowed."
    assert RejectionReason.STALE_OR_INVALID_SIGNATURE.message == "The webhook signature was invalid."


def test_result_constructors_are_unambiguous():
    assert VerificationResult.accept().reason is None
    assert VerificationResult.reject(RejectionReason.WRONG_METHOD).accepted is False


@pytest.mark.parametrize(
    "accepted, reason",
    [(True, RejectionReason.WRONG_METHOD), (True, RejectionReason.STALE_OR_INVALID_SIGNATURE), (False, None)],
)
def test_result_rejects_mixed_states(accepted, reason):
    with pytest.raises(ValidationError):
        VerificationResult(accepted=accepted, reason=reason)


def test_config_module_holds_no_global_settings():
    import mailgun_guard.config as config_module

    assert not hasattr(config_module, "settings")
