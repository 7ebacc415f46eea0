"""
Mailgun webhook signature verification.

Mailgun signs webhook requests using HMAC-SHA256 over the concatenated
timestamp and token. This module decides whether an incoming request is
authentic and fresh, returning a VerificationResult instead of raising.

Reference: https://documentation.mailgun.com/docs/mailgun/user-manual/events/webhooks/#securing-webhooks
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Optional, Union

from ..models import RejectionReason, VerificationRequest, VerificationResult, VerifierConfig


# Maximum age of a webhook signature before it's considered stale
SIGNATURE_MAX_AGE_SECONDS = 15


def compute_signature(secret: Union[bytes, str], timestamp: str, token: str) -> str:
    """
    Compute the hex HMAC-SHA256 Mailgun expects for a timestamp/token pair.

    The timestamp text is used verbatim, so "0017" and "17" sign differently.
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hmac.new(
        key=secret,
        msg=f"{timestamp}{token}".encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


def signatures_match(expected: str, provided: str) -> bool:
    # compare_digest only accepts ASCII str, so compare bytes to tolerate any input
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def _parse_timestamp(timestamp: str) -> Optional[int]:
    # Plain ASCII digits only; int() would also take "+17", "1_700" and non-ASCII digits
    text = timestamp.strip()
    digits = text[1:] if text.startswith("-") else text
    if not (digits.isascii() and digits.isdigit()):
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _is_fresh(timestamp: str, now: Union[int, float], window: int) -> bool:
    webhook_time = _parse_timestamp(timestamp)
    if webhook_time is None:
        return False
    return abs(now - webhook_time) <= window


def verify(
    request: VerificationRequest,
    config: VerifierConfig,
    now: Union[int, float],
) -> VerificationResult:
    """
    Verify a Mailgun webhook request.

    Checks run in order and stop at the first failure:
    - the HTTP method must equal config.expected_method exactly
    - timestamp, token and signature must all be present
    - the timestamp must be within config.freshness_window seconds of `now`
    - the signature must equal HMAC-SHA256(secret, timestamp + token)

    Args:
        request: Method and signing fields as received from the client.
        config: Secret and verification policy.
        now: Current Unix time in seconds.

    Returns:
        VerificationResult.accept(), or a rejection carrying WRONG_METHOD or
        STALE_OR_INVALID_SIGNATURE.
    """
    if request.method != config.expected_method:
        return VerificationResult.reject(RejectionReason.WRONG_METHOD)

    invalid = VerificationResult.reject(RejectionReason.STALE_OR_INVALID_SIGNATURE)

    if request.timestamp is None or request.token is None or request.signature is None:
        return invalid

    # Verify timestamp is not stale (prevents replay attacks)
    if not _is_fresh(request.timestamp, now, config.freshness_window):
        return invalid

    expected_signature = compute_signature(config.secret, request.timestamp, request.token)

    # Use constant-time comparison to prevent timing attacks
    if not signatures_match(expected_signature, request.signature):
        return invalid

    return VerificationResult.accept()


class WebhookSignatureVerifier:
    """Binds a VerifierConfig so hosts can verify requests without passing it around."""

    def __init__(self, config: VerifierConfig) -> None:
        self.config = config

    def verify(self, request: VerificationRequest, now: Union[int, float]) -> VerificationResult:
        return verify(request, self.config, now)


def is_signature_verification_enabled(signing_key: Optional[str]) -> bool:
    """
    Check if Mailgun signature verification is configured.

    Args:
        signing_key: The configured Mailgun signing key.

    Returns:
        True if a signing key is configured, False otherwise.
    """
    return bool(signing_key and signing_key.strip())
