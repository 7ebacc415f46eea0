from __future__ import annotations
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class RejectionReason(str, Enum):
    WRONG_METHOD = "wrong_method"
    # Stale timestamps and HMAC mismatches share one reason so callers can't tell them apart
    STALE_OR_INVALID_SIGNATURE = "stale_or_invalid_signature"

    @property
    def message(self) -> str:
        if self is RejectionReason.WRONG_METHOD:
            return "Only POST requests are allowed."
        return "The webhook signature was invalid."


class VerificationRequest(BaseModel):
    """Method plus the three Mailgun signing fields, exactly as received."""

    model_config = ConfigDict(frozen=True)

    method: str
    timestamp: Optional[str] = None
    token: Optional[str] = None
    signature: Optional[str] = None


class VerifierConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    secret: bytes
    freshness_window: int = 15
    expected_method: str = "POST"

    @field_validator("secret")
    @classmethod
    def _secret_not_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("secret must not be empty")
        return value

    @field_validator("freshness_window")
    @classmethod
    def _window_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("freshness_window must be positive")
        return value


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: Optional[RejectionReason] = None

    @model_validator(mode="after")
    def _reason_only_when_rejected(self) -> "VerificationResult":
        # Accepted carries no reason; Rejected always carries one
        if self.accepted != (self.reason is None):
            raise ValueError("accepted results have no reason and rejected results require one")
        return self

    @classmethod
    def accept(cls) -> "VerificationResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "VerificationResult":
        return cls(accepted=False, reason=reason)

    def __bool__(self) -> bool:
        return self.accepted
