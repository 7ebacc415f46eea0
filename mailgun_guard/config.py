import logging
import os
from typing import Optional

from pydantic import ValidationError

from .models import VerifierConfig
from .utils.mailgun_signature import SIGNATURE_MAX_AGE_SECONDS, is_signature_verification_enabled


class ConfigurationError(RuntimeError):
    """Raised at startup when the webhook verifier can't be configured."""


def _parse_level(raw: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    # getLevelName returns "Level X" for unknown names
    return level if isinstance(level, int) else logging.INFO


class Settings:
    def __init__(self) -> None:
        # Mailgun HTTP webhook signing key (from the Mailgun dashboard)
        self.mailgun_signing_key: Optional[str] = os.getenv("MAILGUN_SIGNING_KEY")
        self.signature_max_age_raw: str = os.getenv(
            "MAILGUN_SIGNATURE_MAX_AGE_SECONDS", str(SIGNATURE_MAX_AGE_SECONDS)
        )
        self.log_level: int = _parse_level(os.getenv("LOG_LEVEL", "INFO"))


def build_verifier_config(settings: Settings) -> VerifierConfig:
    if not is_signature_verification_enabled(settings.mailgun_signing_key):
        raise ConfigurationError("MAILGUN_SIGNING_KEY is not set")

    try:
        window = int(settings.signature_max_age_raw.strip())
    except ValueError:
        raise ConfigurationError(
            f"MAILGUN_SIGNATURE_MAX_AGE_SECONDS must be an integer, got {settings.signature_max_age_raw!r}"
        ) from None

    try:
        return VerifierConfig(
            secret=settings.mailgun_signing_key.encode("utf-8"),
            freshness_window=window,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"invalid webhook verifier settings: {exc}") from exc
