from __future__ import annotations
import logging
import time
from typing import Any, Mapping, Optional
from fastapi import Depends, FastAPI, HTTPException, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from .config import Settings, build_verifier_config
from .logging import configure_json_logging
from .models import VerificationRequest, VerifierConfig
from .utils.mailgun_signature import WebhookSignatureVerifier


logger = logging.getLogger(__name__)

SIGNATURE_FIELDS = ("timestamp", "token", "signature")
WEBHOOK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _as_text(value: Any) -> Optional[str]:
    # Uploaded files and nested objects can't be signing fields
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _signing_fields(source: Mapping[str, Any]) -> dict[str, Optional[str]]:
    # Current Mailgun webhooks nest the fields under "signature"; legacy ones send them flat
    nested = source.get("signature")
    if isinstance(nested, Mapping):
        source = nested
    return {name: _as_text(source.get(name)) for name in SIGNATURE_FIELDS}


async def extract_verification_request(request: Request, read_body: bool = True) -> VerificationRequest:
    if not read_body:
        return VerificationRequest(method=request.method)

    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    body: Any = None
    try:
        if content_type == "application/json":
            body = await request.json()
        elif content_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
            body = await request.form()
    except (ValueError, MultiPartException, StarletteHTTPException):
        # Starlette reports malformed multipart bodies as a 400 HTTPException
        logger.info("webhook_body_unreadable", extra={"content_type": content_type})
        body = None

    if not isinstance(body, Mapping):
        return VerificationRequest(method=request.method)
    return VerificationRequest(method=request.method, **_signing_fields(body))


def get_verifier(request: Request) -> WebhookSignatureVerifier:
    return request.app.state.verifier


async def require_mailgun_signature(
    request: Request,
    verifier: WebhookSignatureVerifier = Depends(get_verifier),
) -> None:
    """
    Reject the request with 403 unless it carries a fresh, valid Mailgun signature.

    The body is only read for the expected method; other methods are refused
    before any signature work.
    """
    config: VerifierConfig = verifier.config
    candidate = await extract_verification_request(
        request, read_body=request.method == config.expected_method
    )
    result = verifier.verify(candidate, now=time.time())
    if result.accepted:
        return

    logger.warning(
        "webhook_rejected",
        extra={
            "reason": result.reason.value,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else None,
        },
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.reason.message)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the webhook app. Fails with ConfigurationError if no signing key is set.

    Run with: uvicorn mailgun_guard.web:create_app --factory
    """
    settings = settings or Settings()
    configure_json_logging(settings.log_level)
    verifier = WebhookSignatureVerifier(build_verifier_config(settings))

    app = FastAPI()
    app.state.verifier = verifier

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.api_route(
        "/webhooks/mailgun",
        methods=WEBHOOK_METHODS,
        dependencies=[Depends(require_mailgun_signature)],
    )
    async def mailgun_webhook():
        logger.info("webhook_verified")
        return {"status": "ok"}

    logger.info(
        "webhook_verifier_configured",
        extra={"freshness_window": verifier.config.freshness_window},
    )
    return app
