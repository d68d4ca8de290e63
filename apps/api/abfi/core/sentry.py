"""Sentry setup for the ABFI API.

Only server faults are reported. Bankability domain errors are rejected
inputs (returned as 422) and never become Sentry events.
"""

import structlog
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from abfi.modules.bankability.exceptions import BankabilityError

logger = structlog.get_logger()

SERVICE_NAME = "abfi-api"

_SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}
_SERVER_ERROR_STATUS_CODES = set(range(500, 600))


def _scrub_sensitive_data(event: dict, hint: dict) -> dict:
    """Remove auth headers before sending to Sentry."""
    request = event.get("request", {})
    headers = request.get("headers", {})
    for header in list(headers):
        if header.lower() in _SENSITIVE_HEADERS:
            headers[header] = "[REDACTED]"
    return event


def _before_send(event: dict, hint: dict) -> dict | None:
    exc_info = hint.get("exc_info")
    if exc_info and isinstance(exc_info[1], BankabilityError):
        return None
    return _scrub_sensitive_data(event, hint)


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> bool:
    """Initialise Sentry before the FastAPI app is created.

    Returns False (and logs) when no DSN is configured.
    """
    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return False

    traces_sample_rate = 0.1 if environment == "production" else 1.0

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        server_name=SERVICE_NAME,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes=_SERVER_ERROR_STATUS_CODES,
            ),
        ],
        send_default_pii=False,
        before_send=_before_send,
    )
    sentry_sdk.set_tag("service", SERVICE_NAME)
    logger.info(
        "sentry_initialized",
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
    )
    return True
