# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project in Sentry
#   2. Set SENTRY_DSN=https://...@sentry.io/... in the environment
#
# Usage:
#   init_sentry() runs at API startup and on Lambda cold start.
#
# =============================================================================

import logging

import sentry_sdk
from fastapi import HTTPException
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from plancraft.config import Settings, get_settings
from plancraft.core.errors import PlancraftError

logger = logging.getLogger(__name__)


def init_sentry(settings: Settings | None = None) -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    settings = settings or get_settings()

    if not settings.sentry_dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,

        # Sample 10% of transactions in prod
        traces_sample_rate=0.1 if settings.is_production else 1.0,

        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],

        # Don't send PII by default
        send_default_pii=False,

        before_send=_filter_events,
    )

    logger.info("Sentry initialized for %s", settings.environment)
    return True


def _filter_events(event: dict, hint: dict) -> dict | None:
    """Drop expected errors and scrub auth headers."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        # Expected errors
        if isinstance(exc_value, PlancraftError):
            return None
        if isinstance(exc_value, HTTPException) and exc_value.status_code in (400, 401, 403, 404, 422):
            return None

    request = event.get("request")
    if request and "headers" in request:
        headers = request["headers"]
        for key in list(headers.keys()):
            if key.lower() in ("authorization", "cookie", "x-api-key"):
                headers[key] = "[Filtered]"

    return event


def capture_exception(error: Exception, **context) -> str | None:
    """
    Capture an exception to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not sentry_sdk.get_client().is_active():
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)
