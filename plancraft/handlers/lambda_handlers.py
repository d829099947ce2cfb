"""
AWS Lambda entry points (API Gateway REST proxy events).

Each handler pulls the user id from the path (``/users/{userId}/...``) or
the Cognito claims, checks the caller may act on that user, runs one
OnboardingService call and maps the outcome to an HTTP response:

    400  missing or invalid input
    401  no caller identity
    403  caller may not act on this user
    404  user not found
    500  anything unexpected
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Awaitable, Callable

from plancraft.api.schemas import UpdateFeatureRequest, UpdateStepRequest, parse_request
from plancraft.auth import check_permissions
from plancraft.config import configure_logging, get_settings
from plancraft.core.errors import PlancraftError, ValidationError
from plancraft.integrations.sentry import capture_exception, init_sentry
from plancraft.onboarding import OnboardingState, get_next_recommended_step
from plancraft.services import OnboardingService
from plancraft.storage import UserStore, create_user_store

logger = logging.getLogger(__name__)

configure_logging()
init_sentry()

_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Store shared across warm invocations."""
    global _store
    if _store is None:
        _store = create_user_store(get_settings())
    return _store


def set_user_store(store: UserStore | None) -> None:
    """Swap the store (tests, local runs)."""
    global _store
    _store = store


# =============================================================================
# Event helpers
# =============================================================================


def json_response(body: Any, status_code: int = 200) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
        },
        "body": json.dumps(body),
    }


def _caller_id(event: dict[str, Any]) -> str | None:
    claims = ((event.get("requestContext") or {}).get("authorizer") or {}).get("claims") or {}
    return claims.get("sub")


def _target_user_id(event: dict[str, Any]) -> str | None:
    return (event.get("pathParameters") or {}).get("userId") or _caller_id(event)


def _path_param(event: dict[str, Any], name: str) -> str | None:
    return (event.get("pathParameters") or {}).get(name)


def _parse_body(event: dict[str, Any]) -> dict[str, Any]:
    raw = event.get("body")
    if not raw:
        return {}

    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")

    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON")

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _onboarding_body(user_id: str, state: OnboardingState, **extra: Any) -> dict[str, Any]:
    return {"userId": user_id, "onboarding": state.to_record(), **extra}


def _handle(
    event: dict[str, Any],
    permission: str,
    operation: Callable[[OnboardingService, str, dict[str, Any]], Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    """Shared plumbing: identity, authorization, error mapping."""
    user_id = _target_user_id(event)
    if not user_id:
        return json_response({"error": "validation_error", "message": "User ID is required"}, 400)

    caller_id = _caller_id(event)
    if not caller_id:
        return json_response({"error": "unauthorized", "message": "Authentication required"}, 401)

    async def run() -> dict[str, Any]:
        store = get_user_store()
        if not await check_permissions(store, caller_id, permission, user_id):
            return json_response(
                {"error": "forbidden", "message": "Insufficient permissions for this user"}, 403,
            )

        body = _parse_body(event)
        result = await operation(OnboardingService(store), user_id, body)
        return json_response(result)

    try:
        return asyncio.run(run())
    except PlancraftError as e:
        return json_response(e.to_dict(), e.status_code)
    except Exception as e:
        logger.exception("Unhandled error for user %s", user_id)
        capture_exception(e, user_id=user_id)
        return json_response({"error": "internal_error", "message": "Internal server error"}, 500)


# =============================================================================
# Handlers
# =============================================================================


def get_onboarding_state(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """GET /users/{userId}/onboarding"""

    async def operation(service: OnboardingService, user_id: str, body: dict[str, Any]):
        state = await service.get_state(user_id)
        return _onboarding_body(user_id, state, nextStep=get_next_recommended_step(state))

    return _handle(event, "user:read:self", operation)


def update_onboarding_step(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """PUT /users/{userId}/onboarding/steps/{step}"""

    async def operation(service: OnboardingService, user_id: str, body: dict[str, Any]):
        step = _path_param(event, "step") or body.get("step")
        if not step:
            raise ValidationError("Step name is required")

        request = parse_request(UpdateStepRequest, body)
        state = await service.update_step(
            user_id,
            step,
            is_complete=request.is_complete,
            step_data=request.step_data,
            move_to_next=request.move_to_next,
        )
        return _onboarding_body(
            user_id,
            state,
            message=f"Onboarding step '{step}' updated successfully",
            nextStep=state.current_step,
        )

    return _handle(event, "user:update:self", operation)


def skip_onboarding(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """POST /users/{userId}/onboarding/skip"""

    async def operation(service: OnboardingService, user_id: str, body: dict[str, Any]):
        state = await service.skip(user_id)
        return _onboarding_body(user_id, state, message="Onboarding process skipped successfully")

    return _handle(event, "user:update:self", operation)


def toggle_onboarding_feature(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """PUT /users/{userId}/onboarding/features/{feature}"""

    async def operation(service: OnboardingService, user_id: str, body: dict[str, Any]):
        feature = _path_param(event, "feature") or body.get("feature")
        if not feature:
            raise ValidationError("Feature name is required")

        request = parse_request(UpdateFeatureRequest, body)
        state = await service.update_feature(
            user_id,
            feature,
            introduced=request.introduced,
            interacted=request.interacted,
        )
        return {
            "userId": user_id,
            "feature": feature,
            "status": state.features[feature].model_dump(by_alias=True),
        }

    return _handle(event, "user:update:self", operation)
