"""
FastAPI application.

The HTTP API the frontend talks to for onboarding and permission data.
Routes are thin: authorize, call a service or the auth layer, shape the JSON.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plancraft.api.schemas import ShareResourceRequest, UpdateFeatureRequest, UpdateStepRequest
from plancraft.auth import (
    AuthContext,
    RoleCatalog,
    get_role_catalog,
    require_permission,
    share_resource,
)
from plancraft.auth.roles import DEFAULT_ROLE
from plancraft.config import configure_logging, get_settings
from plancraft.core.errors import PlancraftError, ValidationError
from plancraft.core.events import EventBus, get_event_bus
from plancraft.integrations.sentry import capture_exception, init_sentry
from plancraft.onboarding import get_next_recommended_step
from plancraft.services import OnboardingService
from plancraft.storage import Attributes, UserStore, create_user_store

logger = logging.getLogger(__name__)


# =============================================================================
# App Setup
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Process-wide setup."""
    settings = get_settings()
    configure_logging(settings)
    init_sentry(settings)

    logger.info("Plancraft API starting in %s mode", settings.environment)
    yield
    logger.info("Plancraft API shutting down")


def create_app(
    store: UserStore | None = None,
    roles: RoleCatalog | None = None,
    event_bus: EventBus | None = None,
) -> FastAPI:
    """Build the app; tests pass their own store and bus."""
    settings = get_settings()

    if roles is None and settings.roles_file:
        roles = RoleCatalog.from_yaml(settings.roles_file)

    app = FastAPI(
        title="Plancraft API",
        description="User onboarding and permissions for Plancraft",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.store = store or create_user_store(settings)
    app.state.roles = roles or get_role_catalog()
    app.state.onboarding = OnboardingService(app.state.store, event_bus or get_event_bus())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PlancraftError, _plancraft_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    _register_routes(app)
    return app


async def _plancraft_error_handler(request: Request, exc: PlancraftError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await _plancraft_error_handler(
        request, ValidationError.from_details("Invalid request body", exc.errors())
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    capture_exception(exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal server error"},
    )


# =============================================================================
# Dependencies
# =============================================================================


def get_onboarding_service(request: Request) -> OnboardingService:
    return request.app.state.onboarding


def get_store(request: Request) -> UserStore:
    return request.app.state.store


# =============================================================================
# Routes
# =============================================================================


def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # -------------------------------------------------------------------------
    # Onboarding
    # -------------------------------------------------------------------------

    @app.get("/users/{user_id}/onboarding")
    async def get_onboarding(
        user_id: str,
        ctx: AuthContext = Depends(require_permission("user:read:self", "user_id")),
        service: OnboardingService = Depends(get_onboarding_service),
    ) -> dict[str, Any]:
        state = await service.get_state(user_id)
        return {
            "userId": user_id,
            "onboarding": state.to_record(),
            "nextStep": get_next_recommended_step(state),
        }

    @app.put("/users/{user_id}/onboarding/steps/{step}")
    async def update_onboarding_step(
        user_id: str,
        step: str,
        body: UpdateStepRequest,
        ctx: AuthContext = Depends(require_permission("user:update:self", "user_id")),
        service: OnboardingService = Depends(get_onboarding_service),
    ) -> dict[str, Any]:
        state = await service.update_step(
            user_id,
            step,
            is_complete=body.is_complete,
            step_data=body.step_data,
            move_to_next=body.move_to_next,
        )
        return {
            "message": f"Onboarding step '{step}' updated successfully",
            "userId": user_id,
            "onboarding": state.to_record(),
            "nextStep": state.current_step,
        }

    @app.post("/users/{user_id}/onboarding/skip")
    async def skip_onboarding(
        user_id: str,
        ctx: AuthContext = Depends(require_permission("user:update:self", "user_id")),
        service: OnboardingService = Depends(get_onboarding_service),
    ) -> dict[str, Any]:
        state = await service.skip(user_id)
        return {
            "message": "Onboarding process skipped successfully",
            "userId": user_id,
            "onboarding": state.to_record(),
        }

    @app.put("/users/{user_id}/onboarding/features/{feature}")
    async def update_onboarding_feature(
        user_id: str,
        feature: str,
        body: UpdateFeatureRequest,
        ctx: AuthContext = Depends(require_permission("user:update:self", "user_id")),
        service: OnboardingService = Depends(get_onboarding_service),
    ) -> dict[str, Any]:
        state = await service.update_feature(
            user_id,
            feature,
            introduced=body.introduced,
            interacted=body.interacted,
        )
        return {
            "userId": user_id,
            "feature": feature,
            "status": state.features[feature].model_dump(by_alias=True),
        }

    # -------------------------------------------------------------------------
    # Permissions and resources
    # -------------------------------------------------------------------------

    @app.get("/users/{user_id}/permissions")
    async def get_permissions(
        user_id: str,
        request: Request,
        ctx: AuthContext = Depends(require_permission("user:read:self", "user_id")),
        store: UserStore = Depends(get_store),
    ) -> dict[str, Any]:
        roles: RoleCatalog = request.app.state.roles

        # Admins may look at other users, so resolve the target, not the caller
        record = await store.get(user_id) or {}
        role = record.get(Attributes.ROLE) or DEFAULT_ROLE
        return {
            "userId": user_id,
            "role": role,
            "permissions": sorted(roles.resolve_permissions(role)),
            "limits": roles.get_limits(role).model_dump(by_alias=True),
        }

    @app.post("/users/{user_id}/resources/{resource_type}/{resource_id}/share")
    async def share(
        user_id: str,
        resource_type: str,
        resource_id: str,
        body: ShareResourceRequest,
        ctx: AuthContext = Depends(require_permission("user:update:self", "user_id")),
        store: UserStore = Depends(get_store),
    ) -> dict[str, Any]:
        if not ctx.can(f"{resource_type}:share"):
            raise HTTPException(status_code=403, detail=f"Permission denied: {resource_type}:share")

        await share_resource(store, user_id, body.target_user_id, resource_type, resource_id)
        return {
            "message": f"Shared {resource_type} {resource_id}",
            "ownerId": user_id,
            "targetUserId": body.target_user_id,
        }


app = create_app()
