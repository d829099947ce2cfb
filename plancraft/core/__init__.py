"""Core building blocks shared by every other package."""

from plancraft.core.errors import (
    PlancraftError,
    ValidationError,
    InvalidStepError,
    InvalidFeatureError,
    AuthorizationError,
    UserNotFoundError,
)
from plancraft.core.events import (
    Event,
    EventBus,
    get_event_bus,
    reset_event_bus,
    onboarding_completed,
)
from plancraft.core.utils import utc_now, utc_now_iso

__all__ = [
    # Errors
    "PlancraftError",
    "ValidationError",
    "InvalidStepError",
    "InvalidFeatureError",
    "AuthorizationError",
    "UserNotFoundError",
    # Events
    "Event",
    "EventBus",
    "get_event_bus",
    "reset_event_bus",
    "onboarding_completed",
    # Utils
    "utc_now",
    "utc_now_iso",
]
