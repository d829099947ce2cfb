"""Services - orchestration over the user store."""

from plancraft.services.onboarding import OnboardingService

__all__ = [
    "OnboardingService",
]
