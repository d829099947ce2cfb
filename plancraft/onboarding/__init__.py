"""Onboarding: state model, transitions, validation."""

from plancraft.onboarding.models import (
    REQUIRED_STEPS,
    STEP_ORDER,
    STEP_TRANSITIONS,
    ExperienceLevel,
    FeatureName,
    FeatureStatus,
    OnboardingPreferences,
    OnboardingState,
    ProfileData,
    ProfileName,
    StepName,
    StepState,
    ValidationResult,
)
from plancraft.onboarding.state_machine import (
    advance_current_step,
    calculate_progress,
    get_next_recommended_step,
    get_valid_next_steps,
    initialize_onboarding,
    is_onboarding_complete,
    is_valid_step_transition,
    skip_onboarding,
    update_feature_status,
    update_step_completion,
)
from plancraft.onboarding.validation import (
    apply_step_data,
    validate_preferences,
    validate_profile,
    validate_step_data,
)

__all__ = [
    # Models
    "REQUIRED_STEPS",
    "STEP_ORDER",
    "STEP_TRANSITIONS",
    "ExperienceLevel",
    "FeatureName",
    "FeatureStatus",
    "OnboardingPreferences",
    "OnboardingState",
    "ProfileData",
    "ProfileName",
    "StepName",
    "StepState",
    "ValidationResult",
    # State machine
    "advance_current_step",
    "calculate_progress",
    "get_next_recommended_step",
    "get_valid_next_steps",
    "initialize_onboarding",
    "is_onboarding_complete",
    "is_valid_step_transition",
    "skip_onboarding",
    "update_feature_status",
    "update_step_completion",
    # Validation
    "apply_step_data",
    "validate_preferences",
    "validate_profile",
    "validate_step_data",
]
