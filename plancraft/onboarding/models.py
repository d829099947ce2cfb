"""
Onboarding data models.

The onboarding document lives embedded in the user record under
``onboarding``. Attributes are snake_case in Python and camelCase on the
record (``isComplete``, ``currentStep``, ``firstName``...), which is what the
frontend reads.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================


class StepName(str, Enum):
    """Onboarding steps, in flow order."""

    PROFILE = "profile"
    PREFERENCES = "preferences"
    PROJECT_SETUP = "projectSetup"
    FEATURE_INTRO = "featureIntro"
    INTEGRATIONS = "integrations"


class FeatureName(str, Enum):
    """Product features introduced during onboarding."""

    PLAN_GENERATION = "planGeneration"
    CLAUDE_ASSISTANT = "claudeAssistant"
    PROJECT_MANAGEMENT = "projectManagement"
    CODE_GENERATION = "codeGeneration"
    DEPLOYMENT = "deployment"


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


STEP_ORDER: tuple[str, ...] = tuple(step.value for step in StepName)

REQUIRED_STEPS: frozenset[str] = frozenset({
    StepName.PROFILE.value,
    StepName.PREFERENCES.value,
    StepName.PROJECT_SETUP.value,
})

# Which steps may follow which
STEP_TRANSITIONS: dict[str, tuple[str, ...]] = {
    StepName.PROFILE.value: (StepName.PREFERENCES.value, StepName.PROJECT_SETUP.value),
    StepName.PREFERENCES.value: (StepName.PROJECT_SETUP.value, StepName.FEATURE_INTRO.value),
    StepName.PROJECT_SETUP.value: (StepName.FEATURE_INTRO.value, StepName.INTEGRATIONS.value),
    StepName.FEATURE_INTRO.value: (StepName.INTEGRATIONS.value,),
    StepName.INTEGRATIONS.value: (),
}


# =============================================================================
# Models
# =============================================================================


class _RecordModel(BaseModel):
    """Base for models stored on the user record with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepState(_RecordModel):
    """Completion state of one step."""

    is_complete: bool = False
    completed_at: str | None = None
    required: bool = False


class ProfileName(_RecordModel):
    first_name: str = ""
    last_name: str = ""


class ProfileData(_RecordModel):
    """Profile details collected in the profile step."""

    name: ProfileName = Field(default_factory=ProfileName)
    job_title: str = ""
    company: str = ""
    industry: str = ""
    team_size: str = ""  # numeric string, e.g. "12"
    experience: str = ""  # beginner, intermediate, advanced
    use_cases: list[str] = Field(default_factory=list)

    @field_validator("team_size", mode="before")
    @classmethod
    def _team_size_as_string(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class FeatureStatus(_RecordModel):
    introduced: bool = False
    interacted: bool = False


class OnboardingPreferences(_RecordModel):
    show_tutorials: bool = True
    show_tips: bool = True
    enable_email_updates: bool = True


def default_steps() -> dict[str, StepState]:
    return {step: StepState(required=step in REQUIRED_STEPS) for step in STEP_ORDER}


def default_features() -> dict[str, FeatureStatus]:
    return {feature.value: FeatureStatus() for feature in FeatureName}


class OnboardingState(_RecordModel):
    """
    A user's onboarding progress.

    Treat instances as values: the state machine functions return new
    states and never modify the one they are given.
    """

    is_complete: bool = False
    completed_at: str | None = None
    current_step: str = StepName.PROFILE.value
    progress: int = 0

    steps: dict[str, StepState] = Field(default_factory=default_steps)
    profile: ProfileData = Field(default_factory=ProfileData)
    features: dict[str, FeatureStatus] = Field(default_factory=default_features)
    preferences: OnboardingPreferences = Field(default_factory=OnboardingPreferences)

    # Free-form data submitted for steps without a dedicated section
    step_data: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase shape stored on the user record."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> OnboardingState:
        """Load from the stored shape."""
        return cls.model_validate(data)


class ValidationResult(BaseModel):
    """Outcome of validating user-supplied step data."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=errors)
