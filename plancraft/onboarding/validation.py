"""
Validation of data submitted for onboarding steps.

Validators collect every problem instead of stopping at the first, so the
form can show them all at once. Input is the camelCase JSON the frontend
sends.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

import pydantic

from plancraft.core.errors import ValidationError
from plancraft.onboarding.models import (
    ExperienceLevel,
    OnboardingPreferences,
    OnboardingState,
    ProfileData,
    StepName,
    ValidationResult,
)

EXPERIENCE_LEVELS = tuple(level.value for level in ExperienceLevel)

PREFERENCE_FLAGS = ("showTutorials", "showTips", "enableEmailUpdates")

# Leading integer, the way browsers parse a team-size input
_LEADING_NUMBER = re.compile(r"[+-]?\d")


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_profile(profile: Mapping[str, Any] | ProfileData) -> ValidationResult:
    if isinstance(profile, ProfileData):
        profile = profile.model_dump(by_alias=True)

    errors: list[str] = []

    name = profile.get("name")
    if not isinstance(name, Mapping):
        name = {}

    if _is_blank(name.get("firstName")):
        errors.append("First name is required")

    if _is_blank(name.get("lastName")):
        errors.append("Last name is required")

    experience = profile.get("experience")
    if experience and experience not in EXPERIENCE_LEVELS:
        errors.append(f"Experience must be one of: {', '.join(EXPERIENCE_LEVELS)}")

    team_size = profile.get("teamSize")
    if isinstance(team_size, str):
        team_size = team_size.strip()
        if team_size and not _LEADING_NUMBER.match(team_size):
            errors.append("Team size must be a number")

    return ValidationResult.from_errors(errors)


def validate_preferences(preferences: Mapping[str, Any] | OnboardingPreferences) -> ValidationResult:
    if isinstance(preferences, OnboardingPreferences):
        preferences = preferences.model_dump(by_alias=True)

    errors = [
        f"{flag} must be a boolean"
        for flag in PREFERENCE_FLAGS
        if flag in preferences and not isinstance(preferences[flag], bool)
    ]
    return ValidationResult.from_errors(errors)


def validate_step_data(step: str, data: Mapping[str, Any]) -> ValidationResult:
    """Validate data for a step; steps without a schema accept anything."""
    if step == StepName.PROFILE.value:
        return validate_profile(data)
    if step == StepName.PREFERENCES.value:
        return validate_preferences(data)
    return ValidationResult(is_valid=True)


def apply_step_data(
    state: OnboardingState,
    step: str,
    data: Mapping[str, Any],
) -> OnboardingState:
    """
    Merge already-validated step data into a copy of the state.

    Profile and preferences data land in their own sections; anything else
    is kept under ``step_data[step]``.

    Raises:
        ValidationError: a field has the wrong type for its section
    """
    updated = state.model_copy(deep=True)

    try:
        _merge_step_data(updated, step, data)
    except pydantic.ValidationError as e:
        raise ValidationError.from_details(f"Invalid data for step '{step}'", e.errors())

    return updated


def _merge_step_data(updated: OnboardingState, step: str, data: Mapping[str, Any]) -> None:
    if step == StepName.PROFILE.value:
        current = updated.profile.model_dump(by_alias=True)
        merged = {**current, **data}
        if isinstance(data.get("name"), Mapping):
            merged["name"] = {**current["name"], **data["name"]}
        updated.profile = ProfileData.model_validate(merged)

    elif step == StepName.PREFERENCES.value:
        current = updated.preferences.model_dump(by_alias=True)
        updated.preferences = OnboardingPreferences.model_validate({**current, **data})

    else:
        updated.step_data[step] = {**updated.step_data.get(step, {}), **data}
