"""
Onboarding state machine.

Pure functions over OnboardingState values. Every mutator returns a new
state; none of them touch storage. Handlers load the state from the user
record, call these, and write the result back.
"""

from __future__ import annotations

import math
from typing import Any

from plancraft.core.errors import InvalidFeatureError, InvalidStepError
from plancraft.core.utils import utc_now_iso
from plancraft.onboarding.models import (
    STEP_ORDER,
    STEP_TRANSITIONS,
    OnboardingState,
    ProfileName,
)


def initialize_onboarding(user_data: dict[str, Any] | None = None) -> OnboardingState:
    """
    Build a fresh onboarding state.

    ``user_data`` may carry ``firstName`` / ``lastName`` to pre-fill the
    profile; anything else in it is ignored.
    """
    state = OnboardingState()
    user_data = user_data or {}

    first_name = user_data.get("firstName")
    last_name = user_data.get("lastName")
    if first_name or last_name:
        state.profile.name = ProfileName(
            first_name=first_name or "",
            last_name=last_name or "",
        )

    return state


# =============================================================================
# Derived values
# =============================================================================


def calculate_progress(state: OnboardingState) -> int:
    """
    Percentage of required steps completed, rounded half up.

    A flow with no required steps counts as fully done.
    """
    required = [s for s in state.steps.values() if s.required]
    if not required:
        return 100

    completed = sum(1 for s in required if s.is_complete)
    return math.floor(100 * completed / len(required) + 0.5)


def is_onboarding_complete(state: OnboardingState) -> bool:
    """True when every required step is complete."""
    return all(s.is_complete for s in state.steps.values() if s.required)


def is_valid_step_transition(from_step: str, to_step: str) -> bool:
    return to_step in STEP_TRANSITIONS.get(from_step, ())


def get_valid_next_steps(state: OnboardingState, from_step: str) -> list[str]:
    """Transition targets from ``from_step`` that aren't complete yet."""
    return [
        step
        for step in STEP_TRANSITIONS.get(from_step, ())
        if step in state.steps and not state.steps[step].is_complete
    ]


def _ordered_steps(state: OnboardingState) -> list[str]:
    ordered = [step for step in STEP_ORDER if step in state.steps]
    # Unknown steps from older records go last, in stored order
    ordered.extend(step for step in state.steps if step not in STEP_ORDER)
    return ordered


def get_next_recommended_step(state: OnboardingState) -> str:
    """
    Where the user should go next.

    1. Stay on the current step while it's incomplete
    2. Otherwise the first incomplete required step
    3. Otherwise the first incomplete optional step
    4. Otherwise the last step
    """
    current = state.steps.get(state.current_step)
    if current is not None and not current.is_complete:
        return state.current_step

    ordered = _ordered_steps(state)

    for step in ordered:
        if state.steps[step].required and not state.steps[step].is_complete:
            return step

    for step in ordered:
        if not state.steps[step].required and not state.steps[step].is_complete:
            return step

    return ordered[-1] if ordered else state.current_step


# =============================================================================
# Mutators
# =============================================================================


def _refresh_completion(state: OnboardingState) -> None:
    """Recompute progress and flip top-level completion when it changes."""
    state.progress = calculate_progress(state)

    all_required_complete = is_onboarding_complete(state)
    if all_required_complete and not state.is_complete:
        state.is_complete = True
        state.completed_at = utc_now_iso()
    elif not all_required_complete and state.is_complete:
        state.is_complete = False
        state.completed_at = None


def update_step_completion(
    state: OnboardingState,
    step: str,
    is_complete: bool,
) -> OnboardingState:
    """
    Mark a step complete or incomplete.

    Raises:
        InvalidStepError: ``step`` is not in the state's steps
    """
    if step not in state.steps:
        raise InvalidStepError(step)

    updated = state.model_copy(deep=True)

    step_state = updated.steps[step]
    step_state.is_complete = is_complete
    step_state.completed_at = utc_now_iso() if is_complete else None

    _refresh_completion(updated)
    return updated


def skip_onboarding(state: OnboardingState) -> OnboardingState:
    """Mark every step, required or not, complete."""
    updated = state.model_copy(deep=True)

    now = utc_now_iso()
    for step_state in updated.steps.values():
        step_state.is_complete = True
        step_state.completed_at = now

    updated.progress = calculate_progress(updated)
    updated.is_complete = True
    updated.completed_at = now
    return updated


def advance_current_step(state: OnboardingState) -> OnboardingState:
    """
    Move ``current_step`` along the transition graph.

    Goes to the first not-yet-complete target of the current step; if there
    is none, the state comes back unchanged.
    """
    targets = get_valid_next_steps(state, state.current_step)
    if not targets:
        return state

    updated = state.model_copy(deep=True)
    updated.current_step = targets[0]
    return updated


def update_feature_status(
    state: OnboardingState,
    feature: str,
    introduced: bool | None = None,
    interacted: bool | None = None,
) -> OnboardingState:
    """
    Update a feature's introduction flags.

    ``None`` leaves a flag as it is; pass False to clear it.

    Raises:
        InvalidFeatureError: ``feature`` is not tracked
    """
    if feature not in state.features:
        raise InvalidFeatureError(feature)

    updated = state.model_copy(deep=True)
    status = updated.features[feature]

    if introduced is not None:
        status.introduced = introduced
    if interacted is not None:
        status.interacted = interacted

    return updated
