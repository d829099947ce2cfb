"""
Error taxonomy.

Every error a caller is expected to handle derives from PlancraftError and
carries a short tag plus a human-readable message. HTTP layers render these
as-is and never include stack traces or storage details.

Permission denial is NOT an error: checks return False.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping


class PlancraftError(Exception):
    """Base class for expected, user-facing errors."""

    error = "error"
    status_code = 500

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.errors:
            body["errors"] = list(self.errors)
        return body


class ValidationError(PlancraftError):
    """Input the caller supplied is malformed."""

    error = "validation_error"
    status_code = 400

    @classmethod
    def from_details(cls, message: str, details: Iterable[Mapping[str, Any]]) -> ValidationError:
        """
        Build from pydantic-style error details (``loc``, ``msg``).

        The ``body`` prefix FastAPI puts on request locations is dropped.
        """
        errors = []
        for detail in details:
            loc = [str(part) for part in detail.get("loc", ()) if part != "body"]
            msg = detail.get("msg", "Invalid value")
            errors.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
        return cls(message, errors)


class InvalidStepError(ValidationError):
    """Step name is not part of the onboarding flow."""

    def __init__(self, step: str):
        super().__init__(f"Invalid onboarding step: {step}")
        self.step = step


class InvalidFeatureError(ValidationError):
    """Feature name is not tracked by onboarding."""

    def __init__(self, feature: str):
        super().__init__(f"Invalid feature: {feature}")
        self.feature = feature


class AuthorizationError(PlancraftError):
    """Caller may not perform a mutating operation."""

    error = "authorization_error"
    status_code = 403


class UserNotFoundError(PlancraftError):
    """No user record for the given id."""

    error = "not_found"
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__("User not found")
        self.user_id = user_id
