"""
Request bodies shared by the FastAPI routes and the Lambda handlers.

Flags are strict booleans: ``"false"`` is rejected, never read as truthy.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from plancraft.core.errors import ValidationError

RequestT = TypeVar("RequestT", bound=BaseModel)


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)


class UpdateStepRequest(_RequestModel):
    is_complete: bool | None = None
    step_data: dict[str, Any] | None = None
    move_to_next: bool = False


class UpdateFeatureRequest(_RequestModel):
    introduced: bool | None = None
    interacted: bool | None = None


class ShareResourceRequest(_RequestModel):
    target_user_id: str


def parse_request(model: type[RequestT], body: Mapping[str, Any]) -> RequestT:
    """Validate a decoded JSON body, raising our ValidationError on bad input."""
    try:
        return model.model_validate(body)
    except pydantic.ValidationError as e:
        raise ValidationError.from_details("Invalid request body", e.errors())
