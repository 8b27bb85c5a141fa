"""Shared plumbing for the resource services."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from riddlenet.client.resource import ResilientResourceClient
from riddlenet.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_submission(model: type[ModelT], data: Any, action: str) -> ModelT:
    """Validate *data* against *model* before it is sent anywhere.

    Raises:
        ValidationError: With one entry per rejected field, keyed by field name.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors: dict[str, str] = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors[field] = err["msg"].removeprefix("Value error, ")
        raise ValidationError(
            f"{action} failed validation: {', '.join(errors.values())}", errors=errors
        ) from exc


def envelope_data(payload: Any) -> Any:
    """Return the ``data`` member of a response envelope, or the payload itself."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class ResourceService:
    """Base class binding a service to the resilient resource client."""

    def __init__(self, client: ResilientResourceClient) -> None:
        self._client = client
