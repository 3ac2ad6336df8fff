"""
Request validation helpers.

Create operations accept either a request model or a plain mapping;
pydantic validation failures are reported as the engine's own
ValidationError so callers handle a single exception type.
"""

from typing import Any, Mapping, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from portability_engine.core.exceptions import ValidationError

RequestT = TypeVar("RequestT", bound=BaseModel)


def build_request(
    model: Type[RequestT],
    data: Union[RequestT, Mapping[str, Any]]
) -> RequestT:
    """Return ``data`` as a validated ``model`` instance."""
    if isinstance(data, model):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError(
            f"Expected {model.__name__} or a mapping, got {type(data).__name__}"
        )
    try:
        return model(**data)
    except PydanticValidationError as e:
        failed = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise ValidationError(
            f"Invalid {model.__name__}: {', '.join(failed)}",
            failed_checks=failed,
            details={"errors": e.errors(include_url=False)}
        ) from e


def require_tenant(tenant_id: str) -> str:
    if not tenant_id or not str(tenant_id).strip():
        raise ValidationError("tenant_id is required", failed_checks=["tenant_id"])
    return str(tenant_id).strip()
