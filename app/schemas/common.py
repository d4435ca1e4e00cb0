from typing import Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.errors import ValidationError

T = TypeVar("T", bound=BaseModel)


class RequestModel(BaseModel):
    """Inbound payload: camelCase keys, trimmed strings, unknown keys rejected."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )


class ResponseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def first_error_message(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f'"{loc}" {error["msg"]}' if loc else error["msg"]


def validate_payload(schema: Type[T], payload) -> T:
    """Validate `payload` against `schema`; only the first violation is reported."""
    if payload is None:
        payload = {}
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(first_error_message(e))
