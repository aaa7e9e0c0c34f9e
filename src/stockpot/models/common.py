"""Shared pydantic building blocks for Stockpot models."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Mapping, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from stockpot.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# Exact decimal in Python, JSON number on the wire.
Quantity = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases while keeping snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CamelInput(BaseModel):
    """Base model for validated write payloads (camelCase or snake_case keys accepted)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


def stringify_number(value: Any) -> Any:
    """Allow numeric JSON values where the model stores decimal-as-string."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def parse_payload(model: Type[ModelT], payload: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Validate a raw payload, re-raising pydantic failures as :class:`ValidationError`.

    The raised error lists every offending field by its camelCase alias.
    """

    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        fields: list[str] = []
        messages: list[str] = []
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ()) if not isinstance(part, int)]
            name = loc[0] if loc else "body"
            fields.append(name)
            messages.append(f"{name}: {error.get('msg', 'invalid value')}")
        raise ValidationError("; ".join(messages), fields) from exc


__all__ = [
    "Quantity",
    "CamelModel",
    "CamelInput",
    "stringify_number",
    "blank_to_none",
    "parse_payload",
]
