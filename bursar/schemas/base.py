"""Base schema classes, money types and the JSend envelope."""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimals stay exact in Python and travel as JSON numbers on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
Percent = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

SUCCESS = "success"
FAIL = "fail"
ERROR = "error"


class BaseResponse(BaseModel):
    """Base for response schemas: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseRequest(BaseModel):
    """Base for request bodies; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


def to_payload(value: Any) -> Any:
    """JSON-ready value using wire (alias) names for models."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [to_payload(item) for item in value]
    return value


def jsend_success(payload: BaseModel | None = None, **extra: Any) -> dict[str, Any]:
    """``{"status": "success", "data": {...}}``.

    ``payload`` fields are spread into ``data``; keyword arguments are added
    alongside them (``message=...``, ``report=model``...).
    """
    data: dict[str, Any] = to_payload(payload) if payload is not None else {}
    data.update({key: to_payload(value) for key, value in extra.items()})
    return {"status": SUCCESS, "data": data}


def jsend_fail(message: str) -> dict[str, Any]:
    """Client-caused failure envelope."""
    return {"status": FAIL, "data": {"message": message}}


def jsend_error(message: str) -> dict[str, Any]:
    """Server-caused error envelope."""
    return {"status": ERROR, "message": message}
