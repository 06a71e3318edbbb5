"""Shared schema base classes and the response envelope."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys.

    Input accepts either camelCase or snake_case field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse[T](CamelModel):
    """Uniform response envelope: ``{success, data?, message?}``."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class MessageResponse(CamelModel):
    """Envelope for responses that carry only a message."""

    success: bool = True
    message: str | None = None


def ok[T](data: T, message: str | None = None) -> ApiResponse[T]:
    """Wrap a payload in a successful envelope."""
    return ApiResponse(data=data, message=message)


def ok_message(message: str) -> MessageResponse:
    return MessageResponse(message=message)
