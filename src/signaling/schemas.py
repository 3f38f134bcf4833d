"""Pydantic schemas for signaling events exchanged with browser clients."""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from signaling.errors import MalformedEventError


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Name may not be empty.")
    return value


DisplayName = Annotated[str, AfterValidator(_not_blank)]


class Envelope(BaseModel):
    """One WebSocket frame: a named event and its payload."""

    event: str = Field(min_length=1)
    data: Any = None


class _AddressedPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: DisplayName = Field(alias="from")
    to: DisplayName


class OfferPayload(_AddressedPayload):
    offer: Any

    @field_validator("offer")
    @classmethod
    def offer_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Offer may not be empty.")
        return value


class AuthAckPayload(_AddressedPayload):
    accepted: bool


class AnswerPayload(_AddressedPayload):
    answer: Any

    @field_validator("answer")
    @classmethod
    def answer_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Answer may not be empty.")
        return value


class EndCallPayload(_AddressedPayload):
    """Reserved `end-call` event; the reference client never sends it."""


_JOIN_ADAPTER = TypeAdapter(DisplayName)
_PAIR_ADAPTER = TypeAdapter(tuple[DisplayName, DisplayName])

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedEventError(f"Invalid {model.__name__}: {exc.error_count()} error(s)") from exc


def parse_display_name(data: Any) -> str:
    try:
        return _JOIN_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise MalformedEventError("Display name must be a non-empty string.") from exc


def parse_call_pair(data: Any) -> tuple[str, str]:
    try:
        return _PAIR_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise MalformedEventError("Call pair must be [from, to].") from exc


def parse_envelope(data: Any) -> Envelope:
    try:
        return Envelope.model_validate(data)
    except ValidationError as exc:
        raise MalformedEventError("Frame must be an object with an `event` name.") from exc
