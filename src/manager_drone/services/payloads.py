"""
Typed payloads for adapter actions.

Every named action has its own pydantic model listing required and optional
fields. Payloads are validated strictly before anything touches a backend:
unknown fields and wrong types are rejected, never coerced.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ErrorContext, InvalidPayloadError

P = TypeVar("P", bound="ActionPayload")


class ActionPayload(BaseModel):
    """Base class for action payloads."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)


class EmptyPayload(ActionPayload):
    """Action without parameters."""


# =============================================================================
# Vector database
# =============================================================================


class DescribeCollectionPayload(ActionPayload):
    collection_name: str = Field(min_length=1)


class MilvusSearchPayload(ActionPayload):
    """
    Vector search. ``query_vectors`` accepts one vector or a list of vectors;
    a single vector is wrapped so the backend always receives a batch.
    """

    collection_name: str = Field(min_length=1)
    query_vectors: list[list[float]] | list[float]
    vector_field: str = "embeddings"
    top_k: int = Field(default=5, gt=0)
    metric_type: str = "IP"
    params: dict[str, Any] = Field(default_factory=lambda: {"nprobe": 10})
    output_fields: list[str] = Field(default_factory=lambda: ["id"])

    @field_validator("query_vectors")
    @classmethod
    def _as_batch(cls, value: list[list[float]] | list[float]) -> list[list[float]]:
        if not value:
            raise ValueError("query_vectors must not be empty")
        if not isinstance(value[0], list):
            return [list(value)]  # type: ignore[arg-type]
        if any(not vector for vector in value):  # type: ignore[union-attr]
            raise ValueError("query vectors must not be empty")
        return value  # type: ignore[return-value]

    @property
    def vectors(self) -> list[list[float]]:
        return self.query_vectors  # type: ignore[return-value]


# =============================================================================
# Key-value store
# =============================================================================


class KeysPayload(ActionPayload):
    pattern: str = "*"


class GetPayload(ActionPayload):
    key: str = Field(min_length=1)


class SetPayload(ActionPayload):
    key: str = Field(min_length=1)
    value: str | int | float
    ex: int | None = Field(default=None, gt=0)  # seconds


class DelPayload(ActionPayload):
    keys: list[str] = Field(min_length=1)


class FtInfoPayload(ActionPayload):
    index: str = Field(min_length=1)


class FtSearchPayload(ActionPayload):
    index: str = Field(min_length=1)
    query: str
    options: list[str | int | float] = Field(default_factory=list)


class VectorSearchPayload(ActionPayload):
    """Approximate nearest-neighbor search over a search index."""

    index: str = Field(min_length=1)
    query_vectors: list[float] = Field(min_length=1)
    vector_field: str = "vector"
    top_k: int = Field(default=5, gt=0)
    return_fields: list[str] = Field(default_factory=list)


# =============================================================================
# Parsing
# =============================================================================


def _error_entries(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in exc.errors(include_url=False)
    ]


def parse_payload(model: type[P], payload: Any, *, action: str) -> P:
    """
    Validate a raw action payload against ``model``.

    ``None`` is treated as an empty payload.

    Raises:
        InvalidPayloadError: if the payload is not an object or fails validation
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidPayloadError(
            f"Payload for '{action}' must be an object, got {type(payload).__name__}",
            action=action,
            context=ErrorContext(action=action),
        )

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = _error_entries(exc)
        first = errors[0]
        field = ".".join(first["loc"]) or "payload"
        raise InvalidPayloadError(
            f"Invalid payload for '{action}': {field}: {first['msg']}",
            action=action,
            errors=errors,
            context=ErrorContext(action=action),
            cause=exc,
        ) from exc


__all__ = [
    "ActionPayload",
    "EmptyPayload",
    "DescribeCollectionPayload",
    "MilvusSearchPayload",
    "KeysPayload",
    "GetPayload",
    "SetPayload",
    "DelPayload",
    "FtInfoPayload",
    "FtSearchPayload",
    "VectorSearchPayload",
    "parse_payload",
]
