"""Request validation backed by pydantic models."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel

__all__ = ["RestValidator", "default_rest_validator"]

M = TypeVar("M", bound=BaseModel)


class RestValidator:
    """Validates raw request data against a model."""

    def validate(self, model: type[M], data: Any) -> M:
        """Return a validated model instance; raises ``pydantic.ValidationError``."""
        if isinstance(data, BaseModel):
            data = data.model_dump()
        return model.model_validate(data)


def default_rest_validator() -> RestValidator:
    """Return the validator used by default."""
    return RestValidator()