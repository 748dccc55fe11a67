"""
Pydantic models and constants describing resource types.

``ResourceConfig`` is the per-type configuration record consumed by the
model and collection resolvers. Event labels are plain strings; the
constants below are the ones the resolvers emit.
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

READ = "read"
READY = "ready"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"

DEFAULT_KEY_FIELDS = ("id", "uid", "uuid")


class ResourceConfig(BaseModel):
    """
    Configuration of one resource type.

    Attributes:
        dirname: Directory name used in resource paths (defaults to the
            lowercase class name)
        path_builder: Callable mapping a list of key components to a path;
            replaces the ``/dirname/key...`` rule when set
        max_age: Freshness window in seconds. ``None`` uses the client
            default, ``0`` refetches on every access
        references: Field name to referenced model class (or class name)
        key_fields: Candidate identifier fields, first present one wins
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    dirname: str | None = None
    path_builder: Callable[[list[Any]], str] | None = None
    max_age: float | None = Field(default=None, ge=0)
    references: dict[str, Any] = Field(default_factory=dict)
    key_fields: tuple[str, ...] = DEFAULT_KEY_FIELDS

    @field_validator("references")
    @classmethod
    def _check_references(cls, value: dict[str, Any]) -> dict[str, Any]:
        for field, target in value.items():
            if not isinstance(target, (str, type)):
                raise ValueError(f"Reference '{field}' must name a model class")
        return value

    @field_validator("key_fields")
    @classmethod
    def _check_key_fields(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("At least one key field is required")
        return value


__all__ = [
    "CREATE",
    "DELETE",
    "READ",
    "READY",
    "UPDATE",
    "ResourceConfig",
]
