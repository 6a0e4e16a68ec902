"""Shared pydantic configuration for immutable engine value objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FrozenModel(BaseModel):
    """Frozen model with camelCase aliases for the JSON payload shape.

    Edits go through `model_copy(update=...)`, which keeps references to the
    untouched fields, so unchanged subtrees are shared between versions.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    def evolve(self, **changes):
        return self.model_copy(update=changes)


__all__ = ["FrozenModel"]
