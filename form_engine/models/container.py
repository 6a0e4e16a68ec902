"""Bound value of sections and tables, which own no observation."""

from __future__ import annotations

from typing import ClassVar, Optional

from form_engine.models.base import FrozenModel


class ContainerSlot(FrozenModel):
    form_field_path: Optional[str] = None
    form_namespace: Optional[str] = None
    inactive: bool = False

    voided: ClassVar[bool] = False
    uuid: ClassVar[Optional[str]] = None
    value: ClassVar[None] = None

    def remove_uuids(self) -> "ContainerSlot":
        return self


__all__ = ["ContainerSlot"]
