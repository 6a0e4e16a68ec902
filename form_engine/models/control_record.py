"""Runtime binding of one control to its bound value and UI flags.

Records form a tree mirroring the metadata. Each record is frozen; an edit
replaces the records on the path from the edited node to the root and keeps
every other record as is.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from form_engine.models.base import FrozenModel
from form_engine.models.control import Control
from form_engine.models.validation_issue import ValidationIssue


class ControlRecord(FrozenModel):
    control: Control
    form_field_path: Optional[str] = None
    obs: Any = None
    mapper: Any = None
    renderer: Optional[str] = None
    children: Tuple["ControlRecord", ...] = ()
    errors: Tuple[ValidationIssue, ...] = ()
    enabled: bool = True
    hidden: bool = False
    active: bool = True
    show_add_more: bool = False
    show_remove: bool = False

    def get_concept_name(self) -> Optional[str]:
        concept = self.control.concept
        return concept.name if concept is not None else None

    def get_label_name(self) -> Optional[str]:
        return self.control.get_label_name()

    def get_control_id(self) -> Any:
        return self.control.id

    def get_errors(self) -> Tuple[ValidationIssue, ...]:
        # hidden or disabled fields never block a save
        if self.hidden or not self.enabled:
            return ()
        return self.errors

    @property
    def voided(self) -> bool:
        return bool(getattr(self.obs, "voided", False))

    def get_value(self) -> Any:
        """Value as the widget shows it."""
        return self.mapper.get_ui_value(self.control, self.obs)

    def get_object(self) -> Any:
        return self.mapper.get_object(self.obs, self.children)

    def get_data(self) -> Any:
        return self.mapper.get_data(self)

    def with_obs(self, obs: Any, errors=None) -> "ControlRecord":
        changes = {}
        if obs is not self.obs:
            changes["obs"] = obs
        if errors is not None and tuple(errors) != self.errors:
            changes["errors"] = tuple(errors)
        return self.evolve(**changes) if changes else self

    def with_children(self, children) -> "ControlRecord":
        children = tuple(children)
        if len(children) == len(self.children) and all(a is b for a, b in zip(children, self.children)):
            return self
        return self.evolve(children=children)

    def get_active(self) -> Optional["ControlRecord"]:
        """Copy of this subtree without inactive records; None when self is inactive."""
        if not self.active:
            return None
        kept = [c.get_active() for c in self.children]
        return self.with_children(c for c in kept if c is not None)

    def remove_obs_uuids(self) -> "ControlRecord":
        obs = self.obs.remove_uuids() if self.obs is not None else None
        return self.evolve(
            obs=obs,
            children=tuple(c.remove_obs_uuids() for c in self.children),
        )


ControlRecord.model_rebuild()

__all__ = ["ControlRecord"]
