"""Section and table mappers.

Containers own no observation. Their bound value is a `ContainerSlot` that
only addresses the container, and their payload aggregates the children
without a `value`.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence

from form_engine.logic.obs_mapper import ObsMapperBase
from form_engine.models.container import ContainerSlot
from form_engine.models.control import Control, FormRef
from form_engine.models.form_namespace import (
    get_key_prefix_for_control,
    next_form_field_path,
)


def _instance_indexes(observations: Iterable[Any], prefix: str) -> List[int]:
    """Repeat indexes of a container seen in the paths of `observations`."""
    found = set()
    stack = list(observations or ())
    while stack:
        obs = stack.pop()
        path = getattr(obs, "form_field_path", None) or ""
        if path.startswith(prefix):
            head = path[len(prefix):].split("/", 1)[0]
            if head.isdigit():
                found.add(int(head))
        stack.extend(getattr(obs, "group_members", ()))
    return sorted(found)


class ContainerMapper(ObsMapperBase):
    is_container = True

    def get_initial_object(
        self,
        form: FormRef,
        control: Control,
        observations: Iterable[Any],
        parent_form_field_path: Optional[str] = None,
    ) -> List[ContainerSlot]:
        prefix = get_key_prefix_for_control(form.name, form.version, control.id, parent_form_field_path)
        indexes = _instance_indexes(observations, prefix) or [0]
        return [self.new_object(form, control, f"{prefix}{i}") for i in indexes]

    def new_object(self, form: FormRef, control: Control, form_field_path: str) -> ContainerSlot:
        return ContainerSlot(form_field_path=form_field_path, form_namespace=form.form_namespace)

    def set_value(self, bound: ContainerSlot, value: Any, errors: Iterable[Any] = ()) -> ContainerSlot:
        return bound

    def get_value(self, bound: ContainerSlot) -> Any:
        return None

    def get_ui_value(self, control: Control, bound: ContainerSlot) -> Any:
        return None

    def void(self, bound: ContainerSlot) -> ContainerSlot:
        return bound

    def add_more(self, current: ContainerSlot, sibling_paths: Iterable[Optional[str]] = ()) -> ContainerSlot:
        path = next_form_field_path(current.form_field_path, sibling_paths)
        return current.evolve(form_field_path=path)

    def get_object(self, bound: ContainerSlot, controls: Sequence[Any] = ()) -> dict:
        return {
            "formFieldPath": bound.form_field_path,
            "controls": [c.get_object() for c in controls],
        }

    def get_data(self, record: Any) -> dict:
        controls = [d for d in (c.get_data() for c in record.children) if d is not None]
        return {"formFieldPath": record.obs.form_field_path, "controls": controls}


class SectionMapper(ContainerMapper):
    pass


class TableMapper(ContainerMapper):
    pass


__all__ = ["ContainerMapper", "SectionMapper", "TableMapper"]
