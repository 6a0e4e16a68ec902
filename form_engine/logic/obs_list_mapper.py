"""Mapper for multi-select controls, bound to an `ObsList`.

Each selected answer is one element Obs; all elements of one instance share
the instance's formFieldPath. Deselecting a persisted answer voids its Obs so
the audit trail survives; deselecting an unsaved one drops it.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Iterable, List, Optional, Sequence
import logging

from form_engine.logic.obs_mapper import ObsMapperBase
from form_engine.models.control import Control, FormRef
from form_engine.models.form_namespace import next_form_field_path
from form_engine.models.obs import Obs
from form_engine.models.obs_list import ObsList

logger = logging.getLogger(__name__)


def _same_selection(a: Any, b: Any) -> bool:
    if isinstance(a, dict) and isinstance(b, dict):
        if a.get("uuid") is not None or b.get("uuid") is not None:
            return a.get("uuid") == b.get("uuid")
    return a == b


class ObsListMapper(ObsMapperBase):
    def _template(self, form: FormRef, control: Control, form_field_path: str) -> Obs:
        return super().new_object(form, control, form_field_path)

    def new_object(self, form: FormRef, control: Control, form_field_path: str) -> ObsList:
        return ObsList(
            form_field_path=form_field_path,
            form_namespace=form.form_namespace,
            obs=self._template(form, control, form_field_path),
        )

    def bind_existing(self, form: FormRef, control: Control, matched: Sequence[Obs]) -> List[ObsList]:
        by_path: "OrderedDict[str, List[Obs]]" = OrderedDict()
        for obs in matched:
            by_path.setdefault(obs.form_field_path, []).append(self._with_control_concept(control, obs))
        return [
            self.new_object(form, control, path).set_obs_list(elements)
            for path, elements in by_path.items()
        ]

    def set_value(self, bound: ObsList, value: Any, errors: Iterable[Any] = ()) -> ObsList:
        """Reconcile the elements with the selected domain values."""
        errors = tuple(errors or ())
        remaining = list(value or ())
        elements: List[Obs] = []
        for obs in bound.obs_list:
            match = next((v for v in remaining if _same_selection(obs.value, v)), None)
            if match is not None:
                remaining.remove(match)
                elements.append(obs.set_value(match).set_errors(errors))
                continue
            # deselected: persisted elements stay as voided, unsaved ones go
            if obs.uuid is not None:
                elements.append(obs.void())
        for selection in remaining:
            elements.append(bound.obs.set_value(selection).set_errors(errors))
        return bound.set_obs_list(elements)

    def get_value(self, bound: ObsList) -> Optional[List[Any]]:
        values = [o.value for o in bound.obs_list if not o.voided]
        return values or None

    def void(self, bound: ObsList) -> ObsList:
        return bound.void()

    def add_more(self, current: ObsList, sibling_paths: Iterable[Optional[str]] = ()) -> ObsList:
        path = next_form_field_path(current.form_field_path, sibling_paths)
        return current.clone_for_add_more(path)

    def remove(self, current: ObsList, index: int) -> ObsList:
        """Void the element at `index`; the element stays in the list."""
        if index < 0 or index >= len(current.obs_list):
            logger.warning("obs_list_remove_out_of_range path=%s index=%s", current.form_field_path, index)
            return current
        elements = list(current.obs_list)
        elements[index] = elements[index].void()
        return current.set_obs_list(elements)

    def get_object(self, bound: ObsList, controls: Sequence[Any] = ()) -> list:
        return bound.get_object()

    def get_data(self, record: Any) -> List[dict]:
        payloads = []
        for obs in record.obs.obs_list:
            payload = obs.get_object()
            payload["inactive"] = not record.active
            payloads.append(payload)
        return payloads


__all__ = ["ObsListMapper"]
