"""Leaf obs mapper and the behaviour every obs mapper shares.

A mapper binds a control to its value object (an `Obs`, an `ObsList` or a
`ContainerSlot`), applies edits to it and flattens it to the persistence
payload. Mappers hold no state; one instance serves every control of its kind.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence
import logging

from form_engine.logic.value_mapper_store import VALUE_MAPPER_STORE
from form_engine.models.control import Control, FormRef
from form_engine.models.form_namespace import (
    find_observations_for_control,
    get_key_prefix_for_control,
    next_form_field_path,
)
from form_engine.models.obs import Obs

logger = logging.getLogger(__name__)


class ObsMapperBase:
    is_container = False

    def get_initial_object(
        self,
        form: FormRef,
        control: Control,
        observations: Iterable[Any],
        parent_form_field_path: Optional[str] = None,
    ) -> List[Any]:
        """Return one bound value per repeat instance of `control`.

        Persisted observations addressed to the control are reused; when none
        match, a single empty voided value at index 0 is created.
        """
        observations = list(observations or ())
        prefix = get_key_prefix_for_control(form.name, form.version, control.id, parent_form_field_path)
        matched = find_observations_for_control(observations, prefix)
        if not matched and parent_form_field_path:
            # members saved before paths were nested sit directly under the form root
            legacy_prefix = get_key_prefix_for_control(form.name, form.version, control.id)
            matched = find_observations_for_control(observations, legacy_prefix)
        if matched:
            return self.bind_existing(form, control, matched)
        return [self.new_object(form, control, f"{prefix}0")]

    def bind_existing(self, form: FormRef, control: Control, matched: Sequence[Obs]) -> List[Any]:
        return [self._with_control_concept(control, obs) for obs in matched]

    def new_object(self, form: FormRef, control: Control, form_field_path: str) -> Any:
        return Obs(
            concept=control.concept,
            form_field_path=form_field_path,
            form_namespace=form.form_namespace,
            voided=True,
        )

    @staticmethod
    def _with_control_concept(control: Control, obs: Obs) -> Obs:
        # form metadata carries the full concept (ranges, answers, class)
        if control.concept is None or obs.concept == control.concept:
            return obs
        return obs.evolve(concept=control.concept)

    def set_value(self, bound: Any, value: Any, errors: Iterable[Any] = ()) -> Any:
        return bound.set_value(value).set_errors(errors)

    def get_value(self, bound: Any) -> Any:
        return bound.value

    def get_ui_value(self, control: Control, bound: Any) -> Any:
        raw = self.get_value(bound)
        value_mapper = VALUE_MAPPER_STORE.get_mapper(control)
        if value_mapper is None:
            return raw
        return value_mapper.get_value(control, raw)

    def to_domain_value(self, control: Control, ui_value: Any) -> Any:
        value_mapper = VALUE_MAPPER_STORE.get_mapper(control)
        if value_mapper is None:
            return ui_value
        return value_mapper.set_value(control, ui_value)

    def set_comment(self, bound: Any, comment: Any) -> Any:
        return bound.set_comment(comment)

    def void(self, bound: Any) -> Any:
        return bound.void()

    def add_more(self, current: Any, sibling_paths: Iterable[Optional[str]] = ()) -> Any:
        path = next_form_field_path(current.form_field_path, sibling_paths)
        return current.clone_for_add_more(path)

    def get_object(self, bound: Any, controls: Sequence[Any] = ()) -> Any:
        return bound.get_object()

    def get_data(self, record: Any) -> Optional[dict]:
        obs = record.obs
        if obs is None or obs.concept is None:
            return None
        payload = obs.get_object()
        payload["inactive"] = not record.active
        return payload


class ObsMapper(ObsMapperBase):
    """Single-value control: the value replaces the old one, errors are attached."""


__all__ = ["ObsMapperBase", "ObsMapper"]
