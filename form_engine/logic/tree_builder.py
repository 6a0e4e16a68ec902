"""Builds the control record tree for one form render.

Walks the form metadata depth first. For every control the Mapper Store
chooses a mapper, the mapper reuses the persisted observations addressed to
the control (or creates an empty value), and the record is bound to a
renderer from the Component Store.

Only a malformed root raises (`MalformedMetadataError`). A control that
fails to bind is logged and replaced by a fallback record using the
unsupported renderer; the rest of the form still builds.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional
import logging

from pydantic import ValidationError as PydanticValidationError

from form_engine.errors import MalformedMetadataError, RECONCILIATION_FAILED
from form_engine.logic.component_store import COMPONENT_STORE, UNSUPPORTED_COMPONENT
from form_engine.logic.controls_parser import setup_add_remove_buttons_for_add_more
from form_engine.logic.mapper_store import MAPPER_STORE
from form_engine.models.constants import ControlKind, ControlType
from form_engine.models.container import ContainerSlot
from form_engine.models.control import Control, FormMetadata, FormRef
from form_engine.models.control_record import ControlRecord
from form_engine.models.form_namespace import form_root, get_key_prefix_for_control
from form_engine.models.obs import Obs
from form_engine.models.validation_issue import ValidationIssue

logger = logging.getLogger(__name__)


def parse_metadata(metadata: Any) -> FormMetadata:
    if isinstance(metadata, FormMetadata):
        return metadata
    if not isinstance(metadata, dict):
        raise MalformedMetadataError(f"form metadata must be an object, got {type(metadata).__name__}")
    try:
        return FormMetadata.model_validate(metadata)
    except PydanticValidationError as e:
        logger.error("form_metadata_invalid errors=%s", e.error_count())
        raise MalformedMetadataError(str(e)) from e


def parse_observations(observations: Any) -> List[Obs]:
    """Parse the persisted payload; entries that do not parse are skipped."""
    if observations is None:
        return []
    if not isinstance(observations, (list, tuple)):
        raise MalformedMetadataError("observations must be a list")
    parsed: List[Obs] = []
    for i, item in enumerate(observations):
        if isinstance(item, Obs):
            parsed.append(item)
            continue
        try:
            parsed.append(Obs.from_payload(item))
        except PydanticValidationError as e:
            logger.warning(
                "observation_skipped index=%s code=%s errors=%s",
                i,
                RECONCILIATION_FAILED["code"],
                e.error_count(),
            )
    return parsed


class ControlRecordTreeBuilder:
    def __init__(self, mapper_store=None, component_store=None) -> None:
        self.mapper_store = mapper_store or MAPPER_STORE
        self.component_store = component_store or COMPONENT_STORE

    def build(self, metadata: Any, observations: Any = None, namespace: Optional[str] = None) -> ControlRecord:
        """Return the root record; its children are the top-level controls in metadata order."""
        form_metadata = parse_metadata(metadata)
        parsed = parse_observations(observations)
        form = FormRef.from_metadata(form_metadata, namespace)
        logger.info(
            "tree_build_start form=%s version=%s controls=%s observations=%s",
            form.name,
            form.version,
            len(form_metadata.controls),
            len(parsed),
        )
        children = self.build_children(form, form_metadata.controls, parsed, None)
        root_path = form_root(form.name, form.version)
        root = ControlRecord(
            control=Control(id=form_metadata.id, type=ControlType.FORM, label=form.name),
            form_field_path=root_path,
            obs=ContainerSlot(form_field_path=root_path, form_namespace=form.form_namespace),
            mapper=self.mapper_store.get_mapper(Control(type=ControlType.SECTION)),
            children=tuple(children),
        )
        logger.info("tree_build_done form=%s records=%s", form.name, len(children))
        return root

    def build_children(
        self,
        form: FormRef,
        controls: Iterable[Control],
        observations: Iterable[Any],
        parent_form_field_path: Optional[str],
    ) -> List[ControlRecord]:
        observations = list(observations or ())
        records: List[ControlRecord] = []
        for control in controls:
            records.extend(self.build_control(form, control, observations, parent_form_field_path))
        return records

    def build_control(
        self,
        form: FormRef,
        control: Control,
        observations: List[Any],
        parent_form_field_path: Optional[str],
    ) -> List[ControlRecord]:
        """Records for every repeat instance of `control`, adjacent and in index order."""
        try:
            mapper = self.mapper_store.get_mapper(control)
            bounds = mapper.get_initial_object(form, control, observations, parent_form_field_path)
            records = [self.build_record(form, control, bound, mapper, observations) for bound in bounds]
        except Exception:
            logger.error(
                "tree_build_node_failed id=%s type=%s code=%s",
                control.id,
                control.type,
                RECONCILIATION_FAILED["code"],
                exc_info=True,
            )
            return [self._fallback_record(form, control, parent_form_field_path)]
        if control.is_add_more():
            records = setup_add_remove_buttons_for_add_more(records)
        return records

    def build_record(
        self,
        form: FormRef,
        control: Control,
        bound: Any,
        mapper: Any = None,
        observations: Iterable[Any] = (),
    ) -> ControlRecord:
        """Wrap one bound value and build its child records underneath it."""
        mapper = mapper or self.mapper_store.get_mapper(control)
        path = bound.form_field_path
        children: List[ControlRecord] = []
        if control.controls and control.kind is not ControlKind.OBS_LIST:
            if mapper.is_container:
                candidates = observations
            else:
                candidates = getattr(bound, "group_members", ())
            children = self.build_children(form, control.controls, candidates, path)
        if hasattr(mapper, "sync_members"):
            bound = mapper.sync_members(bound, [c.obs for c in children])
        return ControlRecord(
            control=control,
            form_field_path=path,
            obs=bound,
            mapper=mapper,
            renderer=self.component_store.get_renderer(control),
            children=tuple(children),
            enabled=True,
            active=not getattr(bound, "inactive", False),
        )

    def _fallback_record(self, form: FormRef, control: Control, parent_form_field_path: Optional[str]) -> ControlRecord:
        prefix = get_key_prefix_for_control(form.name, form.version, control.id, parent_form_field_path)
        path = f"{prefix}0"
        return ControlRecord(
            control=control,
            form_field_path=path,
            obs=Obs(form_field_path=path, form_namespace=form.form_namespace, voided=True),
            mapper=self.mapper_store.get_mapper(Control(type=ControlType.UNSUPPORTED)),
            renderer=UNSUPPORTED_COMPONENT,
            errors=(ValidationIssue.warning(RECONCILIATION_FAILED["code"]),),
        )


__all__ = [
    "ControlRecordTreeBuilder",
    "parse_metadata",
    "parse_observations",
]
