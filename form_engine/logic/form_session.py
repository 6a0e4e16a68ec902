"""Form session: one loaded form, edited through immutable tree updates.

`update_value` maps the widget value to a domain value, validates it, lets the
control's mapper apply it, and then lets every enclosing group mapper absorb
the edited member, producing a new root. `update_comment` follows the same
path without re-deriving group state. `get_value` flattens the tree into the
payload to persist.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from form_engine.logic import tree_mgr
from form_engine.logic.events import (
    CONTROL_ADDED,
    CONTROL_COMMENT_CHANGED,
    CONTROL_REMOVED,
    CONTROL_VALUE_CHANGED,
    publish,
)
from form_engine.logic.tree_builder import ControlRecordTreeBuilder
from form_engine.logic.validator import ValidationContext, get_errors, get_validations
from form_engine.models.control_record import ControlRecord
from form_engine.models.obs import Obs

logger = logging.getLogger(__name__)


def _prune_unsaved(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Drop voided observations that were never saved, members included."""
    if payload.get("uuid") is None and payload.get("voided"):
        return None
    members = payload.get("groupMembers")
    if members:
        kept = [m for m in (_prune_unsaved(m) for m in members) if m is not None]
        payload = dict(payload, groupMembers=kept)
    return payload


def _is_group(record: ControlRecord) -> bool:
    return hasattr(record.mapper, "put_member")


class FormSession:
    def __init__(self, metadata: Any, observations: Any = None, builder: ControlRecordTreeBuilder | None = None) -> None:
        self.builder = builder or ControlRecordTreeBuilder()
        self.tree: ControlRecord = self.builder.build(metadata, observations)

    def find(self, form_field_path: str) -> Optional[ControlRecord]:
        return tree_mgr.find(self.tree, form_field_path)

    def _editable(self, form_field_path: str) -> Optional[ControlRecord]:
        """The record at `form_field_path` if it holds a value of its own.

        Containers and obs groups only change through their members.
        """
        record = self.find(form_field_path)
        if record is None or record.mapper is None or record.mapper.is_container or _is_group(record):
            logger.warning("update_value_target_invalid path=%s", form_field_path)
            return None
        return record

    def validate(self, record: ControlRecord, value: Any):
        control = record.control
        validations = get_validations(control.properties, control.concept_properties, control.concept)
        return get_errors(value, validations, ValidationContext(concept=control.concept))

    def update_value(self, form_field_path: str, ui_value: Any) -> ControlRecord:
        """Apply a widget edit and return the new root."""
        record = self._editable(form_field_path)
        if record is None:
            return self.tree
        domain_value = record.mapper.to_domain_value(record.control, ui_value)
        errors = self.validate(record, domain_value)
        obs = record.mapper.set_value(record.obs, domain_value, errors)
        tree = tree_mgr.update(self.tree, record.with_obs(obs, errors))
        self.tree = self._propagate(tree, form_field_path, obs, errors)
        publish(
            CONTROL_VALUE_CHANGED,
            {"formFieldPath": form_field_path, "value": domain_value, "errors": [e.message for e in errors]},
        )
        return self.tree

    def update_comment(self, form_field_path: str, comment: Optional[str]) -> ControlRecord:
        """Attach a free-text comment to a single-value control; blank clears it."""
        record = self._editable(form_field_path)
        if record is None or not isinstance(record.obs, Obs):
            if record is not None:
                logger.warning("update_comment_target_invalid path=%s", form_field_path)
            return self.tree
        obs = record.mapper.set_comment(record.obs, comment)
        if obs is record.obs:
            return self.tree
        tree = tree_mgr.update(self.tree, record.with_obs(obs))
        self.tree = self._propagate(tree, form_field_path, obs, (), rederive=False)
        publish(CONTROL_COMMENT_CHANGED, {"formFieldPath": form_field_path, "comment": obs.comment})
        return self.tree

    def _propagate(self, tree: ControlRecord, form_field_path: str, child_obs: Any, errors, rederive: bool = True) -> ControlRecord:
        """Let each enclosing group mapper absorb the edited member.

        With `rederive` off the member is only put in place; voided state
        and the abnormal flag are left as they are.
        """
        parent = tree_mgr.find_parent(tree, form_field_path)
        while parent is not None:
            if _is_group(parent):
                if rederive:
                    group = parent.mapper.set_value(parent.obs, child_obs, errors)
                else:
                    group = parent.mapper.put_member(parent.obs, child_obs)
                parent = self._sync_child_records(parent.with_obs(group))
                tree = tree_mgr.update(tree, parent)
                child_obs = group
                # range warnings only concern the directly enclosing group
                errors = ()
            if parent.form_field_path == tree.form_field_path:
                break
            parent = tree_mgr.find_parent(tree, parent.form_field_path)
        return tree

    @staticmethod
    def _sync_child_records(record: ControlRecord) -> ControlRecord:
        """Re-bind leaf children to members a group mapper changed (e.g. the abnormal flag)."""
        members = {m.form_field_path: m for m in record.obs.group_members if m.form_field_path}
        children = []
        for child in record.children:
            member = members.get(child.form_field_path)
            if isinstance(child.obs, Obs) and member is not None and member is not child.obs:
                child = child.with_obs(member)
            children.append(child)
        return record.with_children(children)

    def add_more(self, form_field_path: str) -> Optional[ControlRecord]:
        """Add the next repeat instance; returns the new record."""
        self.tree, record = tree_mgr.add_more(self.tree, form_field_path, self.builder)
        if record is not None:
            publish(CONTROL_ADDED, {"formFieldPath": record.form_field_path, "source": form_field_path})
        return record

    def remove(self, form_field_path: str) -> ControlRecord:
        before = self.tree
        self.tree = tree_mgr.remove(self.tree, form_field_path)
        if self.tree is not before:
            publish(CONTROL_REMOVED, {"formFieldPath": form_field_path})
        return self.tree

    def get_errors(self) -> List[Dict[str, Any]]:
        return tree_mgr.collect_errors(self.tree)

    def get_value(self) -> Dict[str, Any]:
        """Payload to persist plus the blocking errors.

        Labels and other concept-less leaves are already absent from the
        flattened tree; voided observations that were never saved are dropped.
        """
        observations = []
        for payload in tree_mgr.flatten_observations(self.tree):
            pruned = _prune_unsaved(payload)
            if pruned is not None:
                observations.append(pruned)
        return {"observations": observations, "errors": self.get_errors()}


__all__ = ["FormSession"]
