"""Operations on a built control record tree.

Every operation returns a new root. Only the records on the path from the
changed node to the root are replaced; all other records are shared with the
previous tree.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
import logging

from form_engine.logic.controls_parser import setup_add_remove_buttons_for_add_more
from form_engine.logic.tree_builder import ControlRecordTreeBuilder
from form_engine.models.control import FormRef
from form_engine.models.control_record import ControlRecord
from form_engine.models.form_namespace import split_form_field_path
from form_engine.models.obs_list import ObsList

logger = logging.getLogger(__name__)


def find(tree: ControlRecord, form_field_path: str) -> Optional[ControlRecord]:
    if tree.form_field_path == form_field_path:
        return tree
    for child in tree.children:
        found = find(child, form_field_path)
        if found is not None:
            return found
    return None


def find_parent(tree: ControlRecord, form_field_path: str) -> Optional[ControlRecord]:
    for child in tree.children:
        if child.form_field_path == form_field_path:
            return tree
        found = find_parent(child, form_field_path)
        if found is not None:
            return found
    return None


def update(tree: ControlRecord, record: ControlRecord) -> ControlRecord:
    """Replace the record addressed like `record`, copying only its ancestors."""
    if tree.form_field_path == record.form_field_path:
        return record
    if not tree.children:
        return tree
    return tree.with_children(update(child, record) for child in tree.children)


def get_brothers(tree: ControlRecord, form_field_path: str) -> List[ControlRecord]:
    """Repeat instances of the control at `form_field_path`, in tree order."""
    parent = find_parent(tree, form_field_path)
    if parent is None:
        return []
    base = split_form_field_path(form_field_path)[0]
    return [c for c in parent.children if split_form_field_path(c.form_field_path)[0] == base]


def form_ref_for(tree: ControlRecord, form_field_path: Optional[str] = None) -> FormRef:
    """Recover the form identity from the first segment of a path."""
    root_segment = (tree.form_field_path or form_field_path or "").split("/", 1)[0]
    name, _, version = root_segment.rpartition(".")
    namespace = getattr(tree.obs, "form_namespace", None)
    return FormRef(name=name or root_segment, version=version, namespace=namespace)


def generate_next_tree(tree: ControlRecord, form_field_path: str, builder=None) -> Optional[ControlRecord]:
    """Fresh subtree for the next repeat instance of the record at `form_field_path`."""
    record = find(tree, form_field_path)
    if record is None:
        logger.warning("add_more_target_missing path=%s", form_field_path)
        return None
    brothers = get_brothers(tree, form_field_path)
    bound = record.mapper.add_more(record.obs, [b.form_field_path for b in brothers])
    builder = builder or ControlRecordTreeBuilder()
    form = form_ref_for(tree, form_field_path)
    return builder.build_record(form, record.control, bound, record.mapper, ())


def refresh_add_more_buttons(tree: ControlRecord, form_field_path: str) -> ControlRecord:
    brothers = [b for b in get_brothers(tree, form_field_path) if b.active]
    for brother in setup_add_remove_buttons_for_add_more(brothers):
        tree = update(tree, brother)
    return tree


def resync_from(tree: ControlRecord, form_field_path: Optional[str]) -> ControlRecord:
    """Re-derive group observations from their child records, up to the root."""
    node = find(tree, form_field_path) if form_field_path is not None else None
    while node is not None:
        if hasattr(node.mapper, "sync_members"):
            obs = node.mapper.sync_members(node.obs, [c.obs for c in node.children])
            if obs is not node.obs:
                tree = update(tree, node.with_obs(obs))
        if node.form_field_path == tree.form_field_path:
            break
        node = find_parent(tree, node.form_field_path)
    return tree


def add_more(tree: ControlRecord, form_field_path: str, builder=None) -> Tuple[ControlRecord, Optional[ControlRecord]]:
    """Insert the next repeat instance after the last existing one.

    Returns the new tree and the new record (None when the path is unknown).
    """
    new_record = generate_next_tree(tree, form_field_path, builder)
    if new_record is None:
        return tree, None
    parent = find_parent(tree, form_field_path)
    last = get_brothers(tree, form_field_path)[-1]
    children = []
    for child in parent.children:
        children.append(child)
        if child is last:
            children.append(new_record)
    tree = update(tree, parent.with_children(children))
    tree = refresh_add_more_buttons(tree, form_field_path)
    tree = resync_from(tree, parent.form_field_path)
    logger.info("add_more path=%s new_path=%s", form_field_path, new_record.form_field_path)
    return tree, find(tree, new_record.form_field_path)


def _is_persisted(record: ControlRecord) -> bool:
    obs = record.obs
    if isinstance(obs, ObsList):
        if any(o.uuid is not None for o in obs.obs_list):
            return True
    elif getattr(obs, "uuid", None) is not None:
        return True
    return any(_is_persisted(c) for c in record.children)


def _void_subtree(record: ControlRecord) -> ControlRecord:
    return record.evolve(
        obs=record.mapper.void(record.obs),
        active=False,
        children=tuple(_void_subtree(c) for c in record.children),
    )


def remove(tree: ControlRecord, form_field_path: str) -> ControlRecord:
    """Remove a repeat instance.

    Persisted records are voided and marked inactive so the deletion is
    saved; records never saved are dropped from the tree. Only instances
    offering "remove" can go, so the first active instance always stays as
    the anchor for the next add-more.
    """
    record = find(tree, form_field_path)
    parent = find_parent(tree, form_field_path)
    if record is None or parent is None:
        logger.warning("remove_target_missing path=%s", form_field_path)
        return tree
    others = [b for b in get_brothers(tree, form_field_path) if b is not record and b.active]
    if not record.active or not record.show_remove or not others:
        logger.warning("remove_refused path=%s", form_field_path)
        return tree
    if _is_persisted(record):
        replacement = _void_subtree(record)
        children = [replacement if c is record else c for c in parent.children]
        logger.info("remove_voided path=%s", form_field_path)
    else:
        children = [c for c in parent.children if c is not record]
        logger.info("remove_dropped path=%s", form_field_path)
    tree = update(tree, parent.with_children(children))
    if others:
        tree = refresh_add_more_buttons(tree, others[0].form_field_path)
    return resync_from(tree, parent.form_field_path)


def flatten_observations(tree: ControlRecord) -> List[Dict[str, Any]]:
    """Persistence payloads of every observation in the tree, containers flattened away."""
    out: List[Dict[str, Any]] = []

    def _walk(record: ControlRecord) -> None:
        if record.mapper is None or record.mapper.is_container:
            for child in record.children:
                _walk(child)
            return
        data = record.get_data()
        if data is None:
            return
        if isinstance(data, list):
            out.extend(data)
        else:
            out.append(data)

    _walk(tree)
    return out


def collect_errors(tree: ControlRecord) -> List[Dict[str, Any]]:
    """Blocking errors of active records; warnings and hidden fields never block."""
    errors: List[Dict[str, Any]] = []

    def _walk(record: ControlRecord) -> None:
        if not record.active:
            return
        for issue in record.get_errors():
            if issue.is_blocking:
                errors.append(
                    {
                        "formFieldPath": record.form_field_path,
                        "message": issue.message,
                        "severity": issue.severity,
                    }
                )
        for child in record.children:
            _walk(child)

    _walk(tree)
    return errors


__all__ = [
    "find",
    "find_parent",
    "update",
    "get_brothers",
    "form_ref_for",
    "generate_next_tree",
    "refresh_add_more_buttons",
    "resync_from",
    "add_more",
    "remove",
    "flatten_observations",
    "collect_errors",
]
