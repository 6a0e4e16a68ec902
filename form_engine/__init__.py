"""Observation tree and mapping engine for clinical data-entry forms.

Binds a form's static control metadata to previously persisted observations,
keeps the bound tree in sync as values are edited, validates edits and
flattens the tree back into a persistence payload. Value objects live in
`form_engine/models/`, behaviour in `form_engine/logic/`.
"""

from __future__ import annotations

from form_engine.logic.form_session import FormSession
from form_engine.logic.tree_builder import ControlRecordTreeBuilder

__all__ = ["FormSession", "ControlRecordTreeBuilder"]
