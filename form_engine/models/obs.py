"""Observation value object.

An `Obs` is one recorded value bound to a concept, or a group of member
observations. Every edit returns a new `Obs`; members that did not change are
the same objects in the old and the new version.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple
import logging

from pydantic import model_validator

from form_engine.models.base import FrozenModel
from form_engine.models.concept import Concept
from form_engine.models.form_namespace import get_updated_form_field_path
from form_engine.models.validation_issue import ValidationIssue

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """None, or a string that is empty after trimming."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _same_value(a: Any, b: Any) -> bool:
    # True == 1 in Python; a boolean answer and a numeric one are still different values
    return type(a) is type(b) and a == b


class Obs(FrozenModel):
    uuid: Optional[str] = None
    concept: Optional[Concept] = None
    value: Any = None
    comment: Optional[str] = None
    group_members: Tuple["Obs", ...] = ()
    voided: bool = False
    form_namespace: Optional[str] = None
    form_field_path: Optional[str] = None
    errors: Tuple[ValidationIssue, ...] = ()
    interpretation: Optional[str] = None
    observation_date_time: Optional[str] = None
    inactive: bool = False

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("groupMembers", "group_members", "errors"):
            if key in data and data[key] is None:
                data[key] = ()
        if data.get("voided"):
            data["value"] = None
        return data

    @classmethod
    def from_payload(cls, payload: dict) -> "Obs":
        return cls.model_validate(payload)

    def is_numeric(self) -> bool:
        return self.concept is not None and self.concept.is_numeric()

    def is_dirty(self, value: Any) -> bool:
        return not _same_value(self.value, value)

    def set_value(self, value: Any) -> "Obs":
        if is_blank(value):
            return self.void()
        if not self.voided and _same_value(self.value, value):
            return self
        return self.evolve(value=value, voided=False)

    def void(self) -> "Obs":
        if self.voided and self.value is None:
            return self
        return self.evolve(value=None, voided=True)

    def set_comment(self, comment: Optional[str]) -> "Obs":
        if is_blank(comment):
            comment = None
        if comment == self.comment:
            return self
        return self.evolve(comment=comment)

    def set_errors(self, errors) -> "Obs":
        errors = tuple(errors or ())
        if errors == self.errors:
            return self
        return self.evolve(errors=errors)

    def set_interpretation(self, interpretation: Optional[str]) -> "Obs":
        if interpretation == self.interpretation:
            return self
        return self.evolve(interpretation=interpretation)

    def _member_index(self, child: "Obs") -> int:
        for i, member in enumerate(self.group_members):
            if child.form_field_path is not None:
                if member.form_field_path == child.form_field_path:
                    return i
            elif member.concept is not None and child.concept is not None and member.concept.uuid == child.concept.uuid:
                return i
        return -1

    def add_group_member(self, child: "Obs") -> "Obs":
        """Replace the member addressed like `child`, or append it."""
        i = self._member_index(child)
        members = list(self.group_members)
        if i < 0:
            members.append(child)
        elif members[i] is child or members[i] == child:
            return self
        else:
            members[i] = child
        return self.evolve(group_members=tuple(members))

    def set_group_members(self, members) -> "Obs":
        members = tuple(members)
        if len(members) == len(self.group_members) and all(a is b for a, b in zip(members, self.group_members)):
            return self
        return self.evolve(group_members=members)

    def get_abnormal_child_obs(self) -> Optional["Obs"]:
        return next(
            (m for m in self.group_members if m.concept is not None and m.concept.is_abnormal()),
            None,
        )

    def get_numeric_child_obs(self) -> Optional["Obs"]:
        return next((m for m in self.group_members if m.is_numeric()), None)

    def clone_for_add_more(self, form_field_path: str) -> "Obs":
        """Empty, voided copy addressed at `form_field_path`.

        Members are cloned under the new path with their repeat index reset,
        so repeated members collapse into their first instance.
        """
        members = []
        seen = set()
        for m in self.group_members:
            if m.form_field_path is None:
                members.append(m.clone_for_add_more(None))
                continue
            path = get_updated_form_field_path(m.form_field_path, form_field_path, index=0)
            if path in seen:
                continue
            seen.add(path)
            members.append(m.clone_for_add_more(path))
        return Obs(
            concept=self.concept,
            form_field_path=form_field_path,
            form_namespace=self.form_namespace,
            group_members=tuple(members),
            voided=True,
        )

    def remove_uuids(self) -> "Obs":
        return self.evolve(
            uuid=None,
            group_members=tuple(m.remove_uuids() for m in self.group_members),
        )

    def get_object(self) -> dict:
        """Persistence payload; validation errors are not persisted."""
        payload = {
            "concept": self.concept.to_payload() if self.concept is not None else None,
            "formFieldPath": self.form_field_path,
            "formNamespace": self.form_namespace,
            "uuid": self.uuid,
            "value": self.value,
            "voided": self.voided,
        }
        if self.comment is not None:
            payload["comment"] = self.comment
        if self.interpretation is not None:
            payload["interpretation"] = self.interpretation
        if self.observation_date_time is not None:
            payload["observationDateTime"] = self.observation_date_time
        if self.inactive:
            payload["inactive"] = True
        if self.group_members:
            payload["groupMembers"] = [m.get_object() for m in self.group_members]
        return payload


Obs.model_rebuild()

__all__ = ["Obs", "is_blank"]
