"""Obs group mapper: a group is voided iff every member is effectively voided."""

from __future__ import annotations

from typing import Any, Iterable, List, Sequence
import logging

from form_engine.logic.obs_mapper import ObsMapperBase
from form_engine.models.control import Control, FormRef
from form_engine.models.form_namespace import get_updated_form_field_path
from form_engine.models.obs import Obs
from form_engine.models.obs_list import ObsList

logger = logging.getLogger(__name__)


def is_effectively_voided(obs: Obs) -> bool:
    """A member group counts as voided only when all of its own members are."""
    if obs.group_members:
        return are_all_members_voided(obs.group_members)
    return obs.voided


def are_all_members_voided(members: Iterable[Obs]) -> bool:
    return all(is_effectively_voided(m) for m in members)


def _payload_voided(payload: dict) -> bool:
    members = payload.get("groupMembers")
    if members:
        return all(_payload_voided(m) for m in members)
    return bool(payload.get("voided"))


def member_obs(bound: Any) -> List[Obs]:
    """Observations a child's bound value contributes to its parent group.

    Labels and other concept-less controls contribute nothing.
    """
    if isinstance(bound, Obs):
        return [bound] if bound.concept is not None else []
    if isinstance(bound, ObsList):
        return list(bound.obs_list)
    return []


class ObsGroupMapper(ObsMapperBase):
    def bind_existing(self, form: FormRef, control: Control, matched: Sequence[Obs]) -> List[Any]:
        groups = []
        for group in matched:
            group = self._with_control_concept(control, group)
            if control.is_add_more():
                group = self._readdress_legacy_members(group)
            groups.append(group)
        return groups

    @staticmethod
    def _readdress_legacy_members(group: Obs) -> Obs:
        """Move members saved with flat paths ('F.1/2-1') under the group ('F.1/1-1/2-1')."""
        nested = f"{group.form_field_path}/"
        members = []
        for m in group.group_members:
            if m.form_field_path and not m.form_field_path.startswith(nested):
                m = m.evolve(form_field_path=get_updated_form_field_path(m.form_field_path, group.form_field_path))
            members.append(m)
        return group.set_group_members(members)

    def new_object(self, form: FormRef, control: Control, form_field_path: str) -> Obs:
        from form_engine.logic.mapper_store import MAPPER_STORE

        members: List[Obs] = []
        for child in control.controls:
            mapper = MAPPER_STORE.get_mapper(child)
            for bound in mapper.get_initial_object(form, child, (), form_field_path):
                members.extend(member_obs(bound))
        return Obs(
            concept=control.concept,
            form_field_path=form_field_path,
            form_namespace=form.form_namespace,
            group_members=tuple(members),
            voided=True,
        )

    @staticmethod
    def _with_voided(group: Obs) -> Obs:
        voided = are_all_members_voided(group.group_members)
        if voided == group.voided:
            return group
        return group.evolve(voided=voided)

    @staticmethod
    def _replace_list_members(group: Obs, obs_list: ObsList) -> Obs:
        path = obs_list.form_field_path
        members: List[Obs] = []
        placed = False
        for m in group.group_members:
            if m.form_field_path == path:
                if not placed:
                    members.extend(obs_list.obs_list)
                    placed = True
                continue
            members.append(m)
        if not placed:
            members.extend(obs_list.obs_list)
        return group.set_group_members(members)

    def put_member(self, group: Obs, child: Any) -> Obs:
        if isinstance(child, ObsList):
            return self._replace_list_members(group, child)
        return group.add_group_member(child)

    def set_value(self, bound: Obs, value: Any, errors: Iterable[Any] = ()) -> Obs:
        """Apply an edited member (`value`) and re-derive voided from all members."""
        return self._with_voided(self.put_member(bound, value))

    def sync_members(self, group: Obs, child_bounds: Iterable[Any]) -> Obs:
        """Rebuild members from the children's bound values, in control order."""
        members: List[Obs] = []
        for bound in child_bounds:
            members.extend(member_obs(bound))
        return self._with_voided(group.set_group_members(members))

    def void(self, bound: Obs) -> Obs:
        members = tuple(self._void_deep(m) for m in bound.group_members)
        return bound.set_group_members(members).void()

    def _void_deep(self, obs: Obs) -> Obs:
        if obs.group_members:
            return obs.set_group_members(self._void_deep(m) for m in obs.group_members).void()
        return obs.void()

    def get_value(self, bound: Obs) -> Any:
        return None

    def get_ui_value(self, control: Control, bound: Obs) -> Any:
        return None

    def get_data(self, record: Any):
        obs = record.obs
        members = []
        for child in record.children:
            data = child.get_data()
            if data is None:
                continue
            if isinstance(data, list):
                members.extend(data)
            else:
                members.append(data)
        if obs.uuid is None and not members:
            return None
        payload = obs.get_object()
        payload["groupMembers"] = members
        payload["voided"] = all(_payload_voided(m) for m in members)
        payload["inactive"] = not record.active
        return payload


__all__ = [
    "ObsGroupMapper",
    "is_effectively_voided",
    "are_all_members_voided",
    "member_obs",
]
