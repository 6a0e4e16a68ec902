"""Abnormal obs group: a numeric member paired with a boolean "abnormal" flag.

Editing the numeric member recomputes the flag from the range warning of that
edit. Editing the flag directly keeps the user's choice until the next numeric
edit. A numeric member without a value voids the flag and the whole group.

When the group concept declares its set members, those decide which member is
the reading and which the flag; otherwise the members' own concepts do.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional
import logging

from form_engine.config import get_config
from form_engine.logic.obs_group_mapper import ObsGroupMapper
from form_engine.logic.validator import has_range_warning
from form_engine.models.concept import Concept
from form_engine.models.obs import Obs

logger = logging.getLogger(__name__)


def _member_for(group: Obs, concept: Optional[Concept]) -> Optional[Obs]:
    if concept is None:
        return None
    return next(
        (m for m in group.group_members if m.concept is not None and m.concept.uuid == concept.uuid),
        None,
    )


def numeric_member(group: Obs) -> Optional[Obs]:
    declared = group.concept.find_first_numeric_set_member() if group.concept is not None else None
    return _member_for(group, declared) or group.get_numeric_child_obs()


def abnormal_member(group: Obs) -> Optional[Obs]:
    declared = group.concept.get_abnormal_set_member() if group.concept is not None else None
    return _member_for(group, declared) or group.get_abnormal_child_obs()


def _is_numeric_edit(group: Obs, child: Any) -> bool:
    if not isinstance(child, Obs) or child.concept is None:
        return False
    numeric = numeric_member(group)
    if numeric is not None and numeric.concept is not None:
        return child.concept.uuid == numeric.concept.uuid
    return child.is_numeric()


class AbnormalObsGroupMapper(ObsGroupMapper):
    def _apply_numeric_edit(self, group: Obs, numeric: Obs, errors) -> Obs:
        if numeric.voided:
            return group.add_group_member(numeric.set_interpretation(None))
        flagged = has_range_warning(errors)
        interpretation = get_config().abnormal_interpretation if flagged else None
        updated = group.add_group_member(numeric.set_interpretation(interpretation))
        abnormal = abnormal_member(updated)
        if abnormal is not None:
            updated = updated.add_group_member(abnormal.set_value(flagged))
        logger.debug(
            "abnormal_flag_derived group=%s flagged=%s",
            group.form_field_path,
            flagged,
        )
        return updated

    def set_value(self, bound: Obs, value: Any, errors: Iterable[Any] = ()) -> Obs:
        child = value
        errors = tuple(errors or ())
        if _is_numeric_edit(bound, child):
            updated = self._apply_numeric_edit(bound, child, errors)
        else:
            updated = self.put_member(bound, child)

        # the flag means nothing without a reading
        numeric = numeric_member(updated)
        if numeric is not None and numeric.voided:
            abnormal = abnormal_member(updated)
            if abnormal is not None:
                updated = updated.add_group_member(abnormal.void())
        return self._with_voided(updated)


__all__ = ["AbnormalObsGroupMapper", "numeric_member", "abnormal_member"]
