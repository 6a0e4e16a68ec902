"""Selects the obs mapper for a control.

Dispatch is on `Control.kind`, in order: multi-select, section, table,
abnormal group, group. Plain controls fall through to a mapper registered for
their type, else to `ObsMapper`, so a mapper is always returned.

Registrations must happen before the first form is built; `init()` restores
the built-ins and drops them.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from form_engine.logic.abnormal_obs_group_mapper import AbnormalObsGroupMapper
from form_engine.logic.container_mappers import SectionMapper, TableMapper
from form_engine.logic.obs_group_mapper import ObsGroupMapper
from form_engine.logic.obs_list_mapper import ObsListMapper
from form_engine.logic.obs_mapper import ObsMapper
from form_engine.models.constants import ControlKind
from form_engine.models.control import Control

logger = logging.getLogger(__name__)

# Same thing from the dispatcher's side
MapperKind = ControlKind


def builtin_mappers() -> Dict[ControlKind, Any]:
    return {
        ControlKind.LEAF: ObsMapper(),
        ControlKind.OBS_GROUP: ObsGroupMapper(),
        ControlKind.ABNORMAL_OBS_GROUP: AbnormalObsGroupMapper(),
        ControlKind.OBS_LIST: ObsListMapper(),
        ControlKind.SECTION: SectionMapper(),
        ControlKind.TABLE: TableMapper(),
    }


class MapperStore:
    def __init__(self) -> None:
        self._builtin: Dict[ControlKind, Any] = {}
        self._registered: Dict[str, Any] = {}
        self.init()

    def init(self) -> None:
        self._builtin = builtin_mappers()
        self._registered = {}

    def register_mapper(self, control_type: str, mapper: Any) -> None:
        logger.info("mapper_registered type=%s mapper=%s", control_type, type(mapper).__name__)
        self._registered[control_type] = mapper

    def get_mapper(self, control: Control) -> Any:
        kind = control.kind
        if kind is ControlKind.LEAF and control.type in self._registered:
            return self._registered[control.type]
        return self._builtin[kind]


# Process-wide store; populated at import, read during form sessions
MAPPER_STORE = MapperStore()


__all__ = ["MapperKind", "MapperStore", "MAPPER_STORE", "builtin_mappers"]
