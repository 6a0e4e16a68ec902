"""Registry of renderers by control type.

The engine never renders; it only records which renderer a record is bound
to. Lookups ignore case. Types without a renderer are bound to
`UNSUPPORTED_COMPONENT`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import logging

from form_engine.errors import UNSUPPORTED_CONTROL
from form_engine.models.constants import ControlType

logger = logging.getLogger(__name__)

UNSUPPORTED_COMPONENT = "UnsupportedComponent"

DEFAULT_COMPONENTS = {
    ControlType.OBS: "ObsControl",
    ControlType.OBS_GROUP: "ObsGroupControl",
    ControlType.SECTION: "Section",
    ControlType.TABLE: "Table",
    ControlType.LABEL: "Label",
}


class ComponentStore:
    def __init__(self) -> None:
        self.component_list: Dict[str, Any] = {}
        self.init()

    def init(self) -> None:
        self.component_list = {}
        for control_type, renderer in DEFAULT_COMPONENTS.items():
            self.register_component(control_type, renderer)

    def register_component(self, control_type: str, renderer: Any) -> None:
        self.component_list[control_type.lower()] = renderer

    def deregister_component(self, control_type: str) -> None:
        self.component_list.pop(control_type.lower(), None)

    def get_registered_component(self, control_type: Optional[str]) -> Optional[Any]:
        if not control_type:
            return None
        return self.component_list.get(control_type.lower())

    def get_renderer(self, control: Any) -> Any:
        control_type = getattr(control, "type", None)
        renderer = self.get_registered_component(control_type)
        if renderer is None:
            logger.warning(
                "component_missing type=%s id=%s code=%s",
                control_type,
                getattr(control, "id", None),
                UNSUPPORTED_CONTROL["code"],
            )
            return UNSUPPORTED_COMPONENT
        return renderer


COMPONENT_STORE = ComponentStore()


__all__ = ["ComponentStore", "COMPONENT_STORE", "UNSUPPORTED_COMPONENT", "DEFAULT_COMPONENTS"]
