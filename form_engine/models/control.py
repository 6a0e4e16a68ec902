"""Form metadata: the static control tree the engine binds observations to.

Metadata is read-only input. A child control that does not parse is replaced
by an ``unsupported`` control carrying only its id, so one bad node never
prevents the rest of the form from loading.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple
import logging

from pydantic import ConfigDict, ValidationError, field_validator

from form_engine.config import get_config
from form_engine.errors import UNSUPPORTED_CONTROL
from form_engine.models.base import FrozenModel
from form_engine.models.concept import Concept
from form_engine.models.constants import ControlKind, ControlType

logger = logging.getLogger(__name__)


class Location(FrozenModel):
    row: int = 0
    column: int = 0


class ControlProperties(FrozenModel):
    model_config = ConfigDict(extra="allow")

    location: Location = Location()
    mandatory: bool = False
    multi_select: bool = False
    abnormal: bool = False
    add_more: bool = False
    allow_future_dates: Optional[bool] = None
    notes: bool = False
    hide_label: bool = False

    @field_validator("location", mode="before")
    @classmethod
    def _default_location(cls, v: Any) -> Any:
        return Location() if v is None else v


def _parse_children(raw: Any) -> Tuple["Control", ...]:
    if raw is None:
        return ()
    children = []
    for child in raw:
        if isinstance(child, Control):
            children.append(child)
            continue
        try:
            children.append(Control.model_validate(child))
        except ValidationError as e:
            cid = child.get("id") if isinstance(child, dict) else None
            logger.warning(
                "control_parse_failed id=%s code=%s errors=%s",
                cid,
                UNSUPPORTED_CONTROL["code"],
                e.error_count(),
            )
            children.append(Control(id=cid, type=ControlType.UNSUPPORTED))
    return tuple(children)


class Control(FrozenModel):
    id: Any = None
    type: str
    concept: Optional[Concept] = None
    label: Any = None
    value: Any = None
    properties: ControlProperties = ControlProperties()
    controls: Tuple["Control", ...] = ()
    options: Tuple[Any, ...] = ()
    events: Optional[dict] = None
    units: Optional[str] = None

    @field_validator("properties", mode="before")
    @classmethod
    def _default_properties(cls, v: Any) -> Any:
        return ControlProperties() if v is None else v

    @field_validator("options", mode="before")
    @classmethod
    def _default_options(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("controls", mode="before")
    @classmethod
    def _lenient_children(cls, v: Any) -> Any:
        return _parse_children(v)

    @property
    def kind(self) -> ControlKind:
        """Resolve the control's shape; first match wins."""
        if self.properties.multi_select:
            return ControlKind.OBS_LIST
        if self.type == ControlType.SECTION:
            return ControlKind.SECTION
        if self.type == ControlType.TABLE:
            return ControlKind.TABLE
        if self.type == ControlType.OBS_GROUP:
            if self.properties.abnormal:
                return ControlKind.ABNORMAL_OBS_GROUP
            return ControlKind.OBS_GROUP
        return ControlKind.LEAF

    @property
    def concept_properties(self):
        return self.concept.properties if self.concept is not None else None

    def is_add_more(self) -> bool:
        return bool(self.properties.add_more)

    def get_label_name(self) -> Optional[str]:
        if isinstance(self.label, dict):
            return self.label.get("value")
        return self.label


class FormMetadata(FrozenModel):
    id: Any = None
    uuid: Optional[str] = None
    name: str
    version: Any = "1"
    controls: Tuple[Control, ...] = ()

    @field_validator("controls", mode="before")
    @classmethod
    def _lenient_children(cls, v: Any) -> Any:
        return _parse_children(v)


class FormRef(FrozenModel):
    """Identity of the form a control belongs to; roots every formFieldPath."""

    name: str
    version: Any = "1"
    namespace: Optional[str] = None

    @classmethod
    def from_metadata(cls, metadata: FormMetadata, namespace: Optional[str] = None) -> "FormRef":
        return cls(name=metadata.name, version=metadata.version, namespace=namespace)

    @property
    def form_namespace(self) -> str:
        return self.namespace or get_config().form_namespace


Control.model_rebuild()
FormMetadata.model_rebuild()

__all__ = ["Location", "ControlProperties", "Control", "FormMetadata", "FormRef"]
