"""Concept and concept-answer value objects.

Accepts both the flattened form-metadata shape (``datatype: "Numeric"``) and
the raw dictionary shape where ``name``, ``datatype`` and ``conceptClass`` are
nested objects, so persisted payloads and form metadata parse alike.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from pydantic import ConfigDict, model_validator

from form_engine.config import get_config
from form_engine.models.base import FrozenModel
from form_engine.models.constants import Datatype


def _name_of(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("name") or value.get("display")
    return value


class ConceptProperties(FrozenModel):
    model_config = ConfigDict(extra="allow")

    allow_decimal: Optional[bool] = None


class ConceptAnswer(FrozenModel):
    uuid: Optional[str] = None
    name: Optional[str] = None
    display_string: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_name(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            name = data.get("name")
            if isinstance(name, dict):
                data["name"] = _name_of(name)
                data.setdefault("displayString", name.get("display") or data["name"])
            if data.get("displayString") is None and data.get("display") is not None:
                data["displayString"] = data["display"]
        return data

    @property
    def label(self) -> Optional[str]:
        return self.display_string or self.name

    def to_value(self) -> dict:
        """JSON-shaped reference stored as the value of a coded Obs."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Concept(FrozenModel):
    uuid: Optional[str] = None
    name: Optional[str] = None
    description: Any = None
    datatype: Optional[str] = None
    concept_class: Optional[str] = None
    concept_handler: Optional[str] = None
    units: Optional[str] = None
    hi_normal: Optional[float] = None
    low_normal: Optional[float] = None
    hi_absolute: Optional[float] = None
    low_absolute: Optional[float] = None
    answers: Tuple[ConceptAnswer, ...] = ()
    set_members: Tuple["Concept", ...] = ()
    properties: ConceptProperties = ConceptProperties()

    @model_validator(mode="before")
    @classmethod
    def _normalize_raw_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "datatype" not in data and "dataType" in data:
            data["datatype"] = data.pop("dataType")
        for key in ("name", "datatype", "conceptClass", "concept_class"):
            if isinstance(data.get(key), dict):
                data[key] = _name_of(data[key])
        if data.get("name") is None and data.get("display") is not None:
            data["name"] = data["display"]
        if "allowDecimal" in data and "properties" not in data:
            data["properties"] = {"allowDecimal": data.pop("allowDecimal")}
        for key in ("answers", "setMembers", "set_members"):
            if data.get(key) is None and key in data:
                data[key] = ()
        return data

    def is_numeric(self) -> bool:
        return self.datatype == Datatype.NUMERIC

    def is_boolean(self) -> bool:
        return self.datatype == Datatype.BOOLEAN

    def is_coded(self) -> bool:
        return self.datatype == Datatype.CODED

    def is_abnormal(self) -> bool:
        return self.concept_class == get_config().abnormal_concept_class

    def get_abnormal_set_member(self) -> Optional["Concept"]:
        return next((m for m in self.set_members if m.is_abnormal()), None)

    def find_first_numeric_set_member(self) -> Optional["Concept"]:
        return next((m for m in self.set_members if m.is_numeric()), None)

    def find_answer(self, label: Any) -> Optional[ConceptAnswer]:
        """Return the answer whose label, name or uuid equals `label`."""
        if label is None:
            return None
        for answer in self.answers:
            if label in (answer.label, answer.name, answer.uuid):
                return answer
        return None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


Concept.model_rebuild()

__all__ = ["Concept", "ConceptAnswer", "ConceptProperties"]
