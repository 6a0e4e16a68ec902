"""Selects the value mapper for a control from its concept datatype.

Built-in strategies are a closed dispatch over `ValueMapperKind`. Datatypes
outside it may be added through `register_value_mapper`, which must happen
before the first form is built. Datatypes with no strategy (Text, Numeric,
Date, ...) map to None: the widget works on the raw value.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional
import logging

from form_engine.errors import MAPPING_NO_STRATEGY
from form_engine.logic.value_mappers import (
    BooleanValueMapper,
    CodedMultiSelectValueMapper,
    CodedValueMapper,
)
from form_engine.models.constants import Datatype

logger = logging.getLogger(__name__)


class ValueMapperKind(str, Enum):
    BOOLEAN = "boolean"
    CODED = "coded"
    CODED_MULTI_SELECT = "codedMultiSelect"


def value_mapper_kind(control: Any) -> Optional[ValueMapperKind]:
    concept = getattr(control, "concept", None)
    datatype = getattr(concept, "datatype", None)
    if datatype == Datatype.BOOLEAN:
        return ValueMapperKind.BOOLEAN
    if datatype == Datatype.CODED:
        if control.properties.multi_select:
            return ValueMapperKind.CODED_MULTI_SELECT
        return ValueMapperKind.CODED
    return None


class ValueMapperStore:
    def __init__(self) -> None:
        self._builtin: Dict[ValueMapperKind, Any] = {}
        self._registered: Dict[str, Any] = {}
        self.init()

    def init(self) -> None:
        """Reset to the built-in strategies; drops registered ones."""
        self._builtin = {
            ValueMapperKind.BOOLEAN: BooleanValueMapper(),
            ValueMapperKind.CODED: CodedValueMapper(),
            ValueMapperKind.CODED_MULTI_SELECT: CodedMultiSelectValueMapper(),
        }
        self._registered = {}

    def register_value_mapper(self, datatype: str, mapper: Any) -> None:
        logger.info("value_mapper_registered datatype=%s mapper=%s", datatype, type(mapper).__name__)
        self._registered[datatype] = mapper

    def get_mapper(self, control: Any) -> Optional[Any]:
        concept = getattr(control, "concept", None)
        datatype = getattr(concept, "datatype", None)
        if datatype is None:
            return None
        kind = value_mapper_kind(control)
        if kind is not None:
            return self._builtin[kind]
        mapper = self._registered.get(datatype)
        if mapper is None:
            logger.debug("value_mapper_none datatype=%s code=%s", datatype, MAPPING_NO_STRATEGY["code"])
        return mapper


# Process-wide store; populated at import, read during form sessions
VALUE_MAPPER_STORE = ValueMapperStore()


__all__ = ["ValueMapperKind", "ValueMapperStore", "VALUE_MAPPER_STORE", "value_mapper_kind"]
