"""Shared fixtures for the functional suite.

Every test starts from the built-in mapper, value-mapper and component
registries, a freshly loaded default configuration and an empty event
buffer. Form metadata and saved observations come from YAML files under
tests/fixtures/.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from form_engine.config import reset_config
from form_engine.logic.component_store import COMPONENT_STORE
from form_engine.logic.events import get_buffered_events
from form_engine.logic.mapper_store import MAPPER_STORE
from form_engine.logic.value_mapper_store import VALUE_MAPPER_STORE


FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"

_CONFIG_ENV = (
    "FORM_ENGINE_NAMESPACE",
    "FORM_ENGINE_ABNORMAL_CLASS",
    "FORM_ENGINE_ABNORMAL_INTERPRETATION",
    "FORM_ENGINE_LOG_LEVEL",
)


def load_yaml(name: str) -> Any:
    with open(FIXTURES / name, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def _reset_engine_state() -> None:
    reset_config()
    MAPPER_STORE.init()
    VALUE_MAPPER_STORE.init()
    COMPONENT_STORE.init()
    get_buffered_events(clear=True)


@pytest.fixture(autouse=True)
def engine_state(monkeypatch):
    for key in _CONFIG_ENV:
        monkeypatch.delenv(key, raising=False)
    _reset_engine_state()
    yield
    _reset_engine_state()


@pytest.fixture
def vitals_form():
    return load_yaml("vitals_form.yaml")


@pytest.fixture
def vitals_observations():
    return load_yaml("vitals_observations.yaml")


@pytest.fixture
def legacy_medication_observations():
    return load_yaml("legacy_medication_observations.yaml")


@pytest.fixture
def abnormal_group_control():
    """Abnormal group pairing a numeric reading (normal 60-100) with its flag."""
    return {
        "id": 1,
        "type": "obsGroupControl",
        "properties": {"abnormal": True},
        "concept": {"uuid": "c-bp", "name": "BP Data", "datatype": "N/A"},
        "controls": [
            {
                "id": 2,
                "type": "obsControl",
                "concept": {"uuid": "c-sbp", "name": "Systolic", "datatype": "Numeric", "lowNormal": 60, "hiNormal": 100},
            },
            {
                "id": 3,
                "type": "obsControl",
                "concept": {"uuid": "c-sbp-abn", "name": "Systolic Abnormal", "datatype": "Boolean", "conceptClass": "Abnormal"},
            },
        ],
    }
