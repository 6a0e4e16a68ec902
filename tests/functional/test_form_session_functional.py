"""Functional tests for form sessions: edit, add-more, remove and save payload.

The save payload must round-trip: building a session from it and flattening
again yields the same payload.
"""

from __future__ import annotations

from form_engine.logic.events import (
    CONTROL_ADDED,
    CONTROL_COMMENT_CHANGED,
    CONTROL_REMOVED,
    CONTROL_VALUE_CHANGED,
    get_buffered_events,
)
from form_engine.logic.form_session import FormSession


def _payload(session, path):
    return [p for p in session.get_value()["observations"] if p["formFieldPath"] == path]


def test_numeric_edit_updates_value_and_publishes(vitals_form):
    session = FormSession(vitals_form)
    before = session.tree
    tree = session.update_value("Vitals.1/1-0", 72)

    assert tree is session.tree
    assert tree is not before
    pulse = session.find("Vitals.1/1-0")
    assert pulse.get_value() == 72
    assert pulse.errors == ()
    assert session.get_errors() == []

    [event] = get_buffered_events()
    assert event["type"] == CONTROL_VALUE_CHANGED
    assert event["payload"] == {"formFieldPath": "Vitals.1/1-0", "value": 72, "errors": []}


def test_blocking_errors_are_reported(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/1-0", 7.5)
    assert session.get_errors() == [
        {"formFieldPath": "Vitals.1/1-0", "message": "allowDecimal", "severity": "error"}
    ]

    session.update_value("Vitals.1/1-0", "  ")
    assert session.find("Vitals.1/1-0").obs.voided is True
    assert [e["message"] for e in session.get_errors()] == ["mandatory"]

    session.update_value("Vitals.1/11-0/13-0", "2999-01-01")
    assert [e["formFieldPath"] for e in session.get_value()["errors"]] == ["Vitals.1/1-0", "Vitals.1/11-0/13-0"]


def test_out_of_range_systolic_flags_abnormal(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/2-0/3-0", 150)

    group = session.find("Vitals.1/2-0")
    assert group.obs.voided is False
    assert group.obs.get_abnormal_child_obs().value is True
    assert session.find("Vitals.1/2-0/4-0").get_value() == "Yes"
    systolic = session.find("Vitals.1/2-0/3-0")
    assert systolic.obs.interpretation == "ABNORMAL"
    assert [(e.message, e.severity) for e in systolic.errors] == [("allowRange", "warning")]
    # a range warning never blocks saving
    assert session.get_errors() == []


def test_explicit_flag_then_numeric_edit(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/2-0/3-0", 150)
    session.update_value("Vitals.1/2-0/4-0", "No")
    assert session.find("Vitals.1/2-0/4-0").get_value() == "No"
    assert session.find("Vitals.1/2-0").obs.get_abnormal_child_obs().value is False

    session.update_value("Vitals.1/2-0/3-0", 90)
    assert session.find("Vitals.1/2-0/4-0").get_value() == "No"
    session.update_value("Vitals.1/2-0/3-0", 160)
    assert session.find("Vitals.1/2-0/4-0").get_value() == "Yes"

    session.update_value("Vitals.1/2-0/3-0", "")
    assert session.find("Vitals.1/2-0").obs.voided is True
    assert session.find("Vitals.1/2-0/4-0").obs.voided is True


def test_untouched_records_are_shared_between_versions(vitals_form):
    session = FormSession(vitals_form)
    before = session.tree
    session.update_value("Vitals.1/2-0/3-0", 80)
    after = session.tree
    for old, new in zip(before.children, after.children):
        if old.form_field_path != "Vitals.1/2-0":
            assert old is new


def test_coded_and_multi_select_edits(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/5-0", "Fever")
    assert session.find("Vitals.1/5-0").get_value() == "Fever"
    [complaint] = _payload(session, "Vitals.1/5-0")
    assert complaint["value"]["uuid"] == "a-fever"

    session.update_value("Vitals.1/6-0", ["Cough", "Fever", "Cough", "Unknown"])
    assert session.find("Vitals.1/6-0").get_value() == ["Cough", "Fever"]
    assert [p["value"]["uuid"] for p in _payload(session, "Vitals.1/6-0")] == ["a-cough", "a-fever"]

    session.update_value("Vitals.1/5-0", "Not an answer")
    assert _payload(session, "Vitals.1/5-0") == []


def test_group_member_edit_reaches_group_payload(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/7-0/8-0", "Paracetamol")
    [medication] = _payload(session, "Vitals.1/7-0")
    assert medication["voided"] is False
    assert [(m["formFieldPath"], m["value"]) for m in medication["groupMembers"]] == [("Vitals.1/7-0/8-0", "Paracetamol")]


def test_save_payload_skips_labels_and_unsaved_blanks(vitals_form):
    session = FormSession(vitals_form)
    assert session.get_value() == {"observations": [], "errors": []}

    session.update_value("Vitals.1/1-0", 72)
    [pulse] = session.get_value()["observations"]
    assert pulse["formFieldPath"] == "Vitals.1/1-0"
    assert pulse["value"] == 72
    assert pulse["voided"] is False
    assert pulse["inactive"] is False
    assert pulse["formNamespace"] == "Bahmni"


def test_new_session_round_trip(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/1-0", 72)
    session.update_value("Vitals.1/2-0/3-0", 150)
    session.update_value("Vitals.1/5-0", "Headache")
    session.update_value("Vitals.1/6-0", ["Rash"])
    session.update_value("Vitals.1/7-0/8-0", "Paracetamol")
    session.update_value("Vitals.1/11-0/12-0", "Yes")
    saved = session.get_value()["observations"]
    assert len(saved) == 6

    reloaded = FormSession(vitals_form, saved)
    assert reloaded.get_value()["observations"] == saved
    assert reloaded.find("Vitals.1/2-0/4-0").get_value() == "Yes"
    assert reloaded.find("Vitals.1/11-0/12-0").get_value() == "Yes"


def test_saved_session_round_trip(vitals_form, vitals_observations):
    first = FormSession(vitals_form, vitals_observations).get_value()["observations"]
    second = FormSession(vitals_form, first).get_value()["observations"]
    assert second == first
    assert {p["uuid"] for p in first} >= {"obs-pulse", "obs-systolic-data", "obs-medication-0", "obs-medication-1", "obs-smoker"}


def test_add_more_and_remove_unsaved_instance(vitals_form):
    session = FormSession(vitals_form)
    record = session.add_more("Vitals.1/7-0")
    assert record.form_field_path == "Vitals.1/7-1"
    session.update_value("Vitals.1/7-1/8-0", "Ibuprofen")
    assert [p["formFieldPath"] for p in session.get_value()["observations"]] == ["Vitals.1/7-1"]

    session.remove("Vitals.1/7-1")
    assert session.find("Vitals.1/7-1") is None
    assert session.get_value()["observations"] == []

    events = [e["type"] for e in get_buffered_events()]
    assert events == [CONTROL_ADDED, CONTROL_VALUE_CHANGED, CONTROL_REMOVED]


def test_remove_saved_instance_persists_voided_inactive(vitals_form, vitals_observations):
    session = FormSession(vitals_form, vitals_observations)
    session.remove("Vitals.1/7-1")
    [medication] = _payload(session, "Vitals.1/7-1")
    assert medication["uuid"] == "obs-medication-1"
    assert medication["voided"] is True
    assert medication["inactive"] is True
    assert [(m["uuid"], m["voided"], m["inactive"]) for m in medication["groupMembers"]] == [("obs-drug-1", True, True)]


def test_invalid_targets_leave_tree_unchanged(vitals_form):
    session = FormSession(vitals_form)
    before = session.tree
    assert session.update_value("Vitals.1/99-0", 1) is before
    assert session.update_value("Vitals.1/11-0", 1) is before
    assert session.add_more("Vitals.1/99-0") is None
    assert session.remove("Vitals.1/99-0") is before
    assert get_buffered_events() == []


def test_group_records_reject_direct_edits(vitals_form):
    session = FormSession(vitals_form)
    before = session.tree
    assert session.update_value("Vitals.1/2-0", "x") is before
    assert session.update_value("Vitals.1/7-0", 12) is before
    assert session.update_comment("Vitals.1/2-0", "note") is before
    assert get_buffered_events() == []


def test_first_instance_of_a_repeat_family_stays(vitals_form, vitals_observations):
    session = FormSession(vitals_form)
    before = session.tree
    assert session.find("Vitals.1/7-0").show_remove is False
    assert session.remove("Vitals.1/7-0") is before
    assert session.find("Vitals.1/7-0") is not None

    session.add_more("Vitals.1/7-0")
    get_buffered_events()
    before = session.tree
    assert session.remove("Vitals.1/7-0") is before
    assert get_buffered_events() == []

    saved = FormSession(vitals_form, vitals_observations)
    before = saved.tree
    assert saved.remove("Vitals.1/7-0") is before
    [first] = _payload(saved, "Vitals.1/7-0")
    assert first["voided"] is False


def test_removed_instance_cannot_be_removed_again(vitals_form, vitals_observations):
    session = FormSession(vitals_form, vitals_observations)
    session.remove("Vitals.1/7-1")
    before = session.tree
    assert session.remove("Vitals.1/7-1") is before


def test_non_repeating_control_cannot_be_removed(vitals_form):
    session = FormSession(vitals_form)
    before = session.tree
    assert session.remove("Vitals.1/1-0") is before


def test_comment_is_saved_with_the_observation(vitals_form):
    session = FormSession(vitals_form)
    session.update_value("Vitals.1/1-0", 72)
    get_buffered_events()

    session.update_comment("Vitals.1/1-0", "taken after exercise")
    assert session.find("Vitals.1/1-0").obs.comment == "taken after exercise"
    [pulse] = _payload(session, "Vitals.1/1-0")
    assert pulse["comment"] == "taken after exercise"
    assert pulse["value"] == 72

    [event] = get_buffered_events()
    assert event["type"] == CONTROL_COMMENT_CHANGED
    assert event["payload"] == {"formFieldPath": "Vitals.1/1-0", "comment": "taken after exercise"}


def test_blank_comment_clears_it(vitals_form, vitals_observations):
    session = FormSession(vitals_form, vitals_observations)
    session.update_comment("Vitals.1/1-0", "recheck")
    session.update_comment("Vitals.1/1-0", "   ")
    assert session.find("Vitals.1/1-0").obs.comment is None
    [pulse] = _payload(session, "Vitals.1/1-0")
    assert "comment" not in pulse

    before = session.tree
    assert session.update_comment("Vitals.1/1-0", None) is before


def test_member_comment_reaches_group_without_touching_the_flag(vitals_form, vitals_observations):
    session = FormSession(vitals_form, vitals_observations)
    session.update_comment("Vitals.1/2-0/3-0", "left arm")

    group = session.find("Vitals.1/2-0")
    systolic = next(m for m in group.obs.group_members if m.form_field_path == "Vitals.1/2-0/3-0")
    assert systolic.interpretation == "ABNORMAL"
    assert systolic.comment == "left arm"
    assert session.find("Vitals.1/2-0/4-0").get_value() == "Yes"

    [payload] = _payload(session, "Vitals.1/2-0")
    members = {m["formFieldPath"]: m for m in payload["groupMembers"]}
    assert members["Vitals.1/2-0/3-0"]["comment"] == "left arm"
