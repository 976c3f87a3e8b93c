from json_report_rows.dedupe import DedupState, dedupe_rows, value_signature
from json_report_rows.records import BuiltRow

from conftest import build_all

RESPONDER_A = ((("responders",), 0),)
RESPONDER_B = ((("responders",), 1),)


def test_owner_isolation_for_equal_personnel_names():
    record = {
        "incidentId": "I1",
        "responders": [
            {"agency": "A", "personnel": [{"name": "Bob"}, {"name": "Bob"}]},
            {"agency": "B", "personnel": [{"name": "Bob"}, {"name": "Bob"}]},
        ],
    }
    fields = ["incidentId", "responders.agency", "responders.personnel.name"]
    deduped = dedupe_rows(build_all(record, fields))
    names = [r.values["responders.personnel.name"] for r in deduped]
    agencies = [r.values["responders.agency"] for r in deduped]
    # Each person is its own owner: the name is never blanked by another person.
    assert names == ["Bob", "Bob", "Bob", "Bob"]
    assert agencies == ["A", "", "B", ""]


def test_scenario_rows_after_dedupe(responder_record, responder_fields):
    deduped = dedupe_rows(build_all(responder_record, responder_fields))
    assert [list(r.values.values()) for r in deduped] == [
        ["I1", "A", "Bob"],
        ["", "", "Sue"],
        ["", "B", "Bob"],
    ]


def test_same_owner_repeats_are_blanked(incident, incident_fields):
    deduped = dedupe_rows(build_all(incident, incident_fields))
    vehicle_types = [r.values["details.vehiclesInvolved.type"] for r in deduped]
    assert vehicle_types == ["Car", "", "Truck", "", "", ""]
    assert [r.values["incidentId"] for r in deduped] == ["INC-1", "", "", "", "", ""]


def test_every_owned_leaf_is_kept_exactly_once(incident, incident_fields):
    built = build_all(incident, incident_fields)
    deduped = dedupe_rows(built)

    def leaves(rows):
        return [
            (name, row.owners[name])
            for row in rows
            for name, value in row.values.items()
            if value != ""
        ]

    kept = leaves(deduped)
    assert len(kept) == len(set(kept))
    assert set(kept) == set(leaves(built))


def test_dedupe_is_idempotent(incident, incident_fields):
    once = dedupe_rows(build_all(incident, incident_fields))
    twice = dedupe_rows(once)
    assert [r.values for r in twice] == [r.values for r in once]


def test_dedupe_does_not_modify_its_input():
    rows = [
        BuiltRow("g", {"f": "x"}, {"f": ()}),
        BuiltRow("g", {"f": "x"}, {"f": ()}),
    ]
    out = dedupe_rows(rows)
    assert out[1].values["f"] == ""
    assert rows[1].values["f"] == "x"


def test_state_resets_when_group_changes():
    rows = [
        BuiltRow("I1", {"f": "x"}, {"f": ()}),
        BuiltRow("I2", {"f": "x"}, {"f": ()}),
        BuiltRow("I2", {"f": "x"}, {"f": ()}),
    ]
    assert [r.values["f"] for r in dedupe_rows(rows)] == ["x", "x", ""]


def test_different_owners_have_separate_windows():
    rows = [
        BuiltRow("I1", {"agency": "A"}, {"agency": RESPONDER_A}),
        BuiltRow("I1", {"agency": "A"}, {"agency": RESPONDER_B}),
        BuiltRow("I1", {"agency": "A"}, {"agency": RESPONDER_A}),
    ]
    assert [r.values["agency"] for r in dedupe_rows(rows)] == ["A", "A", ""]


def test_value_equality_is_type_aware():
    rows = [
        BuiltRow("g", {"f": 1}, {}),
        BuiltRow("g", {"f": True}, {}),
        BuiltRow("g", {"f": "1"}, {}),
        BuiltRow("g", {"f": 1}, {}),
    ]
    assert [r.values["f"] for r in dedupe_rows(rows)] == [1, True, "1", ""]
    assert value_signature(1) != value_signature(True)


def test_explicit_state_can_be_shared_across_calls():
    state = DedupState()
    first = dedupe_rows([BuiltRow("g", {"f": "x"}, {})], state)
    second = dedupe_rows([BuiltRow("g", {"f": "x"}, {})], state)
    assert first[0].values["f"] == "x"
    assert second[0].values["f"] == ""
