import copy
import logging

import pytest

from json_report_rows.config import ReportConfig
from json_report_rows.errors import ConfigurationError, ExpansionDepthError
from json_report_rows.flattening import (
    FlattenStats,
    generate_rows,
    generate_rows_from_config,
    preview_rows,
    rows_for_export,
)

from conftest import row


def test_responder_scenario(responder_record, responder_fields):
    rows = generate_rows([responder_record], responder_fields, "incidentId")
    assert rows == [
        row(responder_fields, "I1", "A", "Bob"),
        row(responder_fields, "", "", "Sue"),
        row(responder_fields, "", "B", "Bob"),
    ]


def test_same_name_under_two_responders_is_kept_twice(responder_fields):
    record = {
        "incidentId": "I1",
        "responders": [
            {"agency": "A", "personnel": [{"name": "Ann"}, {"name": "Bob"}]},
            {"agency": "B", "personnel": [{"name": "Bob"}]},
        ],
    }
    rows = generate_rows([record], responder_fields, "incidentId")
    names = [r["responders.personnel.name"] for r in rows]
    assert names.count("Bob") == 2
    assert rows == [
        row(responder_fields, "I1", "A", "Ann"),
        row(responder_fields, "", "", "Bob"),
        row(responder_fields, "", "B", "Bob"),
    ]


def test_empty_array_still_emits_scalar_row():
    record = {"incidentId": "I9", "type": "Fire", "advisories": []}
    fields = ["incidentId", "type", "advisories.type", "advisories.message"]
    rows = generate_rows([record], fields, "incidentId")
    assert rows == [row(fields, "I9", "Fire", "", "")]


def test_record_with_nothing_configured_yields_no_rows():
    rows = generate_rows([{"other": 1}], ["incidentId", "advisories.type"], "incidentId")
    assert rows == []


def test_full_incident(incident, incident_fields):
    rows = generate_rows([incident], incident_fields, "incidentId")
    assert rows == [
        row(incident_fields, "INC-1", "Collision", "Main St", "Car", "ABC1", 2, "L1, L2", "Detour", "Police", "Bob"),
        row(incident_fields, "", "", "", "Truck", "XYZ9", "", "", "", "", "Sue"),
        row(incident_fields, "", "", "", "", "", "", "", "", "Fire", "Ann"),
    ]


def test_records_are_grouped_independently(incident, incident_fields):
    second = copy.deepcopy(incident)
    second["incidentId"] = "INC-2"
    rows = generate_rows([incident, second], incident_fields, "incidentId")
    assert len(rows) == 6
    assert rows[3]["incidentId"] == "INC-2"
    # Same values in the next record are shown again.
    assert rows[3]["type"] == "Collision"
    assert rows[3]["details.vehiclesInvolved.type"] == "Car"


def test_records_with_the_same_group_value_stay_separate(responder_record, responder_fields):
    rows = generate_rows([responder_record, responder_record], responder_fields, "incidentId")
    assert len(rows) == 6
    assert rows[3] == rows[0]


def test_input_is_not_mutated(incident, incident_fields):
    snapshot = copy.deepcopy(incident)
    generate_rows([incident], incident_fields, "incidentId")
    assert incident == snapshot


def test_rows_hold_only_configured_fields_in_order(incident):
    fields = ["responders.agency", "incidentId"]
    rows = generate_rows([incident], fields, "incidentId")
    assert all(list(r) == fields for r in rows)
    assert rows == [row(fields, "Police", "INC-1"), row(fields, "Fire", "")]


def test_zip_mode():
    record = {
        "incidentId": "I1",
        "vehicles": [{"t": "Car"}, {"t": "Van"}],
        "advisories": [{"m": "Detour"}, {"m": "Slow"}],
    }
    fields = ["incidentId", "vehicles.t", "advisories.m"]
    assert generate_rows([record], fields, "incidentId", mode="zip") == [
        row(fields, "I1", "Car", "Detour"),
        row(fields, "", "Van", "Slow"),
    ]


def test_duplicate_fields_are_ignored(responder_record, caplog):
    with caplog.at_level(logging.WARNING):
        rows = generate_rows([responder_record], ["incidentId", "responders.agency", "incidentId"], "incidentId")
    assert list(rows[0]) == ["incidentId", "responders.agency"]
    assert "duplicate" in caplog.text


@pytest.mark.parametrize(
    "fields,group_key",
    [
        ([], "incidentId"),
        (["incidentId", ""], "incidentId"),
        (["incidentId"], ""),
        (["incidentId"], "type"),
        ("incidentId", "incidentId"),
    ],
)
def test_configuration_errors_fail_fast(fields, group_key):
    with pytest.raises(ConfigurationError):
        generate_rows([{"incidentId": "I1"}], fields, group_key)


def test_unknown_mode():
    with pytest.raises(ConfigurationError):
        generate_rows([{"incidentId": "I1"}], ["incidentId"], "incidentId", mode="diagonal")


def test_depth_error_aborts_whole_call(responder_record, responder_fields):
    with pytest.raises(ExpansionDepthError):
        generate_rows([{"incidentId": "ok"}, responder_record], responder_fields, "incidentId", max_depth=1)


def test_non_mapping_records_are_skipped(responder_record, responder_fields):
    stats = FlattenStats()
    rows = generate_rows(["junk", responder_record, None], responder_fields, "incidentId", stats=stats)
    assert len(rows) == 3
    assert stats.records_processed == 1
    assert stats.records_skipped == 2


def test_stats(incident, incident_fields, caplog):
    stats = FlattenStats()
    generate_rows([incident], incident_fields, "incidentId", stats=stats)
    assert stats.rows_before_merge == 6
    assert stats.rows_after_merge == 3
    assert stats.reduction_percent == pytest.approx(50.0)
    with caplog.at_level(logging.INFO):
        stats.log_summary()
    assert "rows_before_merge=6" in caplog.text


def test_from_config_and_preview(incident, incident_fields):
    config = ReportConfig(fields=incident_fields, separator=" / ")
    rows = generate_rows_from_config([incident], config)
    assert rows[0]["details.lanesBlocked"] == "L1 / L2"

    preview = preview_rows([incident, incident, incident], config, limit=2)
    assert len(preview) == 2
    assert preview == rows[:2]


def test_rows_for_export_renames_columns():
    rows = [{"incidentId": "I1", "responders.agency": "A"}]
    out = rows_for_export(rows, ["incidentId", "responders.agency"], {"responders.agency": "Agency"})
    assert out == [{"incidentId": "I1", "Agency": "A"}]
    assert list(out[0]) == ["incidentId", "Agency"]
