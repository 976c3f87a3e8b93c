import copy

import pytest

from json_report_rows.config import parse_field_config
from json_report_rows.expansion import expand_record
from json_report_rows.records import build_row


INCIDENT = {
    "incidentId": "INC-1",
    "type": "Collision",
    "status": "Open",
    "location": {"road": "Main St", "direction": "North"},
    "details": {
        "vehiclesInvolved": [
            {"type": "Car", "plateNumber": {"serial": "ABC1", "region": "CA"}},
            {"type": "Truck", "plateNumber": {"serial": "XYZ9", "region": "NV"}},
        ],
        "casualties": 2,
        "lanesBlocked": ["L1", "L2"],
    },
    "advisories": [{"type": "Detour", "message": "Use 5th Ave"}],
    "responders": [
        {
            "agency": "Police",
            "personnel": [
                {"name": "Bob", "role": "Officer"},
                {"name": "Sue", "role": "Sergeant"},
            ],
        },
        {"agency": "Fire", "personnel": [{"name": "Ann", "role": "Chief"}]},
    ],
}

INCIDENT_FIELDS = [
    "incidentId",
    "type",
    "location.road",
    "details.vehiclesInvolved.type",
    "details.vehiclesInvolved.plateNumber.serial",
    "details.casualties",
    "details.lanesBlocked",
    "advisories.type",
    "responders.agency",
    "responders.personnel.name",
]

RESPONDER_RECORD = {
    "incidentId": "I1",
    "responders": [
        {"agency": "A", "personnel": [{"name": "Bob"}, {"name": "Sue"}]},
        {"agency": "B", "personnel": [{"name": "Bob"}]},
    ],
}

RESPONDER_FIELDS = ["incidentId", "responders.agency", "responders.personnel.name"]


@pytest.fixture
def incident():
    return copy.deepcopy(INCIDENT)


@pytest.fixture
def incident_fields():
    return list(INCIDENT_FIELDS)


@pytest.fixture
def responder_record():
    return copy.deepcopy(RESPONDER_RECORD)


@pytest.fixture
def responder_fields():
    return list(RESPONDER_FIELDS)


def row(fields, *values):
    """Build an expected row from values in field order."""
    return dict(zip(fields, values))


def build_all(record, fields, group_key="incidentId", separator=", "):
    """Rows for every context of one record, before dedupe and merge."""
    parsed = parse_field_config(fields)
    group = dict(parsed)[group_key]
    contexts = expand_record(record, [p for _, p in parsed])
    return [build_row(record, ctx, parsed, group, separator) for ctx in contexts]
