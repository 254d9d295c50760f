"""
Contract Tests

Wire format and classification of the shared contract types.
"""

from datetime import datetime, timedelta, timezone

from growth_engine.contracts.base import Timestamp, generate_event_id
from growth_engine.contracts.events import (
    ProgressionEvent, ProgressionEventType, TaskDepth, TaskRecord, encode_list, decode_list
)
from growth_engine.contracts.state import GrowthState

from tests.fixtures import T1


class TestTimestamp:

    def test_normalised_to_utc(self):
        local = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert Timestamp(local).to_iso() == "2026-01-01T10:00:00Z"

    def test_naive_treated_as_utc(self):
        assert Timestamp(datetime(2026, 1, 1, 10, 0)) == T1

    def test_parse_optional(self):
        assert Timestamp.parse_optional("2026-01-01T10:00:00Z") == T1
        assert Timestamp.parse_optional("not a date") is None
        assert Timestamp.parse_optional(None) is None


class TestProgressionEvent:

    def test_create_assigns_unique_ids(self):
        first = ProgressionEvent.create("u", ProgressionEventType.TIME_TICK, T1)
        second = ProgressionEvent.create("u", ProgressionEventType.TIME_TICK, T1)
        assert first.event_id.startswith("evt_")
        assert first.event_id != second.event_id
        assert generate_event_id() != generate_event_id()

    def test_wire_shape(self):
        evt = ProgressionEvent.create(
            "u", ProgressionEventType.TASK_COMPLETED, T1,
            metadata={"taskId": "t1"}
        )
        dto = evt.to_dict()

        assert dto["type"] == "TASK_COMPLETED"
        assert dto["occurredAt"] == "2026-01-01T10:00:00Z"
        assert dto["metadata"] == {"taskId": "t1"}
        assert ProgressionEvent.from_dict(dto) == evt

    def test_unknown_type_classified_but_preserved(self):
        evt = ProgressionEvent.from_dict({
            "eventId": "e", "userId": "u", "type": "SEASON_CHANGED",
            "occurredAt": "2026-01-01T10:00:00Z"
        })
        assert evt.kind == ProgressionEventType.UNKNOWN
        assert evt.event_type == "SEASON_CHANGED"

    def test_null_metadata_values_become_empty(self):
        evt = ProgressionEvent.from_dict({
            "eventId": "e", "userId": "u", "type": "TASK_COMPLETED",
            "occurredAt": "2026-01-01T10:00:00Z", "metadata": {"projectId": None}
        })
        assert evt.get_metadata("projectId") == ""


class TestRecords:

    def test_task_depth_parsing(self):
        assert TaskDepth.parse("DEEP") == TaskDepth.DEEP
        assert TaskDepth.parse(None) == TaskDepth.SMALL
        assert TaskDepth.parse("enormous") == TaskDepth.SMALL
        assert TaskDepth.MEDIUM.subtype.value == "MEDIUM_TASK"

    def test_task_record_from_dict(self):
        record = TaskRecord.from_dict("t1", {
            "userId": "u", "status": "completed", "completedAt": "2026-01-01T10:00:00Z"
        })
        assert record.is_completed
        assert record.completed_at == T1
        assert record.project_id is None

    def test_list_encoding(self):
        assert encode_list(["a", "b"]) == "a,b"
        assert encode_list(None) == ""
        assert decode_list("a,b") == ("a", "b")
        assert decode_list("") == ()

    def test_growth_state_evolve(self):
        state = GrowthState("u", 1.0, 0.5, 0.8, T1)
        nxt = state.evolve(vitality=0.9)
        assert (nxt.mass, nxt.structure, nxt.vitality, nxt.version) == (1.0, 0.5, 0.9, 2)
        assert GrowthState.from_dict(nxt.to_dict()) == nxt
