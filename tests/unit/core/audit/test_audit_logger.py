"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json

from pacing.core.audit.logger import AuditEvent, AuditLogger, _hash_input
from pacing.core.storage.database import LoadDatabase


# ---------------------------------------------------------------------------
# _hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_hashes_dict(self):
        h = _hash_input({"key": "value"})
        assert isinstance(h, str)
        assert len(h) == 64

    def test_key_order_irrelevant(self):
        assert _hash_input({"a": 1, "b": 2}) == _hash_input({"b": 2, "a": 1})

    def test_unserializable_is_empty(self):
        assert _hash_input({"x": object()}) == ""


# ---------------------------------------------------------------------------
# AuditLogger tests
# ---------------------------------------------------------------------------

class TestToolCalls:
    def test_logs_hash_not_input(self, audit_logger):
        event_id = audit_logger.log_tool_call(
            "log_symptom", {"severity": 4, "name": "migraine"}, duration_ms=3.5
        )
        assert event_id
        event = audit_logger.get_events()[0]
        assert event["action"] == "tool_invocation"
        assert event["tool_name"] == "log_symptom"
        assert event["duration_ms"] == 3.5
        assert "migraine" not in json.dumps(event)
        assert event["tool_input_hash"] == _hash_input({"severity": 4, "name": "migraine"})

    def test_failure_recorded(self, audit_logger):
        audit_logger.log_tool_call("load_scores", {}, status="failure", error_type="ValueError")
        event = audit_logger.get_events(tool_name="load_scores")[0]
        assert event["status"] == "failure"
        assert event["error_type"] == "ValueError"
        assert event["tool_input_hash"] is None

    def test_metadata_serialized(self, audit_logger):
        audit_logger.log_tool_call("load_scores", metadata={"days": 7})
        event = audit_logger.get_events()[0]
        assert json.loads(event["metadata_json"]) == {"days": 7}


class TestCalibrationEvents:
    def test_accepted(self, audit_logger):
        audit_logger.log_calibration_event(
            "load", "record_sample", state="calibrated", tool_name="record_good_day"
        )
        event = audit_logger.get_events(action="calibration")[0]
        assert event["signal"] == "load"
        assert event["status"] == "success"
        assert json.loads(event["metadata_json"]) == {
            "operation": "record_sample", "state": "calibrated"
        }

    def test_rejected_carries_reason(self, audit_logger):
        audit_logger.log_calibration_event(
            "hrv", "reset", state="idle", accepted=False, reason="not_calibrated"
        )
        event = audit_logger.get_events(action="calibration")[0]
        assert event["status"] == "rejected"
        assert json.loads(event["metadata_json"])["reason"] == "not_calibrated"


class TestQueries:
    def test_filters_and_counts(self, audit_logger):
        audit_logger.log_tool_call("load_scores")
        audit_logger.log_tool_call("classify_load")
        audit_logger.log_data_delete(tool_name="purge", count=4)
        assert audit_logger.count_events() == 3
        assert audit_logger.count_events(action="tool_invocation") == 2
        assert len(audit_logger.get_events(limit=1)) == 1
        delete = audit_logger.get_events(action="data_delete")[0]
        assert json.loads(delete["metadata_json"]) == {"records_deleted": 4}

    def test_since_filter(self, audit_logger):
        audit_logger.log_tool_call("load_scores")
        assert audit_logger.count_events(since="2999-01-01") == 0
        assert audit_logger.count_events(since="2000-01-01") == 1


class TestFailureHandling:
    def test_closed_database_returns_empty_id(self):
        db = LoadDatabase(":memory:")
        db.initialize()
        logger = AuditLogger(db)
        db.close()
        assert logger.log_event(AuditEvent(action="tool_invocation")) == ""
