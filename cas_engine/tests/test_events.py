"""Tests for lifecycle event sinks."""

import json
import logging

from cas_engine.events import (
    PARSE_FAILED,
    PARSE_STARTED,
    LoggingEventSink,
    NullEventSink,
    RecordingEventSink,
)


class TestLoggingEventSink:
    """Tests for LoggingEventSink."""

    def test_info_for_regular_events(self, caplog):
        with caplog.at_level(logging.INFO, logger="cas_engine.events"):
            LoggingEventSink().emit(PARSE_STARTED, {"trackingId": "CAS_1", "size": 10})

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.event == PARSE_STARTED
        assert record.fields == {"trackingId": "CAS_1", "size": 10}
        payload = json.loads(record.getMessage()[len(PARSE_STARTED) + 1:])
        assert payload["trackingId"] == "CAS_1"

    def test_warning_for_failures(self, caplog):
        with caplog.at_level(logging.INFO, logger="cas_engine.events"):
            LoggingEventSink().emit(PARSE_FAILED, {"trackingId": "CAS_1", "kind": "Cancelled"})

        assert caplog.records[-1].levelno == logging.WARNING

    def test_custom_logger(self, caplog):
        custom = logging.getLogger("upload.events")
        with caplog.at_level(logging.INFO, logger="upload.events"):
            LoggingEventSink(custom).emit(PARSE_STARTED, {"trackingId": "CAS_2"})

        assert caplog.records[-1].name == "upload.events"


class TestNullEventSink:
    def test_discards(self):
        assert NullEventSink().emit(PARSE_STARTED, {"trackingId": "CAS_1"}) is None


class TestRecordingEventSink:
    """Tests for RecordingEventSink."""

    def test_records_in_order(self):
        sink = RecordingEventSink()
        sink.emit(PARSE_STARTED, {"trackingId": "CAS_1"})
        sink.emit(PARSE_FAILED, {"trackingId": "CAS_1", "kind": "Cancelled"})

        assert sink.names() == [PARSE_STARTED, PARSE_FAILED]
        assert sink.of(PARSE_FAILED) == [{"trackingId": "CAS_1", "kind": "Cancelled"}]

    def test_copies_fields(self):
        sink = RecordingEventSink()
        fields = {"trackingId": "CAS_1"}
        sink.emit(PARSE_STARTED, fields)
        fields["trackingId"] = "changed"

        assert sink.of(PARSE_STARTED)[0]["trackingId"] == "CAS_1"
