"""
Parse lifecycle events.

The orchestrator reports each parse to an injected EventSink. Sinks only
observe: whatever they do, the outcome of the parse is unchanged.
"""

import json
import logging
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger(__name__)

PARSE_STARTED = "cas.parse.started"
PARSE_DETECTED = "cas.parse.detected"
PARSE_SUCCEEDED = "cas.parse.succeeded"
PARSE_FAILED = "cas.parse.failed"


class EventSink(Protocol):
    """Receives lifecycle events; `fields` always contains "trackingId"."""

    def emit(self, event_name: str, fields: Dict[str, Any]) -> None: ...


class LoggingEventSink:
    """
    Writes events to the standard logging system.

    Failures are logged at WARNING, everything else at INFO. The fields are
    rendered as JSON in the message and also attached to the record as
    `event` and `fields` attributes for structured handlers.
    """

    def __init__(self, event_logger: logging.Logger = logger):
        self.logger = event_logger

    def emit(self, event_name: str, fields: Dict[str, Any]) -> None:
        level = logging.WARNING if event_name == PARSE_FAILED else logging.INFO
        self.logger.log(
            level,
            f"{event_name} {json.dumps(fields, sort_keys=True, default=str)}",
            extra={"event": event_name, "fields": dict(fields)},
        )


class NullEventSink:
    """Discards every event."""

    def emit(self, event_name: str, fields: Dict[str, Any]) -> None:
        return None


class RecordingEventSink:
    """Keeps events in memory, in emission order."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event_name: str, fields: Dict[str, Any]) -> None:
        self.events.append((event_name, dict(fields)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def of(self, event_name: str) -> List[Dict[str, Any]]:
        """Get the fields of every event with the given name."""
        return [fields for name, fields in self.events if name == event_name]
