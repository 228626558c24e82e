"""
Diagnostic events emitted by the extraction core.

The parsing functions never log on their own; callers hand them an observer
and decide where events go (process logs, an in-memory list, nowhere).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .logging_utils import log_event


class DiagnosticObserver(Protocol):
    def emit(self, level: str, event_name: str, **fields: Any) -> None:
        ...


class NullObserver:
    def emit(self, level: str, event_name: str, **fields: Any) -> None:
        return None


class LoggingObserver:
    """Forward events to the process logger as structured log lines."""

    def __init__(self, min_level: str = "debug", **context: Any):
        self.min_level = min_level.lower()
        self.context = context

    def emit(self, level: str, event_name: str, **fields: Any) -> None:
        if _LEVELS.get(level.lower(), 20) < _LEVELS.get(self.min_level, 10):
            return
        log_event(level, event_name, **self.context, **fields)


@dataclass
class DiagnosticEvent:
    level: str
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


class RecordingObserver:
    def __init__(self) -> None:
        self.events: List[DiagnosticEvent] = []

    def emit(self, level: str, event_name: str, **fields: Any) -> None:
        self.events.append(DiagnosticEvent(level=level.lower(), name=event_name, fields=dict(fields)))

    def named(self, event_name: str) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.name == event_name]


_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40, "critical": 50}

NULL_OBSERVER = NullObserver()


def resolve_observer(observer: Optional[DiagnosticObserver]) -> DiagnosticObserver:
    return observer if observer is not None else NULL_OBSERVER
