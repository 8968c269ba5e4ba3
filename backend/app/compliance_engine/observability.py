"""
Observer hooks for the compliance engine.

The decision functions stay pure; the engine reports what it decided
through an observer.  ``LoggingObserver`` (the default) writes to the
standard ``logging`` tree, ``NullObserver`` discards everything, and
``RecordingObserver`` keeps events in memory for inspection.

Events::

    lease_selected        unit, lease id, kind (current / future / none)
    rent_analysis_bypassed unit, reason
    rent_float_up         unit, income bucket, final bucket, rent
    inheritance_applied   unit, governing lease id, source lease id
    status_decided        unit, status
    vacants_redistributed bucket -> units added, leftover to Market
    overflow_cascaded     from bucket, to bucket, units moved
    unit_count_mismatch   declared, analysed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Events that describe routine decisions go to DEBUG, the rest to INFO/WARNING
_DEBUG_EVENTS = {"lease_selected", "status_decided", "rent_analysis_bypassed"}
_WARNING_EVENTS = {"unit_count_mismatch"}


class EngineObserver(Protocol):
    def event(self, name: str, **details: Any) -> None:
        ...


class NullObserver:
    def event(self, name: str, **details: Any) -> None:
        return None


class LoggingObserver:
    """Route engine events to ``logging``."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def event(self, name: str, **details: Any) -> None:
        if name in _WARNING_EVENTS:
            level = logging.WARNING
        elif name in _DEBUG_EVENTS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        if not self.log.isEnabledFor(level):
            return
        rendered = ", ".join(f"{k}={v}" for k, v in details.items())
        self.log.log(level, "%s: %s", name, rendered)


@dataclass
class RecordingObserver:
    events: list[tuple[str, dict]] = field(default_factory=list)

    def event(self, name: str, **details: Any) -> None:
        self.events.append((name, details))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]
