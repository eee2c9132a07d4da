"""Enumerations shared across all FlightTraks contracts."""

from enum import Enum


class FlightStatus(str, Enum):
    """Lifecycle of a flight, from planning to reconciled track."""
    PLANNED = "PLANNED"
    PREFLIGHT_SIGNED = "PREFLIGHT_SIGNED"
    POSTFLIGHT_IN_PROGRESS = "POSTFLIGHT_IN_PROGRESS"
    POSTFLIGHT_SIGNED = "POSTFLIGHT_SIGNED"
    COMPLETED = "COMPLETED"
    IMPORTED = "IMPORTED"


class ChecklistPhase(str, Enum):
    PREFLIGHT = "PREFLIGHT"
    POSTFLIGHT = "POSTFLIGHT"


class ChecklistRunStatus(str, Enum):
    """Lifecycle of a checklist run. ``SIGNED`` is terminal."""
    NOT_AVAILABLE = "NOT_AVAILABLE"
    IN_PROGRESS = "IN_PROGRESS"
    SIGNED = "SIGNED"


class ChecklistDecision(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ChecklistItemKind(str, Enum):
    SECTION = "SECTION"
    STEP = "STEP"


class ChecklistInputType(str, Enum):
    """How a checklist step is answered."""
    CHECK = "CHECK"
    YES_NO = "YES_NO"
    NUMBER = "NUMBER"
    TEXT = "TEXT"


class AutoImportStatus(str, Enum):
    """Outcome of the last ADS-B auto-import attempt for a flight."""
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    MATCHED = "MATCHED"
    AMBIGUOUS = "AMBIGUOUS"
    NOT_FOUND = "NOT_FOUND"
    FAILED = "FAILED"
