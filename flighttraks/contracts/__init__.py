"""FlightTraks data contracts — Pydantic v2 models for the flight-completion workflow.

Data authority
--------------

**Firestore** (source of truth for user-owned data):
- ``UserAccount`` — ``/users/{uid}``
- ``Aircraft`` — ``/users/{uid}/aircraft/{id}``
- ``ChecklistTemplate`` — ``/users/{uid}/checklist_templates/{id}``
- ``Flight`` — ``/users/{uid}/flights/{id}``
- ``ChecklistRun`` — ``/users/{uid}/flights/{fid}/checklist_runs/{phase}``
- ``FlightTrack`` — ``/users/{uid}/tracks/{fid}``
- ``AuditEvent`` — ``/users/{uid}/audit_events/{id}``

**Firestore** (global, admin-managed):
- ``AircraftType`` — ``/aircraft_types/{id}``
- ``ChecklistTemplate`` with ``user_id=None`` — ``/checklist_templates/{id}``

Calculated (never persisted)
----------------------------
- ``FlightCandidate`` — provider-reported flight segment
- ``SearchWindow`` / ``TimeWindow`` — derived import windows
- ``ScoredCandidate`` / ``CandidateSelection`` — ranking results
"""

from flighttraks.contracts.enums import (
    AutoImportStatus,
    ChecklistDecision,
    ChecklistInputType,
    ChecklistItemKind,
    ChecklistPhase,
    ChecklistRunStatus,
    FlightStatus,
)
from flighttraks.contracts.common import FirestoreModel, UtcDatetime, as_utc, utc_now
from flighttraks.contracts.result import ServiceError
from flighttraks.contracts.account import AuditEvent, UserAccount
from flighttraks.contracts.aircraft import Aircraft, AircraftType
from flighttraks.contracts.checklist import (
    ChecklistRun,
    ChecklistTemplate,
    RunItem,
    TemplateItem,
)
from flighttraks.contracts.flight import Flight, FlightStats, FlightTrack, TrackPoint
from flighttraks.contracts.adsb import (
    CandidateSelection,
    FlightCandidate,
    ScoredCandidate,
    SearchWindow,
    TimeWindow,
)

__all__ = [
    # Enums
    "AutoImportStatus",
    "ChecklistDecision",
    "ChecklistInputType",
    "ChecklistItemKind",
    "ChecklistPhase",
    "ChecklistRunStatus",
    "FlightStatus",
    # Common
    "FirestoreModel",
    "UtcDatetime",
    "as_utc",
    "utc_now",
    # Result
    "ServiceError",
    # Domain models
    "AuditEvent",
    "UserAccount",
    "Aircraft",
    "AircraftType",
    "ChecklistRun",
    "ChecklistTemplate",
    "RunItem",
    "TemplateItem",
    "Flight",
    "FlightStats",
    "FlightTrack",
    "TrackPoint",
    # ADS-B
    "CandidateSelection",
    "FlightCandidate",
    "ScoredCandidate",
    "SearchWindow",
    "TimeWindow",
]
