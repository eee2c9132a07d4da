"""Flight and FlightTrack — a pilot's flight and its reconciled ADS-B track.

Flights are stored at: ``/users/{user_id}/flights/{flight_id}``
Tracks are stored at: ``/users/{user_id}/tracks/{flight_id}``
"""


from pydantic import Field

from flighttraks.contracts.common import FirestoreModel, UtcDatetime, utc_now
from flighttraks.contracts.enums import AutoImportStatus, FlightStatus


class TrackPoint(FirestoreModel):
    """Timestamped position sample."""

    recorded_at: UtcDatetime
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude_ft: float | None = None
    groundspeed_kt: float | None = Field(default=None, ge=0)
    heading_deg: float | None = None


class FlightStats(FirestoreModel):
    max_altitude_ft: float | None = None
    max_groundspeed_kt: float | None = None


class FlightTrack(FirestoreModel):
    """All track points of one flight, replaced as a whole on every import.

    Keeping the points in a single document makes replacement atomic: a reader
    sees either the previous track or the new one, never a mix.
    """

    id: str | None = None
    flight_id: str
    provider: str
    provider_flight_id: str
    points: list[TrackPoint] = Field(default_factory=list)
    replaced_at: UtcDatetime = Field(default_factory=utc_now)


class Flight(FirestoreModel):
    """Aggregate root of the flight-completion workflow.

    **Planned fields** are entered by the pilot. **Actual fields**
    (``start_time``, ``end_time``, ``duration_minutes``, ``distance_nm``,
    ``origin``, ``destination``, ``stats``) are filled by ADS-B matching.
    """

    id: str | None = None
    aircraft_id: str | None = Field(
        default=None, description="Reference to Aircraft document ID"
    )
    tail_number: str | None = Field(default=None, max_length=16)
    status: FlightStatus = FlightStatus.PLANNED

    planned_start_time: UtcDatetime | None = None
    planned_end_time: UtcDatetime | None = None
    timezone: str | None = Field(
        default=None, description="IANA zone of the pilot's wall clock, e.g. America/Los_Angeles"
    )

    # Actuals (filled by matching)
    start_time: UtcDatetime | None = None
    end_time: UtcDatetime | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    distance_nm: int | None = Field(default=None, ge=0)
    origin: str | None = None
    destination: str | None = None
    stats: FlightStats | None = None

    # ADS-B attachment
    imported_provider: str | None = None
    provider_flight_id: str | None = None
    auto_import_status: AutoImportStatus = AutoImportStatus.IDLE
    auto_import_last_error: str | None = None

    # Phase -> template id chosen explicitly for this flight
    checklist_template_overrides: dict[str, str] = Field(default_factory=dict)

    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime | None = None

    @property
    def is_attached(self) -> bool:
        return bool(self.imported_provider and self.provider_flight_id)
