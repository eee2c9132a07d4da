"""ADS-B import contracts — provider candidates, search windows, ranking.

None of these are persisted: a candidate only becomes data once it is
attached to a Flight (see ``FlightTrack``).
"""

from typing import Self

from pydantic import BaseModel, Field, model_validator

from flighttraks.contracts.common import FirestoreModel, UtcDatetime
from flighttraks.contracts.flight import FlightStats, TrackPoint


class FlightCandidate(FirestoreModel):
    """A provider-reported flight segment not yet attached to a Flight."""

    provider_flight_id: str
    tail_number: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    duration_minutes: float | None = None
    distance_nm: float | None = None
    dep_label: str = "Unknown"
    arr_label: str = "Unknown"
    stats: FlightStats | None = None
    track: list[TrackPoint] = Field(default_factory=list)


class TimeWindow(BaseModel):
    """Closed UTC interval ``[start, end]``."""

    start: UtcDatetime
    end: UtcDatetime

    @model_validator(mode="after")
    def validate_order(self) -> Self:
        if self.end < self.start:
            raise ValueError("Window end must not precede its start")
        return self


class SearchWindow(BaseModel):
    """Where to look for a flight, and what a perfect match looks like.

    The search interval is the reference interval padded on both sides; the
    reference interval is the best-known actual span of the flight.
    """

    search_start: UtcDatetime
    search_end: UtcDatetime
    reference_start: UtcDatetime
    reference_end: UtcDatetime
    preflight_signed_at: UtcDatetime | None = None
    postflight_signed_at: UtcDatetime | None = None
    label: str = Field(default="base", description="Which ladder step produced this window")


class ScoredCandidate(BaseModel):
    candidate: FlightCandidate
    score_seconds: float = Field(..., ge=0)


class CandidateSelection(BaseModel):
    """Ranked candidates and the selector's verdict."""

    ranked: list[ScoredCandidate] = Field(default_factory=list)
    selected: FlightCandidate | None = None
    is_clear_match: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.ranked
