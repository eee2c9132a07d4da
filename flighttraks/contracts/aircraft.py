"""Aircraft and aircraft types, with their checklist template assignments.

Aircraft are stored at: ``/users/{user_id}/aircraft/{aircraft_id}``
Aircraft types are global: ``/aircraft_types/{type_id}``
"""


from pydantic import Field

from flighttraks.contracts.common import FirestoreModel, UtcDatetime, utc_now


class AircraftType(FirestoreModel):
    """Make/model shared by every user, with default checklists per phase."""

    id: str | None = None
    name: str = Field(..., min_length=1, description="e.g. C172S, PA-28-181")
    default_preflight_template_id: str | None = None
    default_postflight_template_id: str | None = None


class Aircraft(FirestoreModel):
    """A user's aircraft. Template assignments override the type defaults."""

    id: str | None = None
    tail_number: str = Field(..., pattern=r"^[A-Z0-9-]+$", description="e.g. N12345")
    aircraft_type_id: str | None = Field(
        default=None, description="Reference to AircraftType document ID"
    )
    preflight_template_id: str | None = None
    postflight_template_id: str | None = None
    notes: str | None = None
    created_at: UtcDatetime = Field(default_factory=utc_now)
