"""Base classes and shared types for FlightTraks contracts.

Unit conventions (all contracts and API responses):
- **Distances**: nautical miles (NM) — suffix ``_nm``
- **Speeds**: knots (kt) — suffix ``_kt``
- **Altitudes**: feet — suffix ``_ft``
- **Headings/angles**: degrees — suffix ``_deg``
- **Durations**: minutes — suffix ``_minutes``
- **Datetimes**: always UTC, ISO 8601 in serialized form
- **Coordinates**: WGS84 decimal degrees
"""

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict


def utc_now() -> datetime:
    """Server clock used for every persisted timestamp."""
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class FirestoreModel(BaseModel):
    """Base model with Firestore-friendly serialization.

    - Enums serialize as string values (Firestore stores strings).
    - ``to_firestore()`` produces a JSON-safe dict (datetimes as ISO 8601).
    - ``from_firestore()`` hydrates from a Firestore document dict.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_firestore(self) -> dict[str, Any]:
        """Dump to Firestore-compatible dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_firestore(cls, data: dict[str, Any]) -> "FirestoreModel":
        """Create model instance from Firestore document dict."""
        return cls.model_validate(data)
