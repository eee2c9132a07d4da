"""Flight CRUD endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from flighttraks.api.deps import get_current_user, get_flight_repo
from flighttraks.contracts.common import UtcDatetime, utc_now
from flighttraks.contracts.enums import FlightStatus
from flighttraks.contracts.flight import Flight
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.repositories.flight_repo import FlightRepository

router = APIRouter(prefix="/flights", tags=["flights"])


class FlightInput(BaseModel):
    """Pilot-editable fields. Actuals only come from ADS-B matching."""

    aircraft_id: str | None = None
    tail_number: str | None = Field(default=None, max_length=16)
    planned_start_time: UtcDatetime | None = None
    planned_end_time: UtcDatetime | None = None
    timezone: str | None = None


def _dump(flight: Flight, flight_id: str) -> dict:
    data = flight.to_firestore()
    data["id"] = flight_id
    return data


@router.get("")
async def list_flights(
    status: FlightStatus | None = None,
    user_id: str = Depends(get_current_user),
    repo: FlightRepository = Depends(get_flight_repo),
) -> list[dict]:
    if status is not None:
        items = await repo.list_by_status(user_id, status)
    else:
        items = await repo.list_all(user_id)
    return [f.to_firestore() for f in items]


@router.post("", status_code=201)
async def create_flight(
    payload: FlightInput,
    user_id: str = Depends(get_current_user),
    repo: FlightRepository = Depends(get_flight_repo),
) -> dict:
    flight = Flight(**payload.model_dump())
    doc_id = await repo.create(user_id, flight)
    return _dump(flight, doc_id)


@router.get("/{flight_id}")
async def get_flight(
    flight_id: str,
    user_id: str = Depends(get_current_user),
    repo: FlightRepository = Depends(get_flight_repo),
) -> dict:
    item = await repo.get_or_raise(user_id, flight_id)
    return _dump(item, flight_id)


@router.put("/{flight_id}")
async def update_flight(
    flight_id: str,
    payload: FlightInput,
    user_id: str = Depends(get_current_user),
    repo: FlightRepository = Depends(get_flight_repo),
) -> dict:
    flight = await repo.get_or_raise(user_id, flight_id)
    flight = flight.model_copy(update={**payload.model_dump(), "updated_at": utc_now()})
    await repo.save(user_id, flight_id, flight)
    return _dump(flight, flight_id)


@router.delete("/{flight_id}", status_code=204, response_class=Response)
async def delete_flight(
    flight_id: str,
    user_id: str = Depends(get_current_user),
    repo: FlightRepository = Depends(get_flight_repo),
) -> Response:
    await repo.get_or_raise(user_id, flight_id)
    await repo.delete(user_id, flight_id)
    return Response(status_code=204)


@router.get("/{flight_id}/track")
async def get_track(
    flight_id: str,
    user_id: str = Depends(get_current_user),
    repo: FlightRepository = Depends(get_flight_repo),
) -> dict:
    await repo.get_or_raise(user_id, flight_id)
    track = await repo.get_track(user_id, flight_id)
    if track is None:
        raise DocumentNotFoundError("tracks", flight_id)
    return track.to_firestore()
