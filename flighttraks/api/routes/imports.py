"""ADS-B endpoints: candidate search, manual attach, track refresh."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from flighttraks.api.deps import get_auto_import_service, get_current_user
from flighttraks.contracts.adsb import ScoredCandidate, TimeWindow
from flighttraks.contracts.common import UtcDatetime
from flighttraks.services.auto_import import AutoImportService
from flighttraks.services.errors import InvalidRequestError

router = APIRouter(prefix="/flights/{flight_id}", tags=["adsb"])


class SearchRequest(BaseModel):
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None


class AttachRequest(BaseModel):
    provider_flight_id: str


def _candidate(scored: ScoredCandidate) -> dict:
    data = scored.candidate.model_dump(mode="json", exclude={"track"})
    data["track_points"] = len(scored.candidate.track)
    data["score_seconds"] = scored.score_seconds
    return data


@router.post("/auto-import/search")
async def search_candidates(
    flight_id: str,
    payload: SearchRequest,
    user_id: str = Depends(get_current_user),
    service: AutoImportService = Depends(get_auto_import_service),
) -> dict:
    window = None
    if payload.start is not None or payload.end is not None:
        if payload.start is None or payload.end is None or payload.end <= payload.start:
            raise InvalidRequestError("Search window needs a start before its end.")
        window = TimeWindow(start=payload.start, end=payload.end)

    result = await service.search_candidates(user_id, flight_id, window)
    return {
        "window": result.window.model_dump(mode="json"),
        "candidates": [_candidate(c) for c in result.candidates],
    }


@router.post("/auto-import/attach")
async def attach_candidate(
    flight_id: str,
    payload: AttachRequest,
    user_id: str = Depends(get_current_user),
    service: AutoImportService = Depends(get_auto_import_service),
) -> dict:
    flight = await service.attach_candidate(user_id, flight_id, payload.provider_flight_id)
    return flight.to_firestore()


@router.post("/adsb/refresh")
async def refresh_track(
    flight_id: str,
    user_id: str = Depends(get_current_user),
    service: AutoImportService = Depends(get_auto_import_service),
) -> dict:
    flight = await service.refresh_track(user_id, flight_id)
    return flight.to_firestore()
