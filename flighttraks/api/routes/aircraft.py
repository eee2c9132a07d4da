"""Aircraft endpoints, including per-aircraft checklist template assignments."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from flighttraks.api.deps import (
    get_aircraft_repo,
    get_aircraft_type_repo,
    get_current_user,
    get_template_repo,
)
from flighttraks.contracts.aircraft import Aircraft
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.persistence.repositories.aircraft_repo import (
    AircraftRepository,
    AircraftTypeRepository,
)
from flighttraks.persistence.repositories.template_repo import TemplateRepository
from flighttraks.services.errors import InvalidRequestError

router = APIRouter(prefix="/aircraft", tags=["aircraft"])


async def _check_assignments(
    user_id: str,
    aircraft: Aircraft,
    templates: TemplateRepository,
    aircraft_types: AircraftTypeRepository,
) -> None:
    """Reject references to unknown types or to templates of the wrong phase."""
    if aircraft.aircraft_type_id and await aircraft_types.get(aircraft.aircraft_type_id) is None:
        raise InvalidRequestError(
            "Unknown aircraft type.", aircraft_type_id=aircraft.aircraft_type_id
        )

    for phase, template_id in (
        (ChecklistPhase.PREFLIGHT, aircraft.preflight_template_id),
        (ChecklistPhase.POSTFLIGHT, aircraft.postflight_template_id),
    ):
        if not template_id:
            continue
        template = await templates.get_visible(user_id, template_id)
        if template is None or template.phase != phase:
            raise InvalidRequestError(
                f"No {phase.value.lower()} template with that id.", template_id=template_id
            )


@router.get("")
async def list_aircraft(
    user_id: str = Depends(get_current_user),
    repo: AircraftRepository = Depends(get_aircraft_repo),
) -> list[dict]:
    items = await repo.list_all(user_id)
    return [a.to_firestore() for a in items]


@router.post("", status_code=201)
async def create_aircraft(
    aircraft: Aircraft,
    user_id: str = Depends(get_current_user),
    repo: AircraftRepository = Depends(get_aircraft_repo),
    templates: TemplateRepository = Depends(get_template_repo),
    aircraft_types: AircraftTypeRepository = Depends(get_aircraft_type_repo),
) -> dict:
    await _check_assignments(user_id, aircraft, templates, aircraft_types)
    aircraft.id = await repo.create(user_id, aircraft.model_copy(update={"id": None}))
    return aircraft.to_firestore()


@router.get("/{aircraft_id}")
async def get_aircraft(
    aircraft_id: str,
    user_id: str = Depends(get_current_user),
    repo: AircraftRepository = Depends(get_aircraft_repo),
) -> dict:
    item = await repo.get_or_raise(user_id, aircraft_id)
    return item.to_firestore()


@router.put("/{aircraft_id}")
async def update_aircraft(
    aircraft_id: str,
    aircraft: Aircraft,
    user_id: str = Depends(get_current_user),
    repo: AircraftRepository = Depends(get_aircraft_repo),
    templates: TemplateRepository = Depends(get_template_repo),
    aircraft_types: AircraftTypeRepository = Depends(get_aircraft_type_repo),
) -> dict:
    current = await repo.get_or_raise(user_id, aircraft_id)
    await _check_assignments(user_id, aircraft, templates, aircraft_types)
    aircraft = aircraft.model_copy(update={"id": aircraft_id, "created_at": current.created_at})
    await repo.save(user_id, aircraft_id, aircraft)
    return aircraft.to_firestore()


@router.delete("/{aircraft_id}", status_code=204, response_class=Response)
async def delete_aircraft(
    aircraft_id: str,
    user_id: str = Depends(get_current_user),
    repo: AircraftRepository = Depends(get_aircraft_repo),
) -> Response:
    await repo.get_or_raise(user_id, aircraft_id)
    await repo.delete(user_id, aircraft_id)
    return Response(status_code=204)
