"""Checklist template resolution and editing."""

from __future__ import annotations

import logging

from flighttraks.contracts.checklist import ChecklistTemplate, TemplateItem
from flighttraks.contracts.common import utc_now
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.contracts.flight import Flight
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.repositories.aircraft_repo import (
    AircraftRepository,
    AircraftTypeRepository,
)
from flighttraks.persistence.repositories.template_repo import TemplateRepository
from flighttraks.services.errors import InvalidRequestError

logger = logging.getLogger(__name__)


class TemplateResolver:
    """Pick the template a flight should use for a phase.

    Precedence:
    1. explicit override stored on the flight
    2. template assigned to the flight's aircraft
    3. default template of the aircraft's type
    4. the user's default template for the phase
    5. the user's most recently edited template for the phase
    6. the global default template for the phase
    7. any global template for the phase
    """

    def __init__(
        self,
        templates: TemplateRepository,
        aircraft: AircraftRepository,
        aircraft_types: AircraftTypeRepository,
    ):
        self._templates = templates
        self._aircraft = aircraft
        self._aircraft_types = aircraft_types

    async def get_visible(self, user_id: str, template_id: str) -> ChecklistTemplate | None:
        return await self._templates.get_visible(user_id, template_id)

    async def resolve(
        self, user_id: str, flight: Flight, phase: ChecklistPhase
    ) -> ChecklistTemplate | None:
        override_id = flight.checklist_template_overrides.get(phase.value)
        if override_id:
            template = await self._templates.get_visible(user_id, override_id)
            if template is not None:
                return template
            logger.warning(
                "Flight %s overrides %s template with missing %s", flight.id, phase.value, override_id
            )

        for template_id in await self._aircraft_assignments(user_id, flight, phase):
            template = await self._templates.get_visible(user_id, template_id)
            if template is not None:
                return template

        own = await self._templates.list_by_phase(user_id, phase)
        for template in own:
            if template.is_default:
                return template
        if own:
            return own[0]

        shared = await self._templates.list_global_by_phase(phase)
        for template in shared:
            if template.is_default:
                return template
        return shared[0] if shared else None

    async def _aircraft_assignments(
        self, user_id: str, flight: Flight, phase: ChecklistPhase
    ) -> list[str]:
        if not flight.aircraft_id:
            return []
        aircraft = await self._aircraft.get(user_id, flight.aircraft_id)
        if aircraft is None:
            return []

        ids: list[str] = []
        assigned = (
            aircraft.preflight_template_id
            if phase == ChecklistPhase.PREFLIGHT
            else aircraft.postflight_template_id
        )
        if assigned:
            ids.append(assigned)

        if aircraft.aircraft_type_id:
            aircraft_type = await self._aircraft_types.get(aircraft.aircraft_type_id)
            if aircraft_type is not None:
                type_default = (
                    aircraft_type.default_preflight_template_id
                    if phase == ChecklistPhase.PREFLIGHT
                    else aircraft_type.default_postflight_template_id
                )
                if type_default:
                    ids.append(type_default)
        return ids


class TemplateService:
    """Create, edit and delete a user's own templates.

    Editing replaces the whole item list in a single document write, so a
    template is never observed half-edited.
    """

    def __init__(self, templates: TemplateRepository):
        self._templates = templates

    async def create(self, user_id: str, template: ChecklistTemplate) -> ChecklistTemplate:
        template = template.model_copy(update={"id": None, "user_id": user_id})
        doc_id = await self._templates.create(user_id, template)
        template.id = doc_id
        return template

    async def replace_items(
        self,
        user_id: str,
        template_id: str,
        items: list[TemplateItem],
        name: str | None = None,
        is_default: bool | None = None,
    ) -> ChecklistTemplate:
        current = await self._templates.get(user_id, template_id)
        if current is None:
            raise DocumentNotFoundError("checklist_templates", template_id)

        data = current.model_dump()
        data["items"] = [item.model_dump() for item in items]
        if name is not None:
            data["name"] = name
        if is_default is not None:
            data["is_default"] = is_default
        data["updated_at"] = utc_now()
        try:
            updated = ChecklistTemplate.model_validate(data)
        except ValueError as exc:
            raise InvalidRequestError(f"Invalid template items: {exc}") from exc

        await self._templates.save(user_id, template_id, updated)
        return updated

    async def delete(self, user_id: str, template_id: str) -> None:
        await self._templates.get_or_raise(user_id, template_id)
        await self._templates.delete(user_id, template_id)
