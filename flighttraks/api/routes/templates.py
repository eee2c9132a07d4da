"""Checklist template endpoints (the user's own templates plus read access to global ones)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from flighttraks.api.deps import get_current_user, get_template_repo, get_template_service
from flighttraks.contracts.checklist import ChecklistTemplate, TemplateItem
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.repositories.template_repo import TemplateRepository
from flighttraks.services.checklists.templates import TemplateService

router = APIRouter(prefix="/checklist-templates", tags=["checklist-templates"])


class TemplateUpdate(BaseModel):
    items: list[TemplateItem]
    name: str | None = None
    is_default: bool | None = None


@router.get("")
async def list_templates(
    phase: ChecklistPhase,
    include_global: bool = True,
    user_id: str = Depends(get_current_user),
    repo: TemplateRepository = Depends(get_template_repo),
) -> list[dict]:
    items = await repo.list_by_phase(user_id, phase)
    if include_global:
        items += await repo.list_global_by_phase(phase)
    return [t.to_firestore() for t in items]


@router.post("", status_code=201)
async def create_template(
    template: ChecklistTemplate,
    user_id: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> dict:
    created = await service.create(user_id, template)
    return created.to_firestore()


@router.get("/{template_id}")
async def get_template(
    template_id: str,
    user_id: str = Depends(get_current_user),
    repo: TemplateRepository = Depends(get_template_repo),
) -> dict:
    template = await repo.get_visible(user_id, template_id)
    if template is None:
        raise DocumentNotFoundError("checklist_templates", template_id)
    return template.to_firestore()


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    payload: TemplateUpdate,
    user_id: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> dict:
    updated = await service.replace_items(
        user_id, template_id, payload.items, name=payload.name, is_default=payload.is_default
    )
    data = updated.to_firestore()
    data["id"] = template_id
    return data


@router.delete("/{template_id}", status_code=204, response_class=Response)
async def delete_template(
    template_id: str,
    user_id: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> Response:
    await service.delete(user_id, template_id)
    return Response(status_code=204)
