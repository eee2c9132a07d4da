"""Checklist run endpoints: start, fill in, sign, reject, skip, close."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from flighttraks.api.deps import get_current_user, get_run_service, get_workflow
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.services.checklists.run_service import (
    ChecklistRunService,
    ItemUpdate,
    TransitionResult,
)
from flighttraks.services.checklists.signature import SignatureContext
from flighttraks.services.workflow import ChecklistWorkflow, SignOutcome

router = APIRouter(prefix="/flights/{flight_id}/checklists", tags=["checklists"])


class SignRequest(BaseModel):
    signature_name: str
    password: str


class RejectRequest(SignRequest):
    note: str


class SkipRequest(SignRequest):
    note: str | None = None


class CloseRequest(BaseModel):
    signature_name: str
    note: str | None = None


class TemplateSelection(BaseModel):
    template_id: str | None = None


def _signer(request: Request, user_id: str, signature_name: str) -> SignatureContext:
    return SignatureContext.from_headers(
        user_id,
        signature_name,
        request.headers,
        request.client.host if request.client else None,
    )


def _transition(result: TransitionResult | SignOutcome) -> dict:
    return {"flight": result.flight.to_firestore(), "run": result.run.to_firestore()}


@router.get("/{phase}")
async def get_run(
    flight_id: str,
    phase: ChecklistPhase,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    run = await service.get_run(user_id, flight_id, phase)
    return run.to_firestore()


@router.post("/{phase}/template")
async def select_template(
    flight_id: str,
    phase: ChecklistPhase,
    payload: TemplateSelection,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    result = await service.select_template(user_id, flight_id, phase, payload.template_id)
    return _transition(result)


@router.post("/{phase}/start")
async def start_run(
    flight_id: str,
    phase: ChecklistPhase,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    result = await service.start(user_id, flight_id, phase)
    return _transition(result)


@router.post("/{phase}/items/{item_id}")
async def update_item(
    flight_id: str,
    phase: ChecklistPhase,
    item_id: str,
    update: ItemUpdate,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    run = await service.update_item(user_id, flight_id, phase, item_id, update)
    return run.to_firestore()


@router.post("/{phase}/sign")
async def sign_run(
    flight_id: str,
    phase: ChecklistPhase,
    payload: SignRequest,
    request: Request,
    user_id: str = Depends(get_current_user),
    workflow: ChecklistWorkflow = Depends(get_workflow),
) -> dict:
    outcome = await workflow.sign(
        user_id, flight_id, phase, _signer(request, user_id, payload.signature_name), payload.password
    )
    data = _transition(outcome)
    if outcome.auto_import is not None:
        data["auto_import"] = {
            "status": outcome.auto_import.status,
            "error": outcome.auto_import.error,
            "candidates": len(outcome.auto_import.candidates),
        }
    return data


@router.post("/{phase}/reject")
async def reject_run(
    flight_id: str,
    phase: ChecklistPhase,
    payload: RejectRequest,
    request: Request,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    result = await service.reject(
        user_id, flight_id, phase,
        _signer(request, user_id, payload.signature_name), payload.password, payload.note,
    )
    return _transition(result)


@router.post("/{phase}/skip")
async def skip_run(
    flight_id: str,
    phase: ChecklistPhase,
    payload: SkipRequest,
    request: Request,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    result = await service.skip(
        user_id, flight_id, phase,
        _signer(request, user_id, payload.signature_name), payload.password, payload.note,
    )
    return _transition(result)


@router.post("/{phase}/close")
async def close_run(
    flight_id: str,
    phase: ChecklistPhase,
    payload: CloseRequest,
    request: Request,
    user_id: str = Depends(get_current_user),
    service: ChecklistRunService = Depends(get_run_service),
) -> dict:
    result = await service.close(
        user_id, flight_id, phase,
        _signer(request, user_id, payload.signature_name), payload.note,
    )
    return _transition(result)
