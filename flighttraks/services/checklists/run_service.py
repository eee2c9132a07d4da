"""Checklist run state machine: start, update, sign, reject, skip, close.

Every transition reads the current flight and runs, checks its
preconditions, then commits the run and the flight status in one batch.
Checks never rely on cached state.

Post-commit work (the ADS-B auto-import after a post-flight signature) is
*returned* to the caller in ``TransitionResult.post_commit`` rather than run
here: it must never share the signing write.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from pydantic import BaseModel

from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.common import utc_now
from flighttraks.contracts.enums import (
    ChecklistDecision,
    ChecklistInputType,
    ChecklistPhase,
    ChecklistRunStatus,
    FlightStatus,
)
from flighttraks.contracts.flight import Flight
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.repositories.account_repo import AuditRepository
from flighttraks.persistence.repositories.flight_repo import FlightRepository
from flighttraks.services.checklists.signature import (
    PasswordConfirmer,
    SignatureContext,
    record_signature,
)
from flighttraks.services.checklists.snapshot import replace_run_items, snapshot_template
from flighttraks.services.checklists.templates import TemplateResolver
from flighttraks.services.errors import (
    ChecklistLockedError,
    InvalidRequestError,
    PreconditionFailedError,
)

logger = logging.getLogger(__name__)

AUTO_IMPORT = "auto_import"

# Flight status never moves backwards.
_STATUS_RANK = {
    FlightStatus.PLANNED.value: 0,
    FlightStatus.PREFLIGHT_SIGNED.value: 1,
    FlightStatus.POSTFLIGHT_IN_PROGRESS.value: 2,
    FlightStatus.POSTFLIGHT_SIGNED.value: 3,
    FlightStatus.COMPLETED.value: 4,
    FlightStatus.IMPORTED.value: 4,
}

_SIGNED_STATUS = {
    ChecklistPhase.PREFLIGHT: FlightStatus.PREFLIGHT_SIGNED,
    ChecklistPhase.POSTFLIGHT: FlightStatus.POSTFLIGHT_SIGNED,
}


def advance_status(flight: Flight, target: FlightStatus) -> None:
    if _STATUS_RANK[target.value] > _STATUS_RANK[flight.status]:
        flight.status = target.value


def _with_note(prefix: str, note: str | None) -> str:
    note = (note or "").strip()
    return f"{prefix} Note: {note}" if note else prefix


class ItemUpdate(BaseModel):
    """Values submitted for one checklist item."""

    notes: str | None = None
    value_yes_no: bool | None = None
    value_number: float | None = None
    value_text: str | None = None
    complete: bool = False


@dataclass
class TransitionResult:
    flight: Flight
    run: ChecklistRun
    post_commit: list[str] = field(default_factory=list)


class ChecklistRunService:
    def __init__(
        self,
        flights: FlightRepository,
        resolver: TemplateResolver,
        passwords: PasswordConfirmer,
        audit: AuditRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._flights = flights
        self._resolver = resolver
        self._passwords = passwords
        self._audit = audit
        self._clock = clock

    # ------------------------------------------------------------------
    # Loading & shared checks
    # ------------------------------------------------------------------

    async def _load(
        self, user_id: str, flight_id: str
    ) -> tuple[Flight, dict[str, ChecklistRun]]:
        flight = await self._flights.get_or_raise(user_id, flight_id)
        runs = await self._flights.list_runs(user_id, flight_id)
        return flight, runs

    @staticmethod
    def _existing_run(
        runs: dict[str, ChecklistRun], phase: ChecklistPhase
    ) -> ChecklistRun:
        run = runs.get(phase.value)
        if run is None:
            raise DocumentNotFoundError("checklist_runs", phase.value)
        return run

    @staticmethod
    def _require_in_progress(run: ChecklistRun) -> None:
        if run.is_locked:
            raise ChecklistLockedError(run.phase)
        if run.status != ChecklistRunStatus.IN_PROGRESS:
            raise PreconditionFailedError(
                "run_in_progress", "Checklist not started.", phase=run.phase
            )

    @staticmethod
    def _require_postflight_eligible(
        flight: Flight, runs: dict[str, ChecklistRun]
    ) -> None:
        preflight = runs.get(ChecklistPhase.PREFLIGHT.value)
        if preflight is not None and preflight.is_signed:
            return
        if flight.status in (FlightStatus.COMPLETED, FlightStatus.IMPORTED):
            return
        if flight.end_time is not None:
            return
        raise PreconditionFailedError(
            "preflight_signed",
            "Pre-flight checklist must be signed before starting post-flight.",
        )

    async def _commit(
        self,
        user_id: str,
        flight: Flight,
        run: ChecklistRun,
        action: str,
        **metadata,
    ) -> None:
        flight.updated_at = self._clock()
        await self._flights.commit_transition(user_id, flight, [run])
        await self._audit.record(user_id, action, flight.id, **metadata)
        logger.info("Flight %s: %s (run %s)", flight.id, action, run.status)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_run(
        self, user_id: str, flight_id: str, phase: ChecklistPhase
    ) -> ChecklistRun:
        await self._flights.get_or_raise(user_id, flight_id)
        run = await self._flights.get_run(user_id, flight_id, phase)
        if run is None:
            raise DocumentNotFoundError("checklist_runs", phase.value)
        return run

    # ------------------------------------------------------------------
    # Template selection (before any progress)
    # ------------------------------------------------------------------

    async def select_template(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        template_id: str | None,
    ) -> TransitionResult:
        """Choose a template for a phase and re-snapshot the run.

        ``template_id=None`` clears the flight-level override and falls back
        to the normal resolution order.
        """
        flight, runs = await self._load(user_id, flight_id)
        run = runs.get(phase.value) or ChecklistRun(flight_id=flight_id, phase=phase)

        overrides = dict(flight.checklist_template_overrides)
        if template_id:
            overrides[phase.value] = template_id
        else:
            overrides.pop(phase.value, None)
        flight.checklist_template_overrides = overrides

        if template_id:
            template = await self._resolver.get_visible(user_id, template_id)
            if template is None or template.phase != phase:
                raise DocumentNotFoundError("checklist_templates", template_id)
        else:
            template = await self._resolver.resolve(user_id, flight, phase)
            if template is None:
                raise DocumentNotFoundError("checklist_templates", phase.value)

        run = replace_run_items(run, template)
        await self._commit(
            user_id, flight, run, f"{phase.value.lower()}_template_selected",
            template_id=template.id,
        )
        return TransitionResult(flight=flight, run=run)

    # ------------------------------------------------------------------
    # NOT_AVAILABLE -> IN_PROGRESS
    # ------------------------------------------------------------------

    async def start(
        self, user_id: str, flight_id: str, phase: ChecklistPhase
    ) -> TransitionResult:
        flight, runs = await self._load(user_id, flight_id)
        run = runs.get(phase.value) or ChecklistRun(flight_id=flight_id, phase=phase)

        if run.is_locked:
            raise ChecklistLockedError(run.phase)
        if run.status == ChecklistRunStatus.IN_PROGRESS:
            raise PreconditionFailedError(
                "run_not_started", "Checklist already started.", phase=phase.value
            )
        if phase == ChecklistPhase.POSTFLIGHT:
            self._require_postflight_eligible(flight, runs)

        if not run.items:
            template = await self._resolver.resolve(user_id, flight, phase)
            if template is None or template.step_count == 0:
                raise PreconditionFailedError(
                    "template_assigned",
                    f"No {phase.value.lower()} checklist with steps is assigned to this flight.",
                )
            run = snapshot_template(run, template)
        elif not any(item.is_step for item in run.items):
            raise PreconditionFailedError(
                "template_assigned", "Checklist has no steps to complete."
            )

        run = run.model_copy(
            update={"status": ChecklistRunStatus.IN_PROGRESS.value, "started_at": self._clock()}
        )
        if phase == ChecklistPhase.POSTFLIGHT:
            advance_status(flight, FlightStatus.POSTFLIGHT_IN_PROGRESS)

        await self._commit(user_id, flight, run, f"{phase.value.lower()}_started")
        return TransitionResult(flight=flight, run=run)

    # ------------------------------------------------------------------
    # Item mutation
    # ------------------------------------------------------------------

    async def update_item(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        item_id: str,
        update: ItemUpdate,
    ) -> ChecklistRun:
        await self._flights.get_or_raise(user_id, flight_id)
        run = await self._flights.get_run(user_id, flight_id, phase)
        if run is None:
            raise DocumentNotFoundError("checklist_runs", phase.value)

        if run.is_locked:
            raise ChecklistLockedError(run.phase)
        if not run.is_available:
            raise PreconditionFailedError(
                "run_available", "Checklist not available.", phase=run.phase
            )

        item = run.find_item(item_id)
        if item is None:
            raise DocumentNotFoundError("checklist_items", item_id)
        if not item.is_step:
            raise InvalidRequestError("Sections cannot be completed.", item_id=item_id)

        item.notes = update.notes or None
        written = False
        if item.input_type in (ChecklistInputType.CHECK, ChecklistInputType.YES_NO):
            item.value_yes_no = update.value_yes_no
            written = update.value_yes_no is not None
        elif item.input_type == ChecklistInputType.NUMBER:
            if update.value_number is not None and not math.isfinite(update.value_number):
                raise InvalidRequestError("Invalid number value.", item_id=item_id)
            item.value_number = update.value_number
            written = update.value_number is not None
        elif item.input_type == ChecklistInputType.TEXT:
            item.value_text = update.value_text or None
            written = item.value_text is not None

        if written or update.complete:
            item.completed = True
            if item.completed_at is None:
                item.completed_at = self._clock()

        await self._flights.save_run(user_id, run)
        return run

    # ------------------------------------------------------------------
    # IN_PROGRESS -> SIGNED
    # ------------------------------------------------------------------

    async def sign(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        signer: SignatureContext,
        password: str,
    ) -> TransitionResult:
        """Sign with decision ACCEPTED once every required step is accepted."""
        signer.validate()
        flight, runs = await self._load(user_id, flight_id)
        run = self._existing_run(runs, phase)
        self._require_in_progress(run)

        missing = run.missing_required_items()
        if missing:
            raise PreconditionFailedError(
                "required_items_complete",
                "Complete required items before signing the checklist.",
                missing_items=len(missing),
                first_missing=missing[0].title,
            )

        await self._passwords.confirm(user_id, password)

        run = record_signature(run, signer, ChecklistDecision.ACCEPTED, self._clock())
        advance_status(flight, _SIGNED_STATUS[phase])
        await self._commit(user_id, flight, run, f"{phase.value.lower()}_signed")

        post_commit = [AUTO_IMPORT] if phase == ChecklistPhase.POSTFLIGHT else []
        return TransitionResult(flight=flight, run=run, post_commit=post_commit)

    async def reject(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        signer: SignatureContext,
        password: str,
        note: str,
    ) -> TransitionResult:
        """Sign the pre-flight with decision REJECTED; unblocks the workflow."""
        if phase != ChecklistPhase.PREFLIGHT:
            raise InvalidRequestError("Only the pre-flight checklist can be rejected.")
        signer.validate()
        if not note or not note.strip():
            raise InvalidRequestError("A rejection note is required.")

        flight, runs = await self._load(user_id, flight_id)
        run = self._existing_run(runs, phase)
        self._require_in_progress(run)
        await self._passwords.confirm(user_id, password)

        decision_note = note.strip()
        run = record_signature(
            run, signer, ChecklistDecision.REJECTED, self._clock(), decision_note
        )
        advance_status(flight, _SIGNED_STATUS[phase])
        await self._commit(
            user_id, flight, run, "preflight_rejected", decision_note=decision_note
        )
        return TransitionResult(flight=flight, run=run)

    async def skip(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        signer: SignatureContext,
        password: str,
        note: str | None = None,
    ) -> TransitionResult:
        """Sign without completing anything. Creates the run if needed."""
        signer.validate()
        flight, runs = await self._load(user_id, flight_id)
        run = runs.get(phase.value) or ChecklistRun(flight_id=flight_id, phase=phase)
        if run.is_locked:
            raise ChecklistLockedError(run.phase)
        if phase == ChecklistPhase.POSTFLIGHT:
            self._require_postflight_eligible(flight, runs)

        await self._passwords.confirm(user_id, password)

        now = self._clock()
        if run.started_at is None:
            run.started_at = now
        decision_note = _with_note("Skipped.", note)
        run = record_signature(run, signer, ChecklistDecision.REJECTED, now, decision_note)
        advance_status(flight, _SIGNED_STATUS[phase])
        await self._commit(
            user_id, flight, run, f"{phase.value.lower()}_skipped", decision_note=decision_note
        )
        return TransitionResult(flight=flight, run=run)

    async def close(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        signer: SignatureContext,
        note: str | None = None,
    ) -> TransitionResult:
        """Force-close a dangling post-flight run. No password re-entry."""
        if phase != ChecklistPhase.POSTFLIGHT:
            raise InvalidRequestError("Only the post-flight checklist can be closed.")
        signer.validate()

        flight, runs = await self._load(user_id, flight_id)
        run = self._existing_run(runs, phase)
        self._require_in_progress(run)

        decision_note = _with_note("Closed without completion.", note)
        run = record_signature(
            run, signer, ChecklistDecision.REJECTED, self._clock(), decision_note
        )
        advance_status(flight, _SIGNED_STATUS[phase])
        await self._commit(
            user_id, flight, run, "postflight_closed", decision_note=decision_note
        )
        return TransitionResult(flight=flight, run=run)
