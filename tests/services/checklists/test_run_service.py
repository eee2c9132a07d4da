"""Tests for the checklist run state machine."""

from __future__ import annotations

import math

import pytest

from flighttraks.contracts.enums import (
    ChecklistDecision,
    ChecklistPhase,
    ChecklistRunStatus,
    FlightStatus,
)
from flighttraks.contracts.flight import Flight
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.repositories.account_repo import AuditRepository
from flighttraks.persistence.repositories.flight_repo import FlightRepository
from flighttraks.services.checklists.run_service import AUTO_IMPORT, ItemUpdate
from flighttraks.services.errors import (
    AuthorizationError,
    ChecklistLockedError,
    InvalidRequestError,
    PreconditionFailedError,
)
from tests.factories import (
    PASSWORD,
    T0,
    USER_ID,
    item_for,
    make_signer,
    make_template,
    complete_required,
)


PRE = ChecklistPhase.PREFLIGHT
POST = ChecklistPhase.POSTFLIGHT


async def _sign_preflight(service, flight_id):
    await service.start(USER_ID, flight_id, PRE)
    await complete_required(service, flight_id, PRE)
    return await service.sign(USER_ID, flight_id, PRE, make_signer(), PASSWORD)


class TestStart:
    async def test_start_snapshots_resolved_template(self, run_service, flight_id, clock):
        result = await run_service.start(USER_ID, flight_id, PRE)
        assert result.run.status == ChecklistRunStatus.IN_PROGRESS
        assert result.run.template_id == "pre"
        assert result.run.started_at == clock.now
        assert len(result.run.items) == 5
        assert result.flight.status == FlightStatus.PLANNED

    async def test_start_twice_fails(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        with pytest.raises(PreconditionFailedError) as exc_info:
            await run_service.start(USER_ID, flight_id, PRE)
        assert exc_info.value.precondition == "run_not_started"

    async def test_postflight_needs_signed_preflight(self, run_service, flight_id):
        with pytest.raises(PreconditionFailedError) as exc_info:
            await run_service.start(USER_ID, flight_id, POST)
        assert exc_info.value.precondition == "preflight_signed"

    async def test_postflight_allowed_once_flight_has_ended(self, run_service, firestore, templates):
        flight_id = await FlightRepository().create(USER_ID, Flight(end_time=T0))
        result = await run_service.start(USER_ID, flight_id, POST)
        assert result.flight.status == FlightStatus.POSTFLIGHT_IN_PROGRESS

    async def test_no_template_available(self, run_service, firestore):
        flight_id = await FlightRepository().create(USER_ID, Flight())
        with pytest.raises(PreconditionFailedError) as exc_info:
            await run_service.start(USER_ID, flight_id, PRE)
        assert exc_info.value.precondition == "template_assigned"

    async def test_unknown_flight(self, run_service, firestore):
        with pytest.raises(DocumentNotFoundError):
            await run_service.start(USER_ID, "missing", PRE)


class TestUpdateItem:
    async def test_values_and_completion(self, run_service, flight_id, clock):
        run = (await run_service.start(USER_ID, flight_id, PRE)).run
        fuel = item_for(run, "fuel")
        clock.advance(minutes=3)

        updated = await run_service.update_item(
            USER_ID, flight_id, PRE, fuel.id, ItemUpdate(value_number=24.5, notes="tabs")
        )
        stored = item_for(updated, "fuel")
        assert stored.value_number == 24.5
        assert stored.completed
        assert stored.completed_at == clock.now
        assert stored.notes == "tabs"

        reloaded = await run_service.get_run(USER_ID, flight_id, PRE)
        assert item_for(reloaded, "fuel").value_number == 24.5

    async def test_run_must_be_available(self, run_service, flight_id):
        await run_service.select_template(USER_ID, flight_id, PRE, "pre")
        run = await run_service.get_run(USER_ID, flight_id, PRE)
        with pytest.raises(PreconditionFailedError) as exc_info:
            await run_service.update_item(
                USER_ID, flight_id, PRE, item_for(run, "docs").id, ItemUpdate(value_yes_no=True)
            )
        assert exc_info.value.precondition == "run_available"

    async def test_sections_cannot_be_completed(self, run_service, flight_id):
        run = (await run_service.start(USER_ID, flight_id, PRE)).run
        with pytest.raises(InvalidRequestError):
            await run_service.update_item(
                USER_ID, flight_id, PRE, item_for(run, "cabin").id, ItemUpdate(complete=True)
            )

    async def test_non_finite_number_rejected(self, run_service, flight_id):
        run = (await run_service.start(USER_ID, flight_id, PRE)).run
        with pytest.raises(InvalidRequestError):
            await run_service.update_item(
                USER_ID, flight_id, PRE, item_for(run, "fuel").id, ItemUpdate(value_number=math.inf)
            )

    async def test_unknown_item(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        with pytest.raises(DocumentNotFoundError):
            await run_service.update_item(USER_ID, flight_id, PRE, "nope", ItemUpdate(complete=True))

    @pytest.mark.parametrize(
        "template_item_id,update",
        [
            ("docs", ItemUpdate(value_yes_no=False)),
            ("controls", ItemUpdate(value_yes_no=True)),
            ("fuel", ItemUpdate(value_number=10)),
            ("squawks", ItemUpdate(value_text="new squawk")),
            ("docs", ItemUpdate(notes="only a note")),
        ],
    )
    async def test_signed_run_rejects_every_mutation(
        self, run_service, flight_id, template_item_id, update
    ):
        run = (await _sign_preflight(run_service, flight_id)).run
        with pytest.raises(ChecklistLockedError):
            await run_service.update_item(
                USER_ID, flight_id, PRE, item_for(run, template_item_id).id, update
            )
        unchanged = await run_service.get_run(USER_ID, flight_id, PRE)
        assert unchanged.model_dump() == run.model_dump()


class TestSign:
    async def test_explicit_no_blocks_signing(self, run_service, flight_id):
        run = (await run_service.start(USER_ID, flight_id, PRE)).run
        await complete_required(run_service, flight_id, PRE)
        await run_service.update_item(
            USER_ID, flight_id, PRE, item_for(run, "docs").id, ItemUpdate(value_yes_no=False)
        )

        with pytest.raises(PreconditionFailedError) as exc_info:
            await run_service.sign(USER_ID, flight_id, PRE, make_signer(), PASSWORD)
        assert exc_info.value.precondition == "required_items_complete"
        assert exc_info.value.details["first_missing"] == "Documents on board"

    async def test_unanswered_blocks_even_if_marked_complete(self, run_service, flight_id):
        run = (await run_service.start(USER_ID, flight_id, PRE)).run
        await complete_required(run_service, flight_id, PRE)
        controls = item_for(run, "controls")
        await run_service.update_item(
            USER_ID, flight_id, PRE, controls.id, ItemUpdate(value_yes_no=None, complete=True)
        )
        with pytest.raises(PreconditionFailedError):
            await run_service.sign(USER_ID, flight_id, PRE, make_signer(), PASSWORD)

    async def test_sign_preflight(self, run_service, flight_id, clock):
        result = await _sign_preflight(run_service, flight_id)
        assert result.run.status == ChecklistRunStatus.SIGNED
        assert result.run.decision == ChecklistDecision.ACCEPTED
        assert result.run.signed_at == clock.now
        assert result.flight.status == FlightStatus.PREFLIGHT_SIGNED
        assert result.post_commit == []

        stored = await FlightRepository().get(USER_ID, flight_id)
        assert stored.status == FlightStatus.PREFLIGHT_SIGNED

    async def test_wrong_password_changes_nothing(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        await complete_required(run_service, flight_id, PRE)
        with pytest.raises(AuthorizationError):
            await run_service.sign(USER_ID, flight_id, PRE, make_signer(), "guess")
        run = await run_service.get_run(USER_ID, flight_id, PRE)
        assert run.status == ChecklistRunStatus.IN_PROGRESS

    async def test_blank_signature_name(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        with pytest.raises(InvalidRequestError):
            await run_service.sign(USER_ID, flight_id, PRE, make_signer("  "), PASSWORD)

    async def test_sign_twice_is_locked(self, run_service, flight_id):
        await _sign_preflight(run_service, flight_id)
        with pytest.raises(ChecklistLockedError):
            await run_service.sign(USER_ID, flight_id, PRE, make_signer(), PASSWORD)

    async def test_sign_postflight_requests_auto_import(self, run_service, flight_id):
        await _sign_preflight(run_service, flight_id)
        await run_service.start(USER_ID, flight_id, POST)
        await complete_required(run_service, flight_id, POST)

        result = await run_service.sign(USER_ID, flight_id, POST, make_signer(), PASSWORD)
        assert result.post_commit == [AUTO_IMPORT]
        assert result.flight.status == FlightStatus.POSTFLIGHT_SIGNED

    async def test_transitions_are_audited(self, run_service, flight_id):
        await _sign_preflight(run_service, flight_id)
        actions = [e.action for e in await AuditRepository().list_all(USER_ID)]
        assert "preflight_started" in actions
        assert "preflight_signed" in actions


class TestRejectSkipClose:
    async def test_reject_preflight_unblocks_postflight(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        result = await run_service.reject(
            USER_ID, flight_id, PRE, make_signer(), PASSWORD, "Low oil pressure"
        )
        assert result.run.decision == ChecklistDecision.REJECTED
        assert result.run.decision_note == "Low oil pressure"
        assert result.flight.status == FlightStatus.PREFLIGHT_SIGNED

        started = await run_service.start(USER_ID, flight_id, POST)
        assert started.run.status == ChecklistRunStatus.IN_PROGRESS

    async def test_reject_needs_note(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        with pytest.raises(InvalidRequestError):
            await run_service.reject(USER_ID, flight_id, PRE, make_signer(), PASSWORD, "  ")

    async def test_reject_postflight_not_allowed(self, run_service, flight_id):
        with pytest.raises(InvalidRequestError):
            await run_service.reject(USER_ID, flight_id, POST, make_signer(), PASSWORD, "no")

    async def test_skip_creates_run(self, run_service, flight_id, clock):
        result = await run_service.skip(
            USER_ID, flight_id, PRE, make_signer(), PASSWORD, note="Ferry flight"
        )
        assert result.run.status == ChecklistRunStatus.SIGNED
        assert result.run.decision == ChecklistDecision.REJECTED
        assert result.run.decision_note == "Skipped. Note: Ferry flight"
        assert result.run.started_at == clock.now

    async def test_skip_needs_password(self, run_service, flight_id):
        with pytest.raises(AuthorizationError):
            await run_service.skip(USER_ID, flight_id, PRE, make_signer(), "bad")
        assert await FlightRepository().get_run(USER_ID, flight_id, PRE) is None

    async def test_skip_postflight_needs_eligibility(self, run_service, flight_id):
        with pytest.raises(PreconditionFailedError):
            await run_service.skip(USER_ID, flight_id, POST, make_signer(), PASSWORD)

    async def test_close_postflight_without_password(self, run_service, flight_id):
        await _sign_preflight(run_service, flight_id)
        await run_service.start(USER_ID, flight_id, POST)

        result = await run_service.close(USER_ID, flight_id, POST, make_signer())
        assert result.run.status == ChecklistRunStatus.SIGNED
        assert result.run.decision_note == "Closed without completion."
        assert result.flight.status == FlightStatus.POSTFLIGHT_SIGNED
        assert result.post_commit == []

    async def test_close_preflight_not_allowed(self, run_service, flight_id):
        await run_service.start(USER_ID, flight_id, PRE)
        with pytest.raises(InvalidRequestError):
            await run_service.close(USER_ID, flight_id, PRE, make_signer())

    async def test_status_never_moves_backwards(self, run_service, firestore, templates):
        flight_id = await FlightRepository().create(
            USER_ID, Flight(status=FlightStatus.IMPORTED, end_time=T0)
        )
        result = await run_service.skip(USER_ID, flight_id, PRE, make_signer(), PASSWORD)
        assert result.flight.status == FlightStatus.IMPORTED


class TestSelectTemplate:
    async def test_override_is_stored_and_used(self, run_service, flight_id, templates):
        await templates.create(USER_ID, make_template(PRE, name="Short", template_id="short"))
        result = await run_service.select_template(USER_ID, flight_id, PRE, "short")
        assert result.flight.checklist_template_overrides == {"PREFLIGHT": "short"}
        assert result.run.template_id == "short"

        started = await run_service.start(USER_ID, flight_id, PRE)
        assert started.run.template_id == "short"

    async def test_wrong_phase_template(self, run_service, flight_id):
        with pytest.raises(DocumentNotFoundError):
            await run_service.select_template(USER_ID, flight_id, PRE, "post")

    async def test_cannot_change_after_progress(self, run_service, flight_id):
        run = (await run_service.start(USER_ID, flight_id, PRE)).run
        await run_service.update_item(
            USER_ID, flight_id, PRE, item_for(run, "fuel").id, ItemUpdate(value_number=20)
        )
        with pytest.raises(PreconditionFailedError) as exc_info:
            await run_service.select_template(USER_ID, flight_id, PRE, "pre")
        assert exc_info.value.precondition == "no_completed_steps"
