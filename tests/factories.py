"""Builders for test data shared by service and API tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from flighttraks.contracts.adsb import FlightCandidate
from flighttraks.contracts.checklist import ChecklistRun, ChecklistTemplate, TemplateItem
from flighttraks.contracts.enums import ChecklistInputType, ChecklistItemKind, ChecklistPhase
from flighttraks.contracts.flight import TrackPoint
from flighttraks.services.checklists.run_service import ChecklistRunService, ItemUpdate
from flighttraks.services.checklists.signature import SignatureContext

USER_ID = "pilot-123"
PASSWORD = "correct horse battery staple"
T0 = datetime(2025, 6, 15, 16, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_template(
    phase: ChecklistPhase = ChecklistPhase.PREFLIGHT,
    name: str = "C172 walk-around",
    template_id: str | None = None,
    is_default: bool = False,
) -> ChecklistTemplate:
    """A section with three steps (check, number, optional text) and a yes/no step."""
    return ChecklistTemplate(
        id=template_id,
        name=name,
        phase=phase,
        is_default=is_default,
        items=[
            TemplateItem(
                id="cabin", kind=ChecklistItemKind.SECTION,
                official_order=0, personal_order=0, title="Cabin",
            ),
            TemplateItem(
                id="docs", parent_id="cabin", official_order=1, personal_order=3,
                title="Documents on board", input_type=ChecklistInputType.CHECK,
            ),
            TemplateItem(
                id="fuel", parent_id="cabin", official_order=2, personal_order=1,
                title="Fuel quantity (gal)", input_type=ChecklistInputType.NUMBER,
            ),
            TemplateItem(
                id="squawks", parent_id="cabin", official_order=3, personal_order=2,
                title="Squawks", required=False, input_type=ChecklistInputType.TEXT,
            ),
            TemplateItem(
                id="controls", official_order=4, personal_order=4,
                title="Flight controls free and correct", input_type=ChecklistInputType.YES_NO,
            ),
        ],
    )


def item_for(run: ChecklistRun, template_item_id: str):
    return next(item for item in run.items if item.template_item_id == template_item_id)


def make_signer(name: str = "Jane Pilot") -> SignatureContext:
    return SignatureContext(user_id=USER_ID, signature_name=name, ip="203.0.113.7", user_agent="pytest")


def make_candidate(
    provider_flight_id: str,
    start: datetime,
    minutes: float = 60,
    tail_number: str = "N12345",
    points: int = 3,
) -> FlightCandidate:
    end = start + timedelta(minutes=minutes)
    step = (end - start) / max(points - 1, 1)
    track = [
        TrackPoint(
            recorded_at=start + step * i,
            latitude=47.90 - 0.1 * i,
            longitude=-122.28,
            altitude_ft=1000 + 500 * i,
            groundspeed_kt=90 + 10 * i,
        )
        for i in range(points)
    ]
    return FlightCandidate(
        provider_flight_id=provider_flight_id,
        tail_number=tail_number,
        start_time=start,
        end_time=end,
        duration_minutes=minutes,
        distance_nm=12.4,
        dep_label="KPAE",
        arr_label="KSEA",
        track=track,
    )


class StubProvider:
    """Provider returning canned candidates, recording every query."""

    name = "stub"

    def __init__(self, candidates=None, error: Exception | None = None):
        self.candidates = list(candidates or [])
        self.error = error
        self.calls: list[tuple[str, datetime, datetime]] = []

    async def search_flights(self, tail_number, start, end):
        self.calls.append((tail_number, start, end))
        if self.error is not None:
            raise self.error
        return [c for c in self.candidates if c.start_time <= end and c.end_time >= start]


async def complete_required(service: ChecklistRunService, flight_id: str, phase: ChecklistPhase):
    """Answer every required step of a started run affirmatively."""
    run = await service.get_run(USER_ID, flight_id, phase)
    for item in run.items:
        if not item.is_step or not item.required:
            continue
        if item.input_type in (ChecklistInputType.CHECK, ChecklistInputType.YES_NO):
            update = ItemUpdate(value_yes_no=True)
        elif item.input_type == ChecklistInputType.NUMBER:
            update = ItemUpdate(value_number=24.5)
        else:
            update = ItemUpdate(value_text="ok")
        await service.update_item(USER_ID, flight_id, phase, item.id, update)
