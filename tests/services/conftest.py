"""Service fixtures wired to the in-memory Firestore."""

from __future__ import annotations

from datetime import timedelta

import pytest

from flighttraks.contracts.account import UserAccount
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.contracts.flight import Flight
from flighttraks.persistence.repositories.account_repo import AuditRepository, UserAccountRepository
from flighttraks.persistence.repositories.aircraft_repo import (
    AircraftRepository,
    AircraftTypeRepository,
)
from flighttraks.persistence.repositories.flight_repo import FlightRepository
from flighttraks.persistence.repositories.template_repo import TemplateRepository
from flighttraks.services.checklists.run_service import ChecklistRunService
from flighttraks.services.checklists.signature import PasswordConfirmer, hash_password
from flighttraks.services.checklists.templates import TemplateResolver
from tests.factories import PASSWORD, T0, USER_ID, FakeClock, make_template


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def accounts(firestore):
    repo = UserAccountRepository()
    await repo.save(
        USER_ID,
        UserAccount(email="pilot@example.com", password_hash=hash_password(PASSWORD, rounds=4)),
    )
    return repo


@pytest.fixture
def run_service(firestore, accounts, clock):
    resolver = TemplateResolver(TemplateRepository(), AircraftRepository(), AircraftTypeRepository())
    return ChecklistRunService(
        FlightRepository(), resolver, PasswordConfirmer(accounts), AuditRepository(), clock=clock
    )


@pytest.fixture
async def templates(firestore):
    repo = TemplateRepository()
    await repo.create(
        USER_ID, make_template(ChecklistPhase.PREFLIGHT, template_id="pre", is_default=True)
    )
    await repo.create(
        USER_ID,
        make_template(ChecklistPhase.POSTFLIGHT, name="Shutdown", template_id="post", is_default=True),
    )
    return repo


@pytest.fixture
async def flight_id(firestore, templates):
    return await FlightRepository().create(
        USER_ID,
        Flight(
            tail_number="N12345",
            planned_start_time=T0,
            planned_end_time=T0 + timedelta(hours=1),
        ),
    )

