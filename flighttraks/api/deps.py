"""FastAPI dependency injection wiring."""

from __future__ import annotations

from fastapi import Depends, Request

from flighttraks.api.auth import UserClaims, verify_firebase_token
from flighttraks.persistence.repositories.account_repo import (
    AuditRepository,
    UserAccountRepository,
)
from flighttraks.persistence.repositories.aircraft_repo import (
    AircraftRepository,
    AircraftTypeRepository,
)
from flighttraks.persistence.repositories.flight_repo import FlightRepository
from flighttraks.persistence.repositories.template_repo import TemplateRepository
from flighttraks.services.adsb.provider import AdsbProvider
from flighttraks.services.auto_import import AutoImportService
from flighttraks.services.checklists.run_service import ChecklistRunService
from flighttraks.services.checklists.signature import PasswordConfirmer
from flighttraks.services.checklists.templates import TemplateResolver, TemplateService
from flighttraks.services.workflow import ChecklistWorkflow


# ------------------------------------------------------------------
# Current user
# ------------------------------------------------------------------


def get_current_user(
    claims: UserClaims = Depends(verify_firebase_token),
) -> str:
    """Return the authenticated user ID."""
    return claims.uid


# ------------------------------------------------------------------
# Repositories (stateless, one instance per request)
# ------------------------------------------------------------------


def get_flight_repo() -> FlightRepository:
    return FlightRepository()


def get_aircraft_repo() -> AircraftRepository:
    return AircraftRepository()


def get_aircraft_type_repo() -> AircraftTypeRepository:
    return AircraftTypeRepository()


def get_template_repo() -> TemplateRepository:
    return TemplateRepository()


def get_account_repo() -> UserAccountRepository:
    return UserAccountRepository()


def get_audit_repo() -> AuditRepository:
    return AuditRepository()


# ------------------------------------------------------------------
# ADS-B provider (singleton from app.state)
# ------------------------------------------------------------------


def get_adsb_provider(request: Request) -> AdsbProvider:
    return request.app.state.adsb_provider


# ------------------------------------------------------------------
# Services
# ------------------------------------------------------------------


def get_template_resolver(
    templates: TemplateRepository = Depends(get_template_repo),
    aircraft: AircraftRepository = Depends(get_aircraft_repo),
    aircraft_types: AircraftTypeRepository = Depends(get_aircraft_type_repo),
) -> TemplateResolver:
    return TemplateResolver(templates, aircraft, aircraft_types)


def get_template_service(
    templates: TemplateRepository = Depends(get_template_repo),
) -> TemplateService:
    return TemplateService(templates)


def get_run_service(
    flights: FlightRepository = Depends(get_flight_repo),
    resolver: TemplateResolver = Depends(get_template_resolver),
    accounts: UserAccountRepository = Depends(get_account_repo),
    audit: AuditRepository = Depends(get_audit_repo),
) -> ChecklistRunService:
    return ChecklistRunService(flights, resolver, PasswordConfirmer(accounts), audit)


def get_auto_import_service(
    flights: FlightRepository = Depends(get_flight_repo),
    aircraft: AircraftRepository = Depends(get_aircraft_repo),
    audit: AuditRepository = Depends(get_audit_repo),
    provider: AdsbProvider = Depends(get_adsb_provider),
) -> AutoImportService:
    return AutoImportService(flights, aircraft, audit, provider)


def get_workflow(
    runs: ChecklistRunService = Depends(get_run_service),
    auto_import: AutoImportService = Depends(get_auto_import_service),
) -> ChecklistWorkflow:
    return ChecklistWorkflow(runs, auto_import)
