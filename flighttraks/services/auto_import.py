"""ADS-B auto-import: find the provider flight matching a completed flight.

``run`` is the automatic path triggered after a post-flight signature. It
never raises: every failure is recorded on the flight as ``FAILED``. The
human operations (``search_candidates``, ``attach_candidate``,
``refresh_track``) share the same primitives but let errors propagate to the
API.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from flighttraks.contracts.adsb import (
    FlightCandidate,
    ScoredCandidate,
    SearchWindow,
    TimeWindow,
)
from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.common import utc_now
from flighttraks.contracts.enums import AutoImportStatus, ChecklistPhase, FlightStatus
from flighttraks.contracts.flight import Flight, FlightTrack
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.repositories.account_repo import AuditRepository
from flighttraks.persistence.repositories.aircraft_repo import AircraftRepository
from flighttraks.persistence.repositories.flight_repo import FlightRepository
from flighttraks.services.adsb.provider import AdsbProvider, ProviderError
from flighttraks.services.errors import (
    AttachConflictError,
    InvalidRequestError,
    PreconditionFailedError,
)
from flighttraks.services.matching.compute import (
    distance_nm,
    duration_minutes,
    sort_track,
    track_stats,
)
from flighttraks.services.matching.dedupe import dedupe_candidates
from flighttraks.services.matching.scoring import MatchPolicy, rank_candidates, select_best
from flighttraks.services.matching.window import (
    actual_window,
    derive_window,
    escalation_ladder,
    explicit_window,
)

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = 20.0


@dataclass
class AutoImportOutcome:
    """What an auto-import attempt did.

    ``skipped`` means the preconditions were not met and nothing was written.
    """

    status: AutoImportStatus
    flight: Flight
    candidates: list[ScoredCandidate] = field(default_factory=list)
    window: SearchWindow | None = None
    error: str | None = None
    skipped: bool = False


@dataclass
class CandidateSearch:
    window: SearchWindow
    candidates: list[ScoredCandidate]


class AutoImportService:
    def __init__(
        self,
        flights: FlightRepository,
        aircraft: AircraftRepository,
        audit: AuditRepository,
        provider: AdsbProvider,
        policy: MatchPolicy | None = None,
        query_timeout: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._flights = flights
        self._aircraft = aircraft
        self._audit = audit
        self._provider = provider
        self._policy = policy or MatchPolicy.from_env()
        self._query_timeout = (
            query_timeout
            if query_timeout is not None
            else float(os.environ.get("AUTO_IMPORT_QUERY_TIMEOUT_SECONDS", DEFAULT_QUERY_TIMEOUT))
        )
        self._clock = clock

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def _tail_number(self, user_id: str, flight: Flight) -> str | None:
        if flight.tail_number and flight.tail_number.strip():
            return flight.tail_number.strip()
        if flight.aircraft_id:
            aircraft = await self._aircraft.get(user_id, flight.aircraft_id)
            if aircraft is not None and aircraft.tail_number.strip():
                return aircraft.tail_number.strip()
        return None

    async def _require_tail_number(self, user_id: str, flight: Flight) -> str:
        tail = await self._tail_number(user_id, flight)
        if not tail:
            raise InvalidRequestError("Flight has no tail number to search for.")
        return tail

    async def _query(self, tail: str, window: SearchWindow) -> list[FlightCandidate]:
        try:
            found = await asyncio.wait_for(
                self._provider.search_flights(tail, window.search_start, window.search_end),
                timeout=self._query_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                f"ADS-B provider timed out after {self._query_timeout:g}s."
            ) from exc
        return dedupe_candidates(found)

    async def _query_ladder(
        self, tail: str, flight: Flight, base: SearchWindow
    ) -> tuple[list[FlightCandidate], SearchWindow]:
        """Query the base window, widening until something comes back."""
        for window in [base, *escalation_ladder(flight, base)]:
            found = await self._query(tail, window)
            logger.info(
                "Flight %s: %d candidates for %s in window %s",
                flight.id, len(found), tail, window.label,
            )
            if found:
                return found, window
        return [], base

    async def _find_by_id(
        self, tail: str, flight: Flight, base: SearchWindow, provider_flight_id: str
    ) -> FlightCandidate | None:
        wanted = provider_flight_id.strip()
        for window in [base, *escalation_ladder(flight, base)]:
            for candidate in await self._query(tail, window):
                if candidate.provider_flight_id.strip() == wanted:
                    return candidate
        return None

    async def _attach(
        self,
        user_id: str,
        flight: Flight,
        candidate: FlightCandidate,
        status: FlightStatus,
    ) -> Flight:
        """Replace the track and copy the candidate's actuals onto the flight."""
        attached = await self._flights.find_by_provider_flight(
            user_id, self._provider.name, candidate.provider_flight_id
        )
        other = next((f for f in attached if f.id != flight.id), None)
        if other is not None:
            raise AttachConflictError(candidate.provider_flight_id, other.id)

        track = sort_track(candidate.track)
        minutes = candidate.duration_minutes
        if minutes is None:
            minutes = duration_minutes(candidate.start_time, candidate.end_time, track)
        distance = candidate.distance_nm
        if distance is None:
            distance = distance_nm(track)

        now = self._clock()
        flight.start_time = candidate.start_time
        flight.end_time = candidate.end_time
        flight.duration_minutes = round(minutes) if minutes is not None else None
        flight.distance_nm = round(distance) if distance is not None else None
        flight.origin = candidate.dep_label
        flight.destination = candidate.arr_label
        flight.stats = candidate.stats or track_stats(track)
        flight.imported_provider = self._provider.name
        flight.provider_flight_id = candidate.provider_flight_id
        flight.status = status.value
        flight.auto_import_status = AutoImportStatus.MATCHED.value
        flight.auto_import_last_error = None
        flight.updated_at = now

        await self._flights.commit_track(
            user_id,
            flight,
            FlightTrack(
                flight_id=flight.id,
                provider=self._provider.name,
                provider_flight_id=candidate.provider_flight_id,
                points=track,
                replaced_at=now,
            ),
        )
        return flight

    async def _set_status(
        self, user_id: str, flight: Flight, status: AutoImportStatus, error: str | None = None
    ) -> None:
        flight.auto_import_status = status.value
        flight.auto_import_last_error = error
        flight.updated_at = self._clock()
        await self._flights.save(user_id, flight.id, flight)

    # ------------------------------------------------------------------
    # Automatic path
    # ------------------------------------------------------------------

    async def run(self, user_id: str, flight_id: str) -> AutoImportOutcome:
        flight = await self._flights.get_or_raise(user_id, flight_id)
        runs = await self._flights.list_runs(user_id, flight_id)

        postflight = runs.get(ChecklistPhase.POSTFLIGHT.value)
        if postflight is None or not postflight.is_signed:
            return AutoImportOutcome(status=flight.auto_import_status, flight=flight, skipped=True)
        tail = await self._tail_number(user_id, flight)
        if not tail:
            logger.info("Flight %s has no tail number, skipping auto-import", flight_id)
            return AutoImportOutcome(status=flight.auto_import_status, flight=flight, skipped=True)
        if flight.is_attached:
            return AutoImportOutcome(status=AutoImportStatus.MATCHED, flight=flight)

        await self._set_status(user_id, flight, AutoImportStatus.RUNNING)
        await self._audit.record(user_id, "adsb_auto_import_started", flight_id, tail_number=tail)

        try:
            return await self._run_matching(user_id, flight, runs, tail)
        except Exception as exc:
            message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
            logger.exception("Auto-import failed for flight %s", flight_id)
            await self._set_status(user_id, flight, AutoImportStatus.FAILED, message)
            await self._audit.record(user_id, "adsb_auto_import_failed", flight_id, error=message)
            return AutoImportOutcome(status=AutoImportStatus.FAILED, flight=flight, error=message)

    async def _run_matching(
        self,
        user_id: str,
        flight: Flight,
        runs: dict[str, ChecklistRun],
        tail: str,
    ) -> AutoImportOutcome:
        base = derive_window(flight, runs)
        found, window = await self._query_ladder(tail, flight, base)
        selection = select_best(found, window.reference_start, window.reference_end, self._policy)

        if selection.is_empty:
            await self._set_status(user_id, flight, AutoImportStatus.NOT_FOUND)
            await self._audit.record(
                user_id, "adsb_auto_import_not_found", flight.id, window=window.label
            )
            logger.info("Flight %s: no ADS-B candidates for %s", flight.id, tail)
            return AutoImportOutcome(status=AutoImportStatus.NOT_FOUND, flight=flight, window=window)

        if not selection.is_clear_match:
            await self._set_status(user_id, flight, AutoImportStatus.AMBIGUOUS)
            await self._audit.record(
                user_id, "adsb_auto_import_ambiguous", flight.id,
                candidates=len(selection.ranked), window=window.label,
            )
            logger.info(
                "Flight %s: %d ambiguous candidates for %s",
                flight.id, len(selection.ranked), tail,
            )
            return AutoImportOutcome(
                status=AutoImportStatus.AMBIGUOUS,
                flight=flight,
                candidates=selection.ranked,
                window=window,
            )

        best = selection.ranked[0]
        flight = await self._attach(user_id, flight, best.candidate, FlightStatus.IMPORTED)
        await self._audit.record(
            user_id, "adsb_auto_import_matched", flight.id,
            provider=self._provider.name,
            provider_flight_id=best.candidate.provider_flight_id,
            score_seconds=best.score_seconds,
        )
        logger.info(
            "Flight %s matched %s (score %.0fs)",
            flight.id, best.candidate.provider_flight_id, best.score_seconds,
        )
        return AutoImportOutcome(
            status=AutoImportStatus.MATCHED,
            flight=flight,
            candidates=selection.ranked,
            window=window,
        )

    # ------------------------------------------------------------------
    # Human operations
    # ------------------------------------------------------------------

    async def search_candidates(
        self, user_id: str, flight_id: str, window: TimeWindow | None = None
    ) -> CandidateSearch:
        """Ranked candidates for manual selection.

        With an explicit ``window`` only that interval is queried; otherwise
        the derived window and its escalation ladder are used.
        """
        flight = await self._flights.get_or_raise(user_id, flight_id)
        runs = await self._flights.list_runs(user_id, flight_id)
        tail = await self._require_tail_number(user_id, flight)

        if window is not None:
            if window.end <= window.start:
                raise InvalidRequestError("Search window end must be after its start.")
            try:
                base = derive_window(flight, runs)
            except InvalidRequestError:
                base = SearchWindow(
                    search_start=window.start,
                    search_end=window.end,
                    reference_start=window.start,
                    reference_end=window.end,
                )
            searched = explicit_window(base, window.start, window.end)
            found = await self._query(tail, searched)
        else:
            found, searched = await self._query_ladder(tail, flight, derive_window(flight, runs))

        ranked = rank_candidates(found, searched.reference_start, searched.reference_end)
        return CandidateSearch(window=searched, candidates=ranked)

    async def attach_candidate(
        self, user_id: str, flight_id: str, provider_flight_id: str
    ) -> Flight:
        """Attach a provider flight chosen by the pilot."""
        if not provider_flight_id or not provider_flight_id.strip():
            raise InvalidRequestError("A provider flight id is required.")
        flight = await self._flights.get_or_raise(user_id, flight_id)
        runs = await self._flights.list_runs(user_id, flight_id)
        tail = await self._require_tail_number(user_id, flight)

        candidate = await self._find_by_id(
            tail, flight, derive_window(flight, runs), provider_flight_id
        )
        if candidate is None:
            raise DocumentNotFoundError("adsb_flights", provider_flight_id)

        flight = await self._attach(user_id, flight, candidate, FlightStatus.IMPORTED)
        await self._audit.record(
            user_id, "adsb_manual_attached", flight_id,
            provider=self._provider.name, provider_flight_id=candidate.provider_flight_id,
        )
        return flight

    async def refresh_track(self, user_id: str, flight_id: str) -> Flight:
        """Re-fetch the track of an already attached flight."""
        flight = await self._flights.get_or_raise(user_id, flight_id)
        if not flight.is_attached:
            raise PreconditionFailedError(
                "flight_attached", "Flight has no ADS-B flight attached."
            )
        if flight.imported_provider != self._provider.name:
            raise PreconditionFailedError(
                "same_provider",
                "Flight was imported from a different ADS-B provider.",
                imported_provider=flight.imported_provider,
            )
        tail = await self._require_tail_number(user_id, flight)

        candidate = await self._find_by_id(
            tail, flight, actual_window(flight), flight.provider_flight_id
        )
        if candidate is None:
            raise DocumentNotFoundError("adsb_flights", flight.provider_flight_id)

        flight = await self._attach(user_id, flight, candidate, FlightStatus.COMPLETED)
        await self._audit.record(
            user_id, "adsb_track_refreshed", flight_id,
            provider_flight_id=candidate.provider_flight_id, points=len(candidate.track),
        )
        return flight
