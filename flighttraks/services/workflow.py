"""Checklist transitions followed by their post-commit actions.

A post-flight signature is committed first; the ADS-B auto-import runs only
afterwards, and its outcome never affects the signature.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.contracts.flight import Flight
from flighttraks.services.auto_import import AutoImportOutcome, AutoImportService
from flighttraks.services.checklists.run_service import (
    AUTO_IMPORT,
    ChecklistRunService,
    TransitionResult,
)
from flighttraks.services.checklists.signature import SignatureContext

logger = logging.getLogger(__name__)


@dataclass
class SignOutcome:
    flight: Flight
    run: ChecklistRun
    auto_import: AutoImportOutcome | None = None


class ChecklistWorkflow:
    def __init__(self, runs: ChecklistRunService, auto_import: AutoImportService):
        self._runs = runs
        self._auto_import = auto_import

    async def sign(
        self,
        user_id: str,
        flight_id: str,
        phase: ChecklistPhase,
        signer: SignatureContext,
        password: str,
    ) -> SignOutcome:
        result = await self._runs.sign(user_id, flight_id, phase, signer, password)
        return await self.dispatch(user_id, result)

    async def dispatch(self, user_id: str, result: TransitionResult) -> SignOutcome:
        """Run the post-commit actions requested by a committed transition."""
        outcome = SignOutcome(flight=result.flight, run=result.run)
        for action in result.post_commit:
            if action == AUTO_IMPORT:
                outcome.auto_import = await self._auto_import.run(user_id, result.flight.id)
                outcome.flight = outcome.auto_import.flight
            else:
                logger.warning("Unknown post-commit action %r", action)
        return outcome
