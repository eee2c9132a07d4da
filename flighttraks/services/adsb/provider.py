"""ADS-B provider interface."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from flighttraks.contracts.adsb import FlightCandidate


class ProviderError(Exception):
    """An ADS-B provider call failed (transport, auth, or upstream error)."""

    code = "provider_error"

    def __init__(self, message: str, status: int | None = None):
        self.message = message
        self.status = status
        super().__init__(message)


class AdsbProvider(Protocol):
    """Source of candidate flights for a tail number.

    Implementations return ``[]`` when nothing is found and raise
    ``ProviderError`` on failure.
    """

    name: str

    async def search_flights(
        self, tail_number: str, start: datetime, end: datetime
    ) -> list[FlightCandidate]: ...


def normalize_tail_number(tail_number: str) -> str:
    return "".join(tail_number.split()).upper()
