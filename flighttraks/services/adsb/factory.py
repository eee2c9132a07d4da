"""Provider selection from ``ADSB_PROVIDER`` (``mock`` or ``aeroapi``)."""

from __future__ import annotations

import logging
import os

import httpx

from flighttraks.services.adsb.aeroapi_client import AeroApiClient
from flighttraks.services.adsb.mock_provider import MockAdsbProvider
from flighttraks.services.adsb.provider import AdsbProvider

logger = logging.getLogger(__name__)


def create_provider(
    name: str | None = None, http_client: httpx.AsyncClient | None = None
) -> AdsbProvider:
    name = (name or os.environ.get("ADSB_PROVIDER", "mock")).strip().lower()
    if name == "aeroapi":
        return AeroApiClient(http_client=http_client)
    if name != "mock":
        logger.warning("Unknown ADSB_PROVIDER %r, using mock provider", name)
    return MockAdsbProvider()
