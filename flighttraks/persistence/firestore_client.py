"""Process-wide Firestore client."""

from __future__ import annotations

import logging
import os
from typing import Any

from google.cloud.firestore import AsyncClient

logger = logging.getLogger(__name__)

_client: Any = None


def get_firestore_client() -> Any:
    """Return the shared AsyncClient, creating it on first use.

    Credentials come from Application Default Credentials, or the emulator
    when ``FIRESTORE_EMULATOR_HOST`` is set. ``FLIGHTTRAKS_FIRESTORE_PROJECT``
    and ``FLIGHTTRAKS_FIRESTORE_DATABASE`` select a non-default project or
    named database.
    """
    global _client
    if _client is not None:
        return _client

    project = os.environ.get("FLIGHTTRAKS_FIRESTORE_PROJECT") or None
    database = os.environ.get("FLIGHTTRAKS_FIRESTORE_DATABASE") or None
    _client = AsyncClient(project=project, database=database)
    logger.info(
        "Firestore client ready (project=%s, database=%s, emulator=%s)",
        project or "default",
        database or "(default)",
        os.environ.get("FIRESTORE_EMULATOR_HOST", "off"),
    )
    return _client
