"""Shared fixtures: an in-memory Firestore patched into every repository."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from tests.persistence.fake_firestore import FakeFirestoreClient


@pytest.fixture
def fake_client():
    return FakeFirestoreClient()


@pytest.fixture
def firestore(fake_client):
    with patch(
        "flighttraks.persistence.repositories.base.get_firestore_client",
        return_value=fake_client,
    ):
        yield fake_client
