"""Shared fixtures for API tests."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from flighttraks.api.app import app
from flighttraks.api.deps import get_adsb_provider, get_current_user
from flighttraks.contracts.account import UserAccount
from flighttraks.persistence.repositories.account_repo import UserAccountRepository
from flighttraks.services.checklists.signature import hash_password
from tests.factories import PASSWORD, StubProvider
from tests.persistence.fake_firestore import FakeFirestoreClient

TEST_USER_ID = "api-test-user"


@pytest.fixture
def fake_client():
    """In-memory Firestore fake, shared across all repos in a single test."""
    return FakeFirestoreClient()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
async def test_app(fake_client, provider):
    """FastAPI app with dependency overrides for testing."""
    # Override auth to return a fixed test user
    app.dependency_overrides[get_current_user] = lambda: TEST_USER_ID
    app.dependency_overrides[get_adsb_provider] = lambda: provider

    with patch(
        "flighttraks.persistence.repositories.base.get_firestore_client",
        return_value=fake_client,
    ):
        await UserAccountRepository().save(
            TEST_USER_ID, UserAccount(password_hash=hash_password(PASSWORD, rounds=4))
        )
        yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    """httpx AsyncClient wired to the test app."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
