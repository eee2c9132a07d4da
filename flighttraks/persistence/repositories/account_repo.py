"""Repositories for user accounts and audit events."""

from __future__ import annotations

from flighttraks.contracts.account import AuditEvent, UserAccount
from flighttraks.persistence.repositories.base import BaseRepository, db


class UserAccountRepository:
    """The ``/users/{user_id}`` documents themselves."""

    def _ref(self, user_id: str):
        return db().collection("users").document(user_id)

    async def get(self, user_id: str) -> UserAccount | None:
        doc = await self._ref(user_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        data["id"] = doc.id
        return UserAccount.from_firestore(data)

    async def save(self, user_id: str, account: UserAccount) -> None:
        data = account.to_firestore()
        data.pop("id", None)
        await self._ref(user_id).set(data, merge=True)


class AuditRepository(BaseRepository[AuditEvent]):
    def __init__(self):
        super().__init__(AuditEvent, "audit_events")

    async def record(
        self,
        user_id: str,
        action: str,
        entity_id: str,
        entity_type: str = "Flight",
        **metadata,
    ) -> str:
        event = AuditEvent(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
        )
        return await self.create(user_id, event)
