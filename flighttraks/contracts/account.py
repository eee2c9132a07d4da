"""User accounts and the audit trail.

Accounts are the ``/users/{user_id}`` documents themselves.
Audit events are stored at ``/users/{user_id}/audit_events/{event_id}``.
"""

from typing import Any

from pydantic import Field

from flighttraks.contracts.common import FirestoreModel, UtcDatetime, utc_now


class UserAccount(FirestoreModel):
    """Profile holding the bcrypt hash used for signature re-confirmation."""

    id: str | None = None
    email: str | None = None
    display_name: str | None = None
    password_hash: str | None = Field(default=None, repr=False)


class AuditEvent(FirestoreModel):
    id: str | None = None
    action: str = Field(..., min_length=1, description="e.g. postflight_signed")
    entity_type: str = "Flight"
    entity_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: UtcDatetime = Field(default_factory=utc_now)
