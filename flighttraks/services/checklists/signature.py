"""Signature capture and password re-confirmation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

import bcrypt

from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.enums import ChecklistDecision, ChecklistRunStatus
from flighttraks.persistence.repositories.account_repo import UserAccountRepository
from flighttraks.services.errors import (
    AuthorizationError,
    ChecklistLockedError,
    InvalidRequestError,
)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


@dataclass
class SignatureContext:
    """Who is signing, and from where (best effort)."""

    user_id: str
    signature_name: str
    ip: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_headers(
        cls,
        user_id: str,
        signature_name: str,
        headers: Mapping[str, str],
        client_host: str | None = None,
    ) -> "SignatureContext":
        forwarded = headers.get("x-forwarded-for")
        ip = None
        if forwarded:
            ip = forwarded.split(",")[0].strip() or None
        return cls(
            user_id=user_id,
            signature_name=signature_name,
            ip=ip or client_host,
            user_agent=headers.get("user-agent"),
        )

    def validate(self) -> None:
        if not self.signature_name or not self.signature_name.strip():
            raise InvalidRequestError("Signature name is required.")


class PasswordConfirmer:
    """Re-checks the signer's current password against the stored hash."""

    def __init__(self, accounts: UserAccountRepository):
        self._accounts = accounts

    async def confirm(self, user_id: str, password: str) -> None:
        if not password:
            raise InvalidRequestError("Password is required.")
        account = await self._accounts.get(user_id)
        if account is None or not account.password_hash:
            raise AuthorizationError()
        if not verify_password(password, account.password_hash):
            raise AuthorizationError()


def record_signature(
    run: ChecklistRun,
    signer: SignatureContext,
    decision: ChecklistDecision,
    signed_at: datetime,
    decision_note: str | None = None,
) -> ChecklistRun:
    """Return ``run`` as signed. Signing twice is an error, never a no-op."""
    if run.is_locked:
        raise ChecklistLockedError(run.phase)
    return run.model_copy(
        update={
            "status": ChecklistRunStatus.SIGNED.value,
            "decision": decision.value,
            "decision_note": decision_note,
            "signed_at": signed_at,
            "signed_by_user_id": signer.user_id,
            "signature_name": signer.signature_name.strip(),
            "signature_ip": signer.ip,
            "signature_user_agent": signer.user_agent,
        }
    )
