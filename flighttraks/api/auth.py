"""Pilot identity from Firebase ID tokens."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from fastapi import Header, HTTPException
from firebase_admin import auth as firebase_auth

logger = logging.getLogger(__name__)


@dataclass
class UserClaims:
    uid: str
    email: str | None = None
    name: str | None = None


def _local_pilot() -> UserClaims:
    return UserClaims(
        uid=os.environ.get("FLIGHTTRAKS_DEV_UID", "local-pilot"),
        name="Local pilot",
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"}
    )


async def verify_firebase_token(
    authorization: str | None = Header(None, description="Bearer <Firebase ID token>"),
) -> UserClaims:
    """Resolve the signed-in pilot.

    Checklist signatures and audit events are stamped with this uid, so
    revoked tokens are refused as well as expired or forged ones.

    ``FLIGHTTRAKS_AUTH_DISABLED=1`` skips verification for offline work and
    signs everyone in as ``FLIGHTTRAKS_DEV_UID`` (default ``local-pilot``).
    """
    if os.environ.get("FLIGHTTRAKS_AUTH_DISABLED") == "1":
        return _local_pilot()

    if not authorization:
        raise _unauthorized("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Invalid authorization header")

    try:
        decoded = firebase_auth.verify_id_token(token.strip(), check_revoked=True)
    except firebase_auth.RevokedIdTokenError as exc:
        raise _unauthorized("Token has been revoked") from exc
    except firebase_auth.ExpiredIdTokenError as exc:
        raise _unauthorized("Token has expired") from exc
    except firebase_auth.UserDisabledError as exc:
        raise HTTPException(status_code=403, detail="Account is disabled") from exc
    except (firebase_auth.InvalidIdTokenError, ValueError) as exc:
        raise _unauthorized(f"Invalid token: {exc}") from exc
    except firebase_auth.CertificateFetchError as exc:
        logger.warning("Could not fetch Firebase signing certificates: %s", exc)
        raise HTTPException(status_code=503, detail="Authentication unavailable") from exc

    return UserClaims(
        uid=decoded["uid"],
        email=decoded.get("email"),
        name=decoded.get("name"),
    )
