"""Workflow exceptions raised by the checklist and import services.

The API maps each class to a status code and a machine-readable ``code``
(see ``flighttraks.api.app``). Provider failures live with the providers
(``flighttraks.services.adsb.provider.ProviderError``).
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for all workflow errors."""

    code = "workflow_error"

    def __init__(self, message: str, **details: str | int | float | bool | None):
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidRequestError(WorkflowError):
    """Malformed input, rejected before touching the datastore."""

    code = "invalid_request"


class PreconditionFailedError(WorkflowError):
    """The requested transition is not allowed in the current state."""

    code = "precondition_failed"

    def __init__(self, precondition: str, message: str, **details):
        self.precondition = precondition
        super().__init__(message, precondition=precondition, **details)


class ChecklistLockedError(PreconditionFailedError):
    """The checklist run is signed and can no longer change."""

    code = "checklist_locked"

    def __init__(self, phase: str):
        super().__init__("run_not_signed", "Checklist is signed and locked.", phase=phase)


class AuthorizationError(WorkflowError):
    """Password re-confirmation failed.

    Deliberately identical for a wrong password and a missing account.
    """

    code = "forbidden"

    def __init__(self):
        super().__init__("Password confirmation failed.")


class AttachConflictError(WorkflowError):
    """The provider flight is already attached to another flight."""

    code = "conflict"

    def __init__(self, provider_flight_id: str, other_flight_id: str | None):
        super().__init__(
            "That ADS-B flight is already attached to another flight.",
            provider_flight_id=provider_flight_id,
            other_flight_id=other_flight_id,
        )
