"""Template snapshots: copy a mutable template into an independent checklist run."""

from __future__ import annotations

import uuid
from typing import Callable

from flighttraks.contracts.checklist import ChecklistRun, ChecklistTemplate, RunItem
from flighttraks.services.errors import ChecklistLockedError, PreconditionFailedError


def _new_item_id() -> str:
    return uuid.uuid4().hex[:20]


def build_run_items(
    template: ChecklistTemplate,
    id_factory: Callable[[], str] = _new_item_id,
) -> list[RunItem]:
    """Copy every template item into a fresh, not-completed run item.

    Parent references are remapped to the new run item IDs, and both
    orderings are preserved. Items come out in personal order.
    """
    ordered = template.ordered_items("personal")
    new_ids = {item.id: id_factory() for item in ordered}

    return [
        RunItem(
            id=new_ids[item.id],
            template_item_id=item.id,
            kind=item.kind,
            parent_id=new_ids.get(item.parent_id) if item.parent_id else None,
            official_order=item.official_order,
            personal_order=item.personal_order,
            title=item.title,
            details=item.details,
            required=item.required,
            input_type=item.input_type,
        )
        for item in ordered
    ]


def snapshot_template(
    run: ChecklistRun,
    template: ChecklistTemplate,
    id_factory: Callable[[], str] = _new_item_id,
) -> ChecklistRun:
    """Return ``run`` with its items rebuilt from ``template``.

    Current items are discarded, never patched in place.
    """
    return run.model_copy(
        update={
            "template_id": template.id,
            "items": build_run_items(template, id_factory),
        }
    )


def replace_run_items(
    run: ChecklistRun,
    template: ChecklistTemplate,
    id_factory: Callable[[], str] = _new_item_id,
) -> ChecklistRun:
    """Re-snapshot a run that has not made any progress yet."""
    if run.is_locked:
        raise ChecklistLockedError(run.phase)
    completed = run.completed_step_count()
    if completed:
        raise PreconditionFailedError(
            "no_completed_steps",
            "Checklist already has completed steps; its template can no longer change.",
            completed_steps=completed,
        )
    return snapshot_template(run, template, id_factory)
