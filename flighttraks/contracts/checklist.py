"""Checklist templates and signed checklist runs.

Templates are stored at ``/users/{user_id}/checklist_templates/{id}`` (user
templates) or ``/checklist_templates/{id}`` (global templates, ``user_id``
is None).

Runs are stored at ``/users/{user_id}/flights/{flight_id}/checklist_runs/{phase}``.
A run embeds a **frozen snapshot** of its template's items: later edits to the
template never reach an existing run.
"""

from typing import Literal, Self

from pydantic import Field, model_validator

from flighttraks.contracts.common import FirestoreModel, UtcDatetime, utc_now
from flighttraks.contracts.enums import (
    ChecklistDecision,
    ChecklistInputType,
    ChecklistItemKind,
    ChecklistPhase,
    ChecklistRunStatus,
)

ItemOrdering = Literal["official", "personal"]


class TemplateItem(FirestoreModel):
    """A section or step of a checklist template.

    ``official_order`` is the authoritative sequence; ``personal_order`` is the
    user-customized one. Display order is always derived by sorting on one of
    them, never from list position.
    """

    id: str = Field(..., min_length=1)
    kind: ChecklistItemKind = ChecklistItemKind.STEP
    parent_id: str | None = None
    official_order: int = Field(..., ge=0)
    personal_order: int = Field(..., ge=0)
    title: str = Field(..., min_length=1, max_length=300)
    details: str | None = None
    required: bool = True
    input_type: ChecklistInputType = ChecklistInputType.CHECK


class ChecklistTemplate(FirestoreModel):
    """Reusable, editable definition of a checklist's sections and steps."""

    id: str | None = None
    user_id: str | None = Field(default=None, description="None for a global template")
    name: str = Field(..., min_length=1, max_length=200)
    phase: ChecklistPhase
    is_default: bool = False
    items: list[TemplateItem] = Field(default_factory=list)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime | None = None

    @model_validator(mode="after")
    def validate_item_tree(self) -> Self:
        by_id: dict[str, TemplateItem] = {}
        for item in self.items:
            if item.id in by_id:
                raise ValueError(f"Duplicate template item id {item.id!r}")
            by_id[item.id] = item

        for item in self.items:
            if item.parent_id is None:
                continue
            parent = by_id.get(item.parent_id)
            if parent is None:
                raise ValueError(
                    f"Item {item.id!r} references unknown parent {item.parent_id!r}"
                )
            if parent.kind != ChecklistItemKind.SECTION:
                raise ValueError(
                    f"Item {item.id!r} has parent {item.parent_id!r} which is not a section"
                )
        return self

    @property
    def step_count(self) -> int:
        return sum(1 for item in self.items if item.kind == ChecklistItemKind.STEP)

    def ordered_items(self, ordering: ItemOrdering = "personal") -> list[TemplateItem]:
        field = f"{ordering}_order"
        return sorted(self.items, key=lambda item: getattr(item, field))


class RunItem(FirestoreModel):
    """Frozen copy of a template item plus the pilot's answer."""

    id: str = Field(..., min_length=1)
    template_item_id: str | None = None
    kind: ChecklistItemKind = ChecklistItemKind.STEP
    parent_id: str | None = None
    official_order: int = Field(..., ge=0)
    personal_order: int = Field(..., ge=0)
    title: str
    details: str | None = None
    required: bool = True
    input_type: ChecklistInputType = ChecklistInputType.CHECK

    # --- Mutable while the run is IN_PROGRESS ---
    completed: bool = False
    completed_at: UtcDatetime | None = None
    notes: str | None = None
    # Tri-state: None means "not answered yet", distinct from an explicit "no".
    value_yes_no: bool | None = None
    value_number: float | None = None
    value_text: str | None = None

    @property
    def is_step(self) -> bool:
        return self.kind == ChecklistItemKind.STEP

    def is_accepted(self) -> bool:
        """Whether this item satisfies its input-type completion rule.

        ``CHECK`` and ``YES_NO`` items must be affirmatively confirmed; having
        been touched (``completed``) is not enough.
        """
        if self.input_type in (ChecklistInputType.CHECK, ChecklistInputType.YES_NO):
            return self.value_yes_no is True
        return self.completed


class ChecklistRun(FirestoreModel):
    """Signable per-flight instantiation of a template for one phase.

    Once ``status`` is ``SIGNED`` the run and all its items are immutable.
    """

    id: str | None = None
    flight_id: str
    phase: ChecklistPhase
    status: ChecklistRunStatus = ChecklistRunStatus.NOT_AVAILABLE
    template_id: str | None = None
    items: list[RunItem] = Field(default_factory=list)

    decision: ChecklistDecision | None = None
    decision_note: str | None = None
    started_at: UtcDatetime | None = None

    # --- Signature ---
    signed_at: UtcDatetime | None = None
    signed_by_user_id: str | None = None
    signature_name: str | None = None
    signature_ip: str | None = None
    signature_user_agent: str | None = None

    @property
    def is_locked(self) -> bool:
        return self.status == ChecklistRunStatus.SIGNED

    @property
    def is_available(self) -> bool:
        return self.status != ChecklistRunStatus.NOT_AVAILABLE

    @property
    def is_signed(self) -> bool:
        return self.status == ChecklistRunStatus.SIGNED

    def find_item(self, item_id: str) -> RunItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def completed_step_count(self) -> int:
        return sum(1 for item in self.items if item.is_step and item.completed)

    def missing_required_items(self) -> list[RunItem]:
        """Required steps that still block signing, in personal order."""
        missing = [
            item for item in self.items
            if item.is_step and item.required and not item.is_accepted()
        ]
        return sorted(missing, key=lambda item: item.personal_order)

    def ordered_items(self, ordering: ItemOrdering = "personal") -> list[RunItem]:
        field = f"{ordering}_order"
        return sorted(self.items, key=lambda item: getattr(item, field))
