"""Repository for checklist templates (user-owned and global)."""

from __future__ import annotations

from flighttraks.contracts.checklist import ChecklistTemplate
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.persistence.repositories.base import BaseRepository, GlobalRepository


class GlobalTemplateRepository(GlobalRepository[ChecklistTemplate]):
    def __init__(self):
        super().__init__(ChecklistTemplate, "checklist_templates")


class TemplateRepository(BaseRepository[ChecklistTemplate]):
    """User templates, falling back to the global collection on lookup."""

    def __init__(self):
        super().__init__(ChecklistTemplate, "checklist_templates")
        self.global_templates = GlobalTemplateRepository()

    async def get_visible(self, user_id: str, template_id: str) -> ChecklistTemplate | None:
        """A template the user may use: their own first, then a global one."""
        template = await self.get(user_id, template_id)
        if template is not None:
            template.user_id = user_id
            return template
        template = await self.global_templates.get(template_id)
        if template is not None:
            template.user_id = None
        return template

    async def list_by_phase(
        self, user_id: str, phase: ChecklistPhase
    ) -> list[ChecklistTemplate]:
        """The user's templates for a phase, most recently edited first."""
        templates = await self.list_where(user_id, "phase", phase.value)
        return sorted(
            templates,
            key=lambda t: t.updated_at or t.created_at,
            reverse=True,
        )

    async def list_global_by_phase(self, phase: ChecklistPhase) -> list[ChecklistTemplate]:
        templates = await self.global_templates.list_where("phase", phase.value)
        return sorted(templates, key=lambda t: t.id or "")
