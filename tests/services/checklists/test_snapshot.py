"""Tests for template snapshots."""

from __future__ import annotations

import itertools

import pytest

from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.enums import ChecklistPhase, ChecklistRunStatus
from flighttraks.services.checklists.snapshot import (
    build_run_items,
    replace_run_items,
    snapshot_template,
)
from flighttraks.services.errors import ChecklistLockedError, PreconditionFailedError
from tests.factories import item_for, make_template


def _ids():
    counter = itertools.count(1)
    return lambda: f"item-{next(counter)}"


class TestBuildRunItems:
    def test_one_run_item_per_template_item(self):
        template = make_template()
        items = build_run_items(template, _ids())
        assert len(items) == len(template.items)
        assert {i.template_item_id for i in items} == {i.id for i in template.items}

    def test_fresh_ids_and_remapped_parents(self):
        items = build_run_items(make_template(), _ids())
        by_template = {i.template_item_id: i for i in items}
        cabin = by_template["cabin"]
        assert cabin.id != "cabin"
        for child in ("docs", "fuel", "squawks"):
            assert by_template[child].parent_id == cabin.id
        assert by_template["controls"].parent_id is None

    def test_both_orderings_preserved(self):
        template = make_template()
        items = build_run_items(template, _ids())
        for item in items:
            source = next(t for t in template.items if t.id == item.template_item_id)
            assert item.official_order == source.official_order
            assert item.personal_order == source.personal_order

    def test_items_start_unanswered(self):
        for item in build_run_items(make_template(), _ids()):
            assert not item.completed
            assert item.value_yes_no is None
            assert item.completed_at is None


class TestSnapshotIsolation:
    def test_template_edit_does_not_reach_run(self):
        template = make_template(template_id="t1")
        run = snapshot_template(ChecklistRun(flight_id="f1", phase=ChecklistPhase.PREFLIGHT), template)

        template.items[1].title = "Renamed"
        assert item_for(run, "docs").title == "Documents on board"
        assert run.template_id == "t1"


class TestReplaceRunItems:
    def _run(self):
        return snapshot_template(
            ChecklistRun(flight_id="f1", phase=ChecklistPhase.PREFLIGHT), make_template()
        )

    def test_resnapshot_without_progress_is_idempotent_in_count(self):
        run = self._run()
        again = replace_run_items(run, make_template(name="Other"))
        assert len(again.items) == len(run.items)

    def test_completed_step_blocks_replacement(self):
        run = self._run()
        item_for(run, "fuel").completed = True
        with pytest.raises(PreconditionFailedError) as exc_info:
            replace_run_items(run, make_template())
        assert exc_info.value.precondition == "no_completed_steps"

    def test_signed_run_is_locked(self):
        run = self._run().model_copy(update={"status": ChecklistRunStatus.SIGNED.value})
        with pytest.raises(ChecklistLockedError):
            replace_run_items(run, make_template())
