"""Tests for search window derivation and the escalation ladder."""

from __future__ import annotations

from datetime import timedelta

import pytest

from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.enums import ChecklistPhase, ChecklistRunStatus
from flighttraks.contracts.flight import Flight
from flighttraks.services.errors import InvalidRequestError
from flighttraks.services.matching.window import (
    actual_window,
    derive_window,
    escalation_ladder,
    explicit_window,
    wall_clock_shift,
)
from tests.factories import T0

HOUR = timedelta(hours=1)


def _signed(phase: ChecklistPhase, at) -> ChecklistRun:
    return ChecklistRun(
        flight_id="f1", phase=phase, status=ChecklistRunStatus.SIGNED, signed_at=at
    )


def _runs(pre=None, post=None) -> dict[str, ChecklistRun]:
    runs = {}
    if pre is not None:
        runs["PREFLIGHT"] = _signed(ChecklistPhase.PREFLIGHT, pre)
    if post is not None:
        runs["POSTFLIGHT"] = _signed(ChecklistPhase.POSTFLIGHT, post)
    return runs


class TestDeriveWindow:
    def test_both_signed_uses_signatures(self):
        flight = Flight(planned_start_time=T0 - 5 * HOUR, planned_end_time=T0 - 4 * HOUR)
        window = derive_window(flight, _runs(pre=T0, post=T0 + 2 * HOUR))
        assert window.reference_start == T0
        assert window.reference_end == T0 + 2 * HOUR
        assert window.search_start == T0 - 2 * HOUR
        assert window.search_end == T0 + 4 * HOUR
        assert window.preflight_signed_at == T0

    def test_neither_signed_uses_planned(self):
        flight = Flight(planned_start_time=T0, planned_end_time=T0 + HOUR)
        window = derive_window(flight, {})
        assert (window.reference_start, window.reference_end) == (T0, T0 + HOUR)

    def test_actuals_beat_planned(self):
        flight = Flight(
            planned_start_time=T0, planned_end_time=T0 + HOUR,
            start_time=T0 + HOUR, end_time=T0 + 2 * HOUR,
        )
        window = derive_window(flight)
        assert (window.reference_start, window.reference_end) == (T0 + HOUR, T0 + 2 * HOUR)

    def test_unsigned_run_is_ignored(self):
        runs = {
            "PREFLIGHT": ChecklistRun(
                flight_id="f1", phase=ChecklistPhase.PREFLIGHT,
                status=ChecklistRunStatus.IN_PROGRESS,
            )
        }
        window = derive_window(Flight(planned_start_time=T0), runs)
        assert window.reference_start == T0

    def test_missing_end_collapses_to_start(self):
        window = derive_window(Flight(planned_start_time=T0))
        assert window.reference_end == T0

    def test_reversed_bounds_swapped(self):
        window = derive_window(Flight(planned_start_time=T0 + HOUR, planned_end_time=T0))
        assert (window.reference_start, window.reference_end) == (T0, T0 + HOUR)

    def test_nothing_known(self):
        with pytest.raises(InvalidRequestError):
            derive_window(Flight())

    def test_custom_padding(self):
        window = derive_window(Flight(planned_start_time=T0), padding=timedelta(minutes=30))
        assert window.search_start == T0 - timedelta(minutes=30)


class TestEscalationLadder:
    def test_without_timezone(self):
        base = derive_window(Flight(planned_start_time=T0, planned_end_time=T0 + HOUR))
        ladder = escalation_ladder(Flight(), base)
        assert [w.label for w in ladder] == ["±4h", "±24h"]
        assert ladder[0].search_start == T0 - 4 * HOUR
        assert ladder[1].search_end == T0 + HOUR + 24 * HOUR

    def test_timezone_corrected_variants(self):
        # 16:00 "UTC" entered as Los Angeles wall clock (PDT, UTC-7 in June)
        flight = Flight(
            planned_start_time=T0, planned_end_time=T0 + HOUR, timezone="America/Los_Angeles"
        )
        ladder = escalation_ladder(flight, derive_window(flight))
        assert [w.label for w in ladder] == [
            "±4h", "±4h tz-corrected", "±24h", "±24h tz-corrected",
        ]
        corrected = ladder[1]
        assert corrected.reference_start == T0 + 7 * HOUR
        assert corrected.search_start == T0 + 7 * HOUR - 4 * HOUR

    def test_zero_offset_zone_has_no_variant(self):
        flight = Flight(planned_start_time=T0, timezone="UTC")
        assert len(escalation_ladder(flight, derive_window(flight))) == 2

    def test_unknown_zone_ignored(self):
        flight = Flight(planned_start_time=T0, timezone="Mars/Olympus_Mons")
        assert wall_clock_shift(flight, T0) == timedelta(0)


class TestOtherWindows:
    def test_explicit_window_keeps_reference(self):
        base = derive_window(Flight(planned_start_time=T0, planned_end_time=T0 + HOUR))
        window = explicit_window(base, T0 - 10 * HOUR, T0 - 9 * HOUR)
        assert window.search_start == T0 - 10 * HOUR
        assert window.reference_start == T0
        assert window.label == "explicit"

    def test_explicit_window_must_be_ordered(self):
        base = derive_window(Flight(planned_start_time=T0))
        with pytest.raises(InvalidRequestError):
            explicit_window(base, T0, T0)

    def test_actual_window(self):
        flight = Flight(
            planned_start_time=T0 - 9 * HOUR, start_time=T0, end_time=T0 + HOUR
        )
        window = actual_window(flight)
        assert (window.reference_start, window.reference_end) == (T0, T0 + HOUR)
        assert window.label == "actual"
