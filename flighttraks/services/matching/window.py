"""Search windows for ADS-B candidate lookup.

The reference interval is the best-known actual span of the flight:
checklist signatures first (the pre-flight is signed before engine start,
the post-flight after shutdown), then actual times, then planned times.
The search interval pads it on both sides, since provider data is keyed to
wheels-up/down which can be tens of minutes to hours away from either.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flighttraks.contracts.adsb import SearchWindow
from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.enums import ChecklistPhase
from flighttraks.contracts.flight import Flight
from flighttraks.services.errors import InvalidRequestError

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PADDING = timedelta(hours=2)

# Widening steps tried, in order, when the base window finds nothing.
ESCALATION_PADDINGS = (timedelta(hours=4), timedelta(hours=24))


def _signed_at(runs: dict[str, ChecklistRun], phase: ChecklistPhase) -> datetime | None:
    run = runs.get(phase.value)
    if run is None or not run.is_signed:
        return None
    return run.signed_at


def _padded(
    reference_start: datetime,
    reference_end: datetime,
    padding: timedelta,
    label: str,
    preflight_signed_at: datetime | None = None,
    postflight_signed_at: datetime | None = None,
) -> SearchWindow:
    return SearchWindow(
        search_start=reference_start - padding,
        search_end=reference_end + padding,
        reference_start=reference_start,
        reference_end=reference_end,
        preflight_signed_at=preflight_signed_at,
        postflight_signed_at=postflight_signed_at,
        label=label,
    )


def derive_window(
    flight: Flight,
    runs: dict[str, ChecklistRun] | None = None,
    padding: timedelta = DEFAULT_SEARCH_PADDING,
) -> SearchWindow:
    """Reference interval from the best available signals, padded for search."""
    runs = runs or {}
    preflight_signed_at = _signed_at(runs, ChecklistPhase.PREFLIGHT)
    postflight_signed_at = _signed_at(runs, ChecklistPhase.POSTFLIGHT)

    start = preflight_signed_at or flight.start_time or flight.planned_start_time
    end = postflight_signed_at or flight.end_time or flight.planned_end_time
    if start is None and end is None:
        raise InvalidRequestError(
            "Flight has no signed, actual or planned times to search around."
        )
    start = start or end
    end = end or start
    if end < start:
        start, end = end, start

    return _padded(
        start, end, padding, "base",
        preflight_signed_at=preflight_signed_at,
        postflight_signed_at=postflight_signed_at,
    )


def explicit_window(
    base: SearchWindow, search_start: datetime, search_end: datetime
) -> SearchWindow:
    """Caller-supplied search interval; the derived reference is kept for scoring."""
    if search_end <= search_start:
        raise InvalidRequestError("Search window end must be after its start.")
    return base.model_copy(
        update={"search_start": search_start, "search_end": search_end, "label": "explicit"}
    )


def wall_clock_shift(flight: Flight, at: datetime) -> timedelta:
    """Correction for times stored as UTC but entered as local wall-clock.

    Returns the amount to *add* to a stored time to get the real UTC instant,
    or zero when the flight has no (valid) timezone.
    """
    if not flight.timezone:
        return timedelta(0)
    try:
        zone = ZoneInfo(flight.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Flight %s has unknown timezone %r", flight.id, flight.timezone)
        return timedelta(0)
    offset = at.replace(tzinfo=zone).utcoffset() or timedelta(0)
    return -offset


def escalation_ladder(flight: Flight, base: SearchWindow) -> list[SearchWindow]:
    """Wider windows to try, in order, after ``base`` came back empty.

    Each padding step is followed by a timezone-corrected variant, for
    providers or pilots that silently localize timestamps.
    """
    shift = wall_clock_shift(flight, base.reference_start)
    ladder: list[SearchWindow] = []
    for padding in ESCALATION_PADDINGS:
        hours = int(padding.total_seconds() // 3600)
        ladder.append(
            _padded(
                base.reference_start, base.reference_end, padding, f"±{hours}h",
                base.preflight_signed_at, base.postflight_signed_at,
            )
        )
        if shift:
            ladder.append(
                _padded(
                    base.reference_start + shift, base.reference_end + shift, padding,
                    f"±{hours}h tz-corrected",
                    base.preflight_signed_at, base.postflight_signed_at,
                )
            )
    return ladder


def actual_window(
    flight: Flight, padding: timedelta = DEFAULT_SEARCH_PADDING
) -> SearchWindow:
    """Window around the flight's recorded actual times (used by refresh)."""
    if flight.start_time is None:
        return derive_window(flight, padding=padding)
    end = flight.end_time or flight.start_time
    return _padded(flight.start_time, max(end, flight.start_time), padding, "actual")
