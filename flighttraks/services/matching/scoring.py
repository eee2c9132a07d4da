"""Candidate scoring and best-match selection."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta

from flighttraks.contracts.adsb import CandidateSelection, FlightCandidate, ScoredCandidate


def score_interval(
    reference_start: datetime,
    reference_end: datetime,
    candidate_start: datetime,
    candidate_end: datetime,
) -> float:
    """Temporal distance in seconds between a candidate and the reference.

    For a candidate that overlaps or touches the reference: the smaller of
    the candidate time outside the reference and the reference time the
    candidate does not cover. Zero when either interval contains the other
    (a flight inside the signed checklist span, or a reference inside a long
    provider segment), and never more than the reference length.

    For a disjoint candidate: the whole reference length plus the gap. Any
    disjoint candidate therefore scores strictly worse than any candidate
    that overlaps or touches the reference, whatever their lengths.
    """
    ref_len = (reference_end - reference_start).total_seconds()
    overlap = (
        min(reference_end, candidate_end) - max(reference_start, candidate_start)
    ).total_seconds()
    if overlap < 0:
        return ref_len - overlap

    outside = (
        max(0.0, (reference_start - candidate_start).total_seconds())
        + max(0.0, (candidate_end - reference_end).total_seconds())
    )
    uncovered = ref_len - overlap
    return max(0.0, min(outside, uncovered))


def rank_candidates(
    candidates: list[FlightCandidate],
    reference_start: datetime,
    reference_end: datetime,
) -> list[ScoredCandidate]:
    """Ascending by score; ties keep discovery order (``sorted`` is stable)."""
    scored = [
        ScoredCandidate(
            candidate=candidate,
            score_seconds=score_interval(
                reference_start, reference_end, candidate.start_time, candidate.end_time
            ),
        )
        for candidate in candidates
    ]
    return sorted(scored, key=lambda s: s.score_seconds)


@dataclass(frozen=True)
class MatchPolicy:
    """When a ranking is confident enough to attach without asking.

    ``match_tolerance``: the best score must be at or below this.
    ``ambiguity_margin``: the runner-up must be at least this much worse.
    """

    match_tolerance: timedelta = timedelta(minutes=20)
    ambiguity_margin: timedelta = timedelta(minutes=20)

    @classmethod
    def from_env(cls) -> "MatchPolicy":
        return cls(
            match_tolerance=timedelta(
                minutes=float(os.environ.get("AUTO_IMPORT_MATCH_TOLERANCE_MINUTES", "20"))
            ),
            ambiguity_margin=timedelta(
                minutes=float(os.environ.get("AUTO_IMPORT_AMBIGUITY_MARGIN_MINUTES", "20"))
            ),
        )


def select_best(
    candidates: list[FlightCandidate],
    reference_start: datetime,
    reference_end: datetime,
    policy: MatchPolicy = MatchPolicy(),
) -> CandidateSelection:
    ranked = rank_candidates(candidates, reference_start, reference_end)
    if not ranked:
        return CandidateSelection()

    best = ranked[0]
    confident = best.score_seconds <= policy.match_tolerance.total_seconds()
    if len(ranked) > 1:
        margin = ranked[1].score_seconds - best.score_seconds
        unambiguous = margin >= policy.ambiguity_margin.total_seconds()
    else:
        unambiguous = True

    return CandidateSelection(
        ranked=ranked,
        selected=best.candidate,
        is_clear_match=confident and unambiguous,
    )
