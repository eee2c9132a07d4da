"""Collapse duplicate provider reports into one candidate per provider flight."""

from __future__ import annotations

from flighttraks.contracts.adsb import FlightCandidate


def dedupe_candidates(candidates: list[FlightCandidate]) -> list[FlightCandidate]:
    """Keep the first candidate per ``provider_flight_id``, in original order.

    Candidates without an identifier are dropped: they can neither be
    deduplicated nor re-attached later.
    """
    seen: set[str] = set()
    deduped: list[FlightCandidate] = []
    for candidate in candidates:
        key = (candidate.provider_flight_id or "").strip()
        if not key or key in seen:
            continue
        seen.add(key)
        deduped.append(candidate)
    return deduped
