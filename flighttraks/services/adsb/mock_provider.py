"""Deterministic provider for development and demos.

Only ``N12345`` has flights: three short hops starting 45 minutes, 4 hours
and 7 hours after the requested window start.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flighttraks.contracts.adsb import FlightCandidate
from flighttraks.contracts.flight import TrackPoint
from flighttraks.services.adsb.provider import normalize_tail_number
from flighttraks.services.matching.compute import distance_nm, track_stats

MOCK_TAIL_NUMBER = "N12345"

# (offset from window start, duration, origin, destination)
_LEGS = [
    (timedelta(minutes=45), timedelta(minutes=40), ("KPAE", 47.9063, -122.2816), ("KSEA", 47.4502, -122.3088)),
    (timedelta(hours=4), timedelta(minutes=38), ("KSEA", 47.4502, -122.3088), ("KBFI", 47.5300, -122.3019)),
    (timedelta(hours=7), timedelta(minutes=42), ("KBFI", 47.5300, -122.3019), ("KRNT", 47.4931, -122.2158)),
]

_POINT_INTERVAL = timedelta(minutes=5)


def _track(start: datetime, duration: timedelta, origin, destination) -> list[TrackPoint]:
    steps = max(1, int(duration / _POINT_INTERVAL))
    points: list[TrackPoint] = []
    for i in range(steps + 1):
        frac = i / steps
        # Climb to 4500 ft at mid-leg, back down.
        altitude = 4500 * (1 - abs(2 * frac - 1))
        points.append(
            TrackPoint(
                recorded_at=start + _POINT_INTERVAL * i if i < steps else start + duration,
                latitude=origin[1] + (destination[1] - origin[1]) * frac,
                longitude=origin[2] + (destination[2] - origin[2]) * frac,
                altitude_ft=round(altitude),
                groundspeed_kt=0 if i in (0, steps) else 110,
            )
        )
    return points


class MockAdsbProvider:
    name = "mock"

    async def search_flights(
        self, tail_number: str, start: datetime, end: datetime
    ) -> list[FlightCandidate]:
        tail = normalize_tail_number(tail_number)
        if tail != MOCK_TAIL_NUMBER:
            return []

        candidates: list[FlightCandidate] = []
        for index, (offset, duration, origin, destination) in enumerate(_LEGS, start=1):
            leg_start = start + offset
            if leg_start > end:
                continue
            track = _track(leg_start, duration, origin, destination)
            distance = distance_nm(track)
            candidates.append(
                FlightCandidate(
                    provider_flight_id=f"mock-flight-{index:03d}",
                    tail_number=tail,
                    start_time=leg_start,
                    end_time=leg_start + duration,
                    duration_minutes=duration.total_seconds() / 60,
                    distance_nm=round(distance, 1) if distance is not None else None,
                    dep_label=origin[0],
                    arr_label=destination[0],
                    stats=track_stats(track),
                    track=track,
                )
            )
        return candidates
