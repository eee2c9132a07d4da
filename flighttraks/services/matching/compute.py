"""Derived flight figures from a provider track."""

from __future__ import annotations

import math
from datetime import datetime

from flighttraks.contracts.flight import FlightStats, TrackPoint

EARTH_RADIUS_NM = 3440.065


def _haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in nautical miles."""
    la1, lo1 = math.radians(lat1), math.radians(lon1)
    la2, lo2 = math.radians(lat2), math.radians(lon2)
    dlat = la2 - la1
    dlon = lo2 - lo1
    a = math.sin(dlat / 2) ** 2 + math.cos(la1) * math.cos(la2) * math.sin(dlon / 2) ** 2
    return 2 * math.asin(math.sqrt(a)) * EARTH_RADIUS_NM


def sort_track(track: list[TrackPoint]) -> list[TrackPoint]:
    return sorted(track, key=lambda p: p.recorded_at)


def distance_nm(track: list[TrackPoint]) -> float | None:
    """Great-circle length of the track, None with fewer than two points."""
    if len(track) < 2:
        return None
    return sum(
        _haversine_nm(a.latitude, a.longitude, b.latitude, b.longitude)
        for a, b in zip(track, track[1:])
    )


def duration_minutes(
    start_time: datetime | None,
    end_time: datetime | None,
    track: list[TrackPoint],
) -> float | None:
    """Block time from explicit times, else from the first/last track point."""
    start, end = start_time, end_time
    if (start is None or end is None) and len(track) >= 2:
        start, end = track[0].recorded_at, track[-1].recorded_at
    if start is None or end is None:
        return None
    minutes = (end - start).total_seconds() / 60
    return minutes if minutes > 0 else None


def track_stats(track: list[TrackPoint]) -> FlightStats:
    altitudes = [p.altitude_ft for p in track if p.altitude_ft is not None]
    speeds = [p.groundspeed_kt for p in track if p.groundspeed_kt is not None]
    return FlightStats(
        max_altitude_ft=max(altitudes) if altitudes else None,
        max_groundspeed_kt=max(speeds) if speeds else None,
    )
