"""FlightAware AeroAPI (v4) client.

Lookup order for a tail number, stopping at the first non-empty answer:

1. ``/history/flights/{tail}?ident_type=registration`` (past flights)
2. ``/flights/{tail}`` (recent / live)
3. ``/flights/search`` with a few query variants

A 404 on any step just means "try the next one"; any other error status, or
a body that is not a JSON object, raises ``ProviderError``. Each flight's track is
fetched from the history endpoint, then the live one.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import httpx
from pydantic import ValidationError

from flighttraks.contracts.adsb import FlightCandidate
from flighttraks.contracts.flight import TrackPoint
from flighttraks.services.adsb.provider import ProviderError, normalize_tail_number
from flighttraks.services.matching.compute import (
    distance_nm,
    duration_minutes,
    sort_track,
    track_stats,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "aeroapi"
DEFAULT_BASE_URL = "https://aeroapi.flightaware.com/aeroapi"

_GROUNDSPEED_KEYS = (
    "groundspeed",
    "ground_speed",
    "ground_speed_kt",
    "groundspeed_kt",
    "groundspeed_kts",
    "groundspeed_knots",
)


def resolve_api_key() -> str | None:
    """``AEROAPI_KEY``, else the contents of ``AEROAPI_KEY_FILE``."""
    key = os.environ.get("AEROAPI_KEY", "").strip()
    if key:
        return key
    key_file = os.environ.get("AEROAPI_KEY_FILE", "").strip()
    if not key_file:
        return None
    try:
        return Path(key_file).read_text(encoding="utf-8").strip() or None
    except OSError:
        logger.warning("Could not read AEROAPI_KEY_FILE %s", key_file)
        return None


class AeroApiClient:
    """Async AeroAPI client implementing the ADS-B provider interface."""

    name = PROVIDER_NAME

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key if api_key is not None else resolve_api_key()
        self._base_url = (
            base_url or os.environ.get("AEROAPI_API_BASE") or DEFAULT_BASE_URL
        ).rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=15.0)

    async def _get(self, path: str, params: dict | None = None) -> dict:
        if not self._api_key:
            raise ProviderError("AeroAPI key is missing.")
        clean = {k: v for k, v in (params or {}).items() if v not in (None, "")}
        try:
            resp = await self._client.get(
                f"{self._base_url}{path}",
                params=clean,
                headers={"x-apikey": self._api_key},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"AeroAPI request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise ProviderError(
                f"AeroAPI request failed with status {resp.status_code}.",
                status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"AeroAPI returned a non-JSON body for {path}.") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"AeroAPI returned an unexpected payload for {path}.")
        return data

    async def _get_flights(self, path: str, params: dict) -> list[dict]:
        """GET a flight list; 404 means none."""
        try:
            data = await self._get(path, params)
        except ProviderError as exc:
            if exc.status == 404:
                return []
            raise
        flights = data.get("flights") or []
        if not isinstance(flights, list):
            raise ProviderError(f"AeroAPI returned an unexpected flight list for {path}.")
        return [f for f in flights if isinstance(f, dict)]

    async def search_flights(
        self, tail_number: str, start: datetime, end: datetime
    ) -> list[FlightCandidate]:
        tail = normalize_tail_number(tail_number)
        flights = await self._find_flights(tail, start, end)
        candidates: list[FlightCandidate] = []
        for summary in flights:
            candidate = await self._to_candidate(tail, summary)
            if candidate is not None:
                candidates.append(candidate)
        logger.info("AeroAPI: %d candidates for %s", len(candidates), tail)
        return candidates

    async def _find_flights(self, tail: str, start: datetime, end: datetime) -> list[dict]:
        iso_start, iso_end = _iso(start), _iso(end)

        flights = await self._get_flights(
            f"/history/flights/{tail}",
            {"ident_type": "registration", "start": iso_start, "end": iso_end, "max_pages": 5},
        )
        if flights:
            return flights

        flights = await self._get_flights(
            f"/flights/{tail}", {"start": iso_start, "end": iso_end, "max_pages": 5}
        )
        if flights:
            return flights

        epoch_start, epoch_end = int(start.timestamp()), int(end.timestamp())
        queries = [
            f"-idents {tail} -begin {epoch_start} -end {epoch_end}",
            f"-ident {tail} -begin {epoch_start} -end {epoch_end}",
            f"-idents {tail}",
            f"-ident {tail}",
        ]
        for query in queries:
            found = await self._get_flights("/flights/search", {"query": query, "max_pages": 5})
            if found:
                # Search results carry plain-string airports.
                return [
                    {
                        **f,
                        "origin": _as_airport(f.get("origin")),
                        "destination": _as_airport(f.get("destination")),
                    }
                    for f in found
                ]
        return []

    async def _get_track(self, fa_flight_id: str) -> list[TrackPoint]:
        for path in (
            f"/history/flights/{fa_flight_id}/track",
            f"/flights/{fa_flight_id}/track",
        ):
            try:
                data = await self._get(path, {"include_estimated_positions": "true"})
            except ProviderError as exc:
                logger.debug("Track lookup %s failed: %s", path, exc)
                continue
            return _parse_track(data)
        return []

    async def _to_candidate(self, tail: str, summary: dict) -> FlightCandidate | None:
        fa_flight_id = summary.get("fa_flight_id")
        if not fa_flight_id:
            return None

        track = await self._get_track(fa_flight_id)
        start = _first_time(summary, "actual_off", "estimated_off", "scheduled_off", "departuretime")
        end = _first_time(summary, "actual_on", "estimated_on", "scheduled_on", "arrivaltime")
        if track:
            start = start or track[0].recorded_at
            end = end or track[-1].recorded_at
        if start is None or end is None:
            return None

        distance = distance_nm(track)
        return FlightCandidate(
            provider_flight_id=f"{PROVIDER_NAME}-{fa_flight_id}",
            tail_number=tail,
            start_time=start,
            end_time=max(start, end),
            duration_minutes=duration_minutes(start, end, track),
            distance_nm=distance,
            dep_label=_airport_label(summary.get("origin")),
            arr_label=_airport_label(summary.get("destination")),
            stats=track_stats(track),
            track=track,
        )


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _as_airport(value):
    if isinstance(value, str) and value.strip():
        return {"code": value.strip()}
    return value if isinstance(value, dict) else None


def _parse_time(value) -> datetime | None:
    """AeroAPI mixes ISO-8601 strings and epoch seconds."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _parse_number(value) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _first_time(summary: dict, *keys: str) -> datetime | None:
    for key in keys:
        parsed = _parse_time(summary.get(key))
        if parsed is not None:
            return parsed
    return None


def _airport_label(value) -> str:
    if isinstance(value, str):
        return value.strip() or "Unknown"
    if isinstance(value, dict):
        return value.get("code") or value.get("icao") or value.get("iata") or "Unknown"
    return "Unknown"


def _parse_track(data: dict) -> list[TrackPoint]:
    points: list[TrackPoint] = []
    for position in data.get("positions") or []:
        if not isinstance(position, dict):
            continue
        recorded_at = _parse_time(position.get("timestamp"))
        lat = _parse_number(position.get("latitude"))
        lon = _parse_number(position.get("longitude"))
        if recorded_at is None or lat is None or lon is None:
            continue
        speed = next(
            (_parse_number(position[k]) for k in _GROUNDSPEED_KEYS if position.get(k) is not None),
            None,
        )
        heading = _parse_number(position.get("heading"))
        try:
            point = TrackPoint(
                recorded_at=recorded_at,
                latitude=lat,
                longitude=lon,
                altitude_ft=_parse_number(position.get("altitude")),
                groundspeed_kt=speed if speed is None or speed >= 0 else None,
                heading_deg=round(heading) if heading is not None else None,
            )
        except ValidationError:
            logger.debug("Dropping invalid AeroAPI position %r", position)
            continue
        points.append(point)

    # Some endpoints report altitude in hundreds of feet (34 = 3,400 ft).
    max_altitude = max((p.altitude_ft or 0 for p in points), default=0)
    if 0 < max_altitude <= 700:
        for p in points:
            if p.altitude_ft is not None:
                p.altitude_ft = round(p.altitude_ft * 100)
    return sort_track(points)
