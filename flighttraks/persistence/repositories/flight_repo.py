"""Repository for flights, their checklist runs and their ADS-B tracks."""

from __future__ import annotations

from flighttraks.contracts.checklist import ChecklistRun
from flighttraks.contracts.enums import ChecklistPhase, FlightStatus
from flighttraks.contracts.flight import Flight, FlightTrack
from flighttraks.persistence.repositories.base import BaseRepository, db


class FlightRepository(BaseRepository[Flight]):
    def __init__(self):
        super().__init__(Flight, "flights")

    async def list_by_status(
        self, user_id: str, status: FlightStatus
    ) -> list[Flight]:
        """Return all flights with a given status."""
        return await self.list_where(user_id, "status", status.value)

    async def find_by_provider_flight(
        self, user_id: str, provider: str, provider_flight_id: str
    ) -> list[Flight]:
        """Return the user's flights attached to a given provider flight."""
        query = (
            self._collection_ref(user_id)
            .where("imported_provider", "==", provider)
            .where("provider_flight_id", "==", provider_flight_id)
        )
        results: list[Flight] = []
        async for doc in query.stream():
            results.append(self._hydrate(doc))
        return results

    # ------------------------------------------------------------------
    # Subcollection: checklist_runs (document ID is the phase)
    # ------------------------------------------------------------------

    def _run_collection(self, user_id: str, flight_id: str):
        return (
            self._collection_ref(user_id)
            .document(flight_id)
            .collection("checklist_runs")
        )

    async def get_run(
        self, user_id: str, flight_id: str, phase: ChecklistPhase
    ) -> ChecklistRun | None:
        doc = await self._run_collection(user_id, flight_id).document(phase.value).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        data["id"] = doc.id
        return ChecklistRun.from_firestore(data)

    async def list_runs(self, user_id: str, flight_id: str) -> dict[str, ChecklistRun]:
        """All runs of a flight keyed by phase."""
        runs: dict[str, ChecklistRun] = {}
        async for doc in self._run_collection(user_id, flight_id).stream():
            data = doc.to_dict()
            data["id"] = doc.id
            run = ChecklistRun.from_firestore(data)
            runs[run.phase] = run
        return runs

    async def save_run(self, user_id: str, run: ChecklistRun) -> None:
        data = run.to_firestore()
        data.pop("id", None)
        await self._run_collection(user_id, run.flight_id).document(run.phase).set(data)

    # ------------------------------------------------------------------
    # Tracks: /users/{uid}/tracks/{flight_id}
    # ------------------------------------------------------------------

    def _track_ref(self, user_id: str, flight_id: str):
        return (
            db().collection("users")
            .document(user_id)
            .collection("tracks")
            .document(flight_id)
        )

    async def get_track(self, user_id: str, flight_id: str) -> FlightTrack | None:
        doc = await self._track_ref(user_id, flight_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        data["id"] = doc.id
        return FlightTrack.from_firestore(data)

    # ------------------------------------------------------------------
    # Atomic writes
    # ------------------------------------------------------------------

    async def commit_transition(
        self, user_id: str, flight: Flight, runs: list[ChecklistRun]
    ) -> None:
        """Atomically write checklist runs together with their flight.

        Uses a Firestore batch write so a run is never observed as signed
        while its flight still shows the previous status.
        """
        batch = db().batch()
        for run in runs:
            data = run.to_firestore()
            data.pop("id", None)
            batch.set(self._run_collection(user_id, flight.id).document(run.phase), data)

        flight_data = flight.to_firestore()
        flight_data.pop("id", None)
        batch.set(self._collection_ref(user_id).document(flight.id), flight_data)
        await batch.commit()

    async def commit_track(
        self, user_id: str, flight: Flight, track: FlightTrack
    ) -> None:
        """Atomically replace a flight's track and write the flight.

        The previous track is discarded wholesale; an empty track deletes it.
        """
        batch = db().batch()
        track_ref = self._track_ref(user_id, flight.id)
        batch.delete(track_ref)
        if track.points:
            track_data = track.to_firestore()
            track_data.pop("id", None)
            batch.set(track_ref, track_data)

        flight_data = flight.to_firestore()
        flight_data.pop("id", None)
        batch.set(self._collection_ref(user_id).document(flight.id), flight_data)
        await batch.commit()

    async def delete(self, user_id: str, doc_id: str) -> None:
        """Delete a flight with its checklist runs and track."""
        batch = db().batch()
        async for doc in self._run_collection(user_id, doc_id).stream():
            batch.delete(self._run_collection(user_id, doc_id).document(doc.id))
        batch.delete(self._track_ref(user_id, doc_id))
        batch.delete(self._collection_ref(user_id).document(doc_id))
        await batch.commit()
