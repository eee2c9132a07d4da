"""Repositories for aircraft and global aircraft types."""

from __future__ import annotations

from flighttraks.contracts.aircraft import Aircraft, AircraftType
from flighttraks.persistence.repositories.base import BaseRepository, GlobalRepository


class AircraftRepository(BaseRepository[Aircraft]):
    def __init__(self):
        super().__init__(Aircraft, "aircraft")


class AircraftTypeRepository(GlobalRepository[AircraftType]):
    def __init__(self):
        super().__init__(AircraftType, "aircraft_types")
