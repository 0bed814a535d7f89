from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Location:
    location_id: str
    name: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    popularity_score: int = 0
    is_active: bool = True
