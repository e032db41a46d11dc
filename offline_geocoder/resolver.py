"""Place resolver contract and the candidate types it produces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class NamedArea:
    """Administrative area whose name is known."""

    code: str
    name: str


@dataclass(frozen=True)
class CodeOnly:
    """Administrative area known only by its code."""

    code: str


AdminArea = Union[NamedArea, CodeOnly]


def admin_area_to_dict(area: Optional[AdminArea]) -> Optional[dict[str, str]]:
    if area is None:
        return None
    if isinstance(area, NamedArea):
        return {"code": area.code, "name": area.name}
    return {"code": area.code}


@dataclass
class PlaceCandidate:
    """A single nearest-place match returned by a resolver."""

    name: str
    latitude: float
    longitude: float
    country_code: str = ""
    admin1: Optional[AdminArea] = None
    admin2: Optional[AdminArea] = None
    population: int = 0
    feature_code: str = ""
    geoname_id: Optional[int] = None
    distance_km: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation kept as the raw resolver response."""
        return {
            "geonameId": self.geoname_id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "countryCode": self.country_code,
            "admin1Code": admin_area_to_dict(self.admin1),
            "admin2Code": admin_area_to_dict(self.admin2),
            "population": self.population,
            "featureCode": self.feature_code,
            "distanceKm": self.distance_km,
        }


# One list of ranked candidates per query point
RankedCandidates = list[list[PlaceCandidate]]


def raw_response_payload(raw_result: RankedCandidates) -> list[list[dict[str, Any]]]:
    return [[candidate.to_dict() for candidate in ranked] for ranked in raw_result]


class PlaceResolver(ABC):
    """Finds the nearest known place for a coordinate pair."""

    @abstractmethod
    async def init(self) -> None:
        """Load whatever data the resolver needs. Called once per process."""

    @abstractmethod
    async def lookup(
        self, latitude: float, longitude: float, max_results: int = 1
    ) -> RankedCandidates:
        """Return ranked candidates for the point; an empty inner list means no match."""
