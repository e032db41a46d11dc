"""Offline place resolver backed by GeoNames dump files."""

import asyncio
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import httpx
import numpy as np
import structlog
from geopy.distance import distance as geopy_distance
from scipy.spatial import cKDTree

from .config import Settings
from .exceptions import ResolverError, ResolverInitError
from .resolver import AdminArea, CodeOnly, NamedArea, PlaceCandidate, PlaceResolver, RankedCandidates

logger = structlog.get_logger(__name__)

ADMIN1_FILE = "admin1CodesASCII.txt"
ADMIN2_FILE = "admin2Codes.txt"

# Column positions in the GeoNames "geoname" table
COL_GEONAME_ID = 0
COL_NAME = 1
COL_LATITUDE = 4
COL_LONGITUDE = 5
COL_FEATURE_CODE = 7
COL_COUNTRY_CODE = 8
COL_ADMIN1 = 10
COL_ADMIN2 = 11
COL_POPULATION = 14


@dataclass
class GeoNamesPlace:
    geoname_id: int
    name: str
    latitude: float
    longitude: float
    feature_code: str
    country_code: str
    admin1_code: str
    admin2_code: str
    population: int


@dataclass
class GeoNamesIndex:
    places: list[GeoNamesPlace]
    tree: cKDTree
    admin1_names: dict[str, str]
    admin2_names: dict[str, str]


def to_unit_vectors(latitudes: np.ndarray, longitudes: np.ndarray) -> np.ndarray:
    """Project lat/lng degrees onto the unit sphere so euclidean nearest == great-circle nearest."""
    lat = np.radians(latitudes)
    lng = np.radians(longitudes)
    return np.column_stack(
        (np.cos(lat) * np.cos(lng), np.cos(lat) * np.sin(lng), np.sin(lat))
    )


def read_tsv(path: Path) -> Iterator[list[str]]:
    with path.open(encoding="utf-8") as fh:
        for line in fh:
            if not line.strip() or line.startswith("#"):
                continue
            yield line.rstrip("\n").split("\t")


def parse_places(path: Path) -> list[GeoNamesPlace]:
    places = []
    for row in read_tsv(path):
        try:
            places.append(
                GeoNamesPlace(
                    geoname_id=int(row[COL_GEONAME_ID]),
                    name=row[COL_NAME],
                    latitude=float(row[COL_LATITUDE]),
                    longitude=float(row[COL_LONGITUDE]),
                    feature_code=row[COL_FEATURE_CODE],
                    country_code=row[COL_COUNTRY_CODE],
                    admin1_code=row[COL_ADMIN1],
                    admin2_code=row[COL_ADMIN2],
                    population=int(row[COL_POPULATION] or 0),
                )
            )
        except (IndexError, ValueError) as e:
            logger.debug("Skipping malformed GeoNames row", path=str(path), error=str(e))
    return places


def parse_admin_names(path: Path) -> dict[str, str]:
    """Map "CC.A1" / "CC.A1.A2" codes to names."""
    return {row[0]: row[1] for row in read_tsv(path) if len(row) >= 2}


class GeoNamesResolver(PlaceResolver):
    """Nearest populated place lookup over a GeoNames cities dump."""

    def __init__(self, settings: Settings):
        self.data_dir = Path(settings.data_dir)
        self.cities_dataset = settings.cities_dataset
        self.base_url = settings.geonames_base_url.rstrip("/")
        self.download_missing = settings.download_missing
        self.download_timeout = settings.download_timeout
        self.load_admin1 = settings.load_admin1
        self.load_admin2 = settings.load_admin2
        self.index: Optional[GeoNamesIndex] = None

    @property
    def cities_file(self) -> Path:
        return self.data_dir / f"{self.cities_dataset}.txt"

    def required_files(self) -> list[Path]:
        files = [self.cities_file]
        if self.load_admin1:
            files.append(self.data_dir / ADMIN1_FILE)
        if self.load_admin2:
            files.append(self.data_dir / ADMIN2_FILE)
        return files

    async def init(self) -> None:
        """Download missing dump files, then build the search index."""
        logger.info(
            "Initializing GeoNames resolver",
            data_dir=str(self.data_dir),
            dataset=self.cities_dataset,
            load_admin1=self.load_admin1,
            load_admin2=self.load_admin2,
        )
        await self._ensure_files()
        self.index = await asyncio.to_thread(self._build_index)
        logger.info("GeoNames resolver ready", places=len(self.index.places))

    async def _ensure_files(self) -> None:
        missing = [path for path in self.required_files() if not path.exists()]
        if not missing:
            return
        if not self.download_missing:
            raise ResolverInitError(
                "Missing GeoNames data files: " + ", ".join(str(p) for p in missing)
            )

        self.data_dir.mkdir(parents=True, exist_ok=True)
        async with httpx.AsyncClient(
            timeout=self.download_timeout, follow_redirects=True
        ) as client:
            for path in missing:
                if path == self.cities_file:
                    archive = self.data_dir / f"{self.cities_dataset}.zip"
                    await self._download(client, archive.name, archive)
                    await asyncio.to_thread(self._extract, archive, path.name)
                else:
                    await self._download(client, path.name, path)

    async def _download(self, client: httpx.AsyncClient, name: str, target: Path) -> None:
        url = f"{self.base_url}/{name}"
        logger.info("Downloading GeoNames file", url=url, target=str(target))
        partial = target.with_suffix(target.suffix + ".part")
        try:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with partial.open("wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            logger.error("GeoNames download failed", url=url, error=str(e))
            raise ResolverInitError(f"Failed to download {url}: {e}") from e
        partial.replace(target)

    def _extract(self, archive: Path, member: str) -> None:
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extract(member, self.data_dir)
        except (zipfile.BadZipFile, KeyError) as e:
            raise ResolverInitError(f"Cannot extract {member} from {archive}: {e}") from e
        archive.unlink(missing_ok=True)

    def _build_index(self) -> GeoNamesIndex:
        places = parse_places(self.cities_file)
        if not places:
            raise ResolverInitError(f"No places found in {self.cities_file}")

        latitudes = np.fromiter((p.latitude for p in places), dtype=float, count=len(places))
        longitudes = np.fromiter((p.longitude for p in places), dtype=float, count=len(places))
        tree = cKDTree(to_unit_vectors(latitudes, longitudes))

        admin1_names = parse_admin_names(self.data_dir / ADMIN1_FILE) if self.load_admin1 else {}
        admin2_names = parse_admin_names(self.data_dir / ADMIN2_FILE) if self.load_admin2 else {}
        return GeoNamesIndex(
            places=places, tree=tree, admin1_names=admin1_names, admin2_names=admin2_names
        )

    async def lookup(
        self, latitude: float, longitude: float, max_results: int = 1
    ) -> RankedCandidates:
        if self.index is None:
            raise ResolverError("GeoNames resolver has not been initialized")
        candidates = await asyncio.to_thread(self._nearest, latitude, longitude, max_results)
        return [candidates]

    def _nearest(self, latitude: float, longitude: float, max_results: int) -> list[PlaceCandidate]:
        index = self.index
        k = min(max_results, len(index.places))
        if k <= 0:
            return []
        point = to_unit_vectors(np.array([latitude]), np.array([longitude]))[0]
        _, positions = index.tree.query(point, k=k)
        return [
            self._candidate(index, index.places[int(pos)], latitude, longitude)
            for pos in np.atleast_1d(positions)
        ]

    def _admin_area(self, code: str, key: str, names: dict[str, str], load: bool) -> Optional[AdminArea]:
        if not code:
            return None
        if load and key in names:
            return NamedArea(code=code, name=names[key])
        return CodeOnly(code=code)

    def _candidate(
        self, index: GeoNamesIndex, place: GeoNamesPlace, latitude: float, longitude: float
    ) -> PlaceCandidate:
        admin1_key = f"{place.country_code}.{place.admin1_code}"
        admin2_key = f"{admin1_key}.{place.admin2_code}"
        return PlaceCandidate(
            name=place.name,
            latitude=place.latitude,
            longitude=place.longitude,
            country_code=place.country_code,
            admin1=self._admin_area(place.admin1_code, admin1_key, index.admin1_names, self.load_admin1),
            admin2=self._admin_area(place.admin2_code, admin2_key, index.admin2_names, self.load_admin2),
            population=place.population,
            feature_code=place.feature_code,
            geoname_id=place.geoname_id,
            distance_km=round(
                geopy_distance((latitude, longitude), (place.latitude, place.longitude)).km, 3
            ),
        )
