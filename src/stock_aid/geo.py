"""
Postal code coordinates and great-circle distance.

The coordinate table is built once from a GeoNames postal code dump
(tab-separated: country, postal code, place name, admin fields...,
latitude in column 9, longitude in column 10) and shared read-only.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from .exceptions import ReferenceDataError

logger = logging.getLogger(__name__)

ZIP_COLUMN = 1
LAT_COLUMN = 9
LNG_COLUMN = 10


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in degrees."""

    lat: float
    lng: float


# Used when a postal code is missing from the table. Results are then
# ranked by their distance from (0, 0), which is a known limitation.
FALLBACK_COORDINATE = Coordinate(0.0, 0.0)


def distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in statute miles between two points.

    Spherical law of cosines. The cosine is clamped to 1.0 so nearly
    identical points do not push acos out of its domain.
    """
    radlat1 = math.pi * lat1 / 180
    radlat2 = math.pi * lat2 / 180

    theta = lng1 - lng2
    radtheta = math.pi * theta / 180

    dist = math.sin(radlat1) * math.sin(radlat2) + math.cos(radlat1) * math.cos(
        radlat2
    ) * math.cos(radtheta)
    if dist > 1:
        dist = 1

    dist = math.acos(dist)
    dist = dist * 180 / math.pi
    # 60 nautical miles per degree of arc, 1.1515 statute miles per nautical mile
    return dist * 60 * 1.1515


class CoordinateTable:
    """Immutable postal code -> Coordinate mapping."""

    def __init__(self, coordinates: Mapping[str, Coordinate]):
        self._coordinates = MappingProxyType(dict(coordinates))

    def __len__(self) -> int:
        return len(self._coordinates)

    def __contains__(self, zip_code: object) -> bool:
        return zip_code in self._coordinates

    def get(self, zip_code: str) -> Coordinate | None:
        """Exact lookup; None when the postal code is unknown."""
        return self._coordinates.get(zip_code)

    def resolve(self, zip_code: str) -> Coordinate:
        """Coordinate for a postal code, or FALLBACK_COORDINATE if unknown."""
        coord = self._coordinates.get(zip_code)
        if coord is None:
            logger.warning(f"No coordinates for postal code {zip_code!r}, using fallback")
            return FALLBACK_COORDINATE
        return coord

    @classmethod
    def from_lines(cls, lines) -> "CoordinateTable":
        """Parse GeoNames-format lines. Malformed lines are skipped."""
        coordinates: dict[str, Coordinate] = {}
        for lineno, line in enumerate(lines, start=1):
            line = line.rstrip("\r\n")
            if not line:
                continue
            data = line.split("\t")
            if len(data) <= LNG_COLUMN:
                logger.debug(f"Skipping short postal code line {lineno}")
                continue
            try:
                lat = float(data[LAT_COLUMN])
                lng = float(data[LNG_COLUMN])
            except ValueError:
                logger.debug(f"Skipping postal code line {lineno} with bad coordinates")
                continue
            coordinates[data[ZIP_COLUMN].strip()] = Coordinate(lat, lng)
        return cls(coordinates)

    @classmethod
    def load(cls, path: Path) -> "CoordinateTable":
        """Load the table from a GeoNames postal code file."""
        try:
            with open(path, encoding="utf-8") as f:
                table = cls.from_lines(f)
        except OSError as e:
            raise ReferenceDataError(f"failed to open zip code data file {path}: {e}") from e

        logger.info(f"Parsed {len(table)} postal code coordinates from {path}")
        return table
