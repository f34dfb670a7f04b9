"""
Google Places client used to vet new stores.

A store submitted by a user is only accepted when the Places API finds
exactly one matching place and that place is tagged as a kind of grocery
store. The canonical name, address and coordinates from Places replace
what the user typed.

API Documentation: https://developers.google.com/maps/documentation/places/web-service
"""

import logging
from dataclasses import dataclass

import httpx

from .exceptions import PlacesError, StoreVettingError

logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://maps.googleapis.com/maps/api/place"

# See https://developers.google.com/places/web-service/supported_types#table1
RELEVANT_STORE_TYPES = frozenset(
    {
        "convenience_store",
        "department_store",
        "drugstore",
        "grocery_or_supermarket",
        "liquor_store",
        "pharmacy",
        "supermarket",
    }
)

COUNTRY_SUFFIX = ", United States"


@dataclass
class VettedPlace:
    """Canonical store details returned by Places."""

    place_id: str
    name: str
    address: str
    lat: float
    lng: float


class PlacesClient:
    """Client for the Google Places web service."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = PLACES_API_BASE,
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds

    async def _get(self, path: str, params: dict) -> dict:
        if not self.api_key:
            raise PlacesError("maps client API key is not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/{path}",
                    params={**params, "key": self.api_key},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPError as e:
                logger.warning(f"Places request {path} failed: {e}")
                raise PlacesError(f"places request failed: {e}") from e

        status = data.get("status", "OK")
        if status not in ("OK", "ZERO_RESULTS"):
            message = data.get("error_message") or status
            raise PlacesError(f"places request {path} returned {status}: {message}")
        return data

    async def find_place(self, query: str) -> list[dict]:
        """Candidate places matching free text."""
        data = await self._get(
            "findplacefromtext/json",
            {
                "input": query,
                "inputtype": "textquery",
                "fields": "formatted_address,name,place_id,geometry",
            },
        )
        return data.get("candidates", [])

    async def place_types(self, place_id: str) -> list[str]:
        """The type labels Places assigns to a place."""
        data = await self._get("details/json", {"place_id": place_id, "fields": "types"})
        return (data.get("result") or {}).get("types", [])

    async def vet_store(self, name: str, address: str) -> VettedPlace:
        """
        Verify that ``name`` at ``address`` is one real grocery store.

        Raises:
            StoreVettingError: zero or several candidates, or the candidate
                is not tagged with a relevant store type.
            PlacesError: the API could not be reached.
        """
        candidates = await self.find_place(f"{name} {address}")

        if len(candidates) != 1:
            logger.info(f"The store info {name!r} {address!r} returned {len(candidates)} matches")
            lines = [
                f"found {len(candidates)} store(s) that matched the given store "
                "information, but only 1 store can match."
            ]
            for i, cand in enumerate(candidates, start=1):
                lines.append(f"{i}: {cand.get('name', '')} {cand.get('formatted_address', '')}")
            raise StoreVettingError("\n".join(lines))

        candidate = candidates[0]
        vetted_name = candidate.get("name", "")
        vetted_addr = candidate.get("formatted_address", "").removesuffix(COUNTRY_SUFFIX)
        location = (candidate.get("geometry") or {}).get("location") or {}
        if "lat" not in location or "lng" not in location:
            raise StoreVettingError(f"no coordinates returned for {vetted_name!r} {vetted_addr!r}")

        types = await self.place_types(candidate["place_id"])
        if not RELEVANT_STORE_TYPES.intersection(types):
            raise StoreVettingError(
                f"could not verify store info {vetted_name!r} {vetted_addr!r} as a real grocery store"
            )

        place = VettedPlace(
            place_id=candidate["place_id"],
            name=vetted_name,
            address=vetted_addr,
            lat=float(location["lat"]),
            lng=float(location["lng"]),
        )
        logger.info(
            f"Store {name!r} {address!r} vetted and changed to "
            f"{place.name!r} {place.address!r} ({place.lat:f}, {place.lng:f})"
        )
        return place
