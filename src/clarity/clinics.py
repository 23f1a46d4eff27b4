"""Nearby clinic lookup: symptom text to specialty, then Google Maps search."""

import asyncio
import logging
import re
from dataclasses import asdict, dataclass
from typing import Optional

import httpx

from clarity.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
PLACES_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
SEARCH_RADIUS_METERS = 8000
MAX_RESULTS = 8

# First match wins.
SPECIALTY_PATTERNS = [
    (re.compile(r"skin|rash|acne|mole|dermat"), "dermatologist"),
    (re.compile(r"tooth|gum|dent"), "dentist"),
    (re.compile(r"eye|vision|ophthalm"), "ophthalmologist"),
    (re.compile(r"throat|ear|nose|sinus|\bent\b"), "otolaryngologist"),
    (re.compile(r"chest pain|shortness|palpit"), "cardiologist"),
    (re.compile(r"stomach|abdomen|nausea|\bgi\b"), "gastroenterologist"),
    (re.compile(r"bone|joint|fracture|ortho"), "orthopedic"),
    (re.compile(r"flu|fever|cough|urgent|injury|stitches"), "urgent care"),
]


def infer_specialty(reason: str) -> str:
    t = (reason or "").lower()
    for pattern, specialty in SPECIALTY_PATTERNS:
        if pattern.search(t):
            return specialty
    return "clinic"


@dataclass
class Clinic:
    name: str
    address: str = ""
    rating: Optional[float] = None
    location: Optional[dict] = None
    phone: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class ClinicSearchClient:
    """Geocodes an address and lists nearby clinics for a specialty.

    Returns an empty list on any failure so callers can fall back to
    manual clinic entry.
    """

    def __init__(self, api_key: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self._circuit = CircuitBreaker(label="Google Maps", failure_threshold=3, cooldown_seconds=60.0)
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self._client.aclose()

    async def _get(self, url: str, params: dict) -> dict:
        resp = await asyncio.wait_for(
            self._client.get(url, params={**params, "key": self.api_key}),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    async def geocode(self, address: str) -> Optional[dict]:
        data = await self._get(GEOCODE_URL, {"address": address})
        results = data.get("results") or []
        if not results:
            return None
        return results[0]["geometry"]["location"]

    async def find_clinics(self, address: str, specialty: str) -> list[Clinic]:
        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY not set, skipping clinic search")
            return []
        if not self._circuit.should_try():
            logger.warning("Google Maps circuit breaker open, skipping clinic search")
            return []
        try:
            location = await self.geocode(address)
            if location is None:
                logger.info("No geocode result for %r", address)
                self._circuit.record_success()
                return []
            data = await self._get(
                PLACES_NEARBY_URL,
                {
                    "location": f"{location['lat']},{location['lng']}",
                    "radius": SEARCH_RADIUS_METERS,
                    "type": "doctor",
                    "keyword": specialty,
                },
            )
        except Exception as e:
            self._circuit.record_failure()
            logger.error(f"Clinic search failed: {e!r}")
            return []
        self._circuit.record_success()

        clinics = []
        for place in (data.get("results") or [])[:MAX_RESULTS]:
            clinics.append(
                Clinic(
                    name=place.get("name", ""),
                    address=place.get("vicinity", ""),
                    rating=place.get("rating"),
                    location=(place.get("geometry") or {}).get("location"),
                )
            )
        logger.info("Found %d %s clinic(s) near %r", len(clinics), specialty, address)
        return clinics
