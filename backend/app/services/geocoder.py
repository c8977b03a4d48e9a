"""
Address -> coordinates lookup against a MapQuest-compatible geocoding API.

Thin collaborator: callers treat `None` as "location unknown".
"""
import logging
from dataclasses import dataclass

import httpx

from .. import config

logger = logging.getLogger(__name__)


class GeocoderError(RuntimeError):
    pass


@dataclass(frozen=True)
class GeoLocation:
    longitude: float
    latitude: float
    formatted_address: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    country: str | None = None


def _parse_location(loc: dict) -> GeoLocation | None:
    lat_lng = loc.get("latLng") or loc.get("displayLatLng") or {}
    lat, lng = lat_lng.get("lat"), lat_lng.get("lng")
    if lat is None or lng is None:
        return None

    parts = [
        loc.get("street"),
        loc.get("adminArea5"),
        " ".join(p for p in (loc.get("adminArea3"), loc.get("postalCode")) if p),
        loc.get("adminArea1"),
    ]
    formatted = ", ".join(p for p in parts if p) or None
    return GeoLocation(
        longitude=float(lng),
        latitude=float(lat),
        formatted_address=formatted,
        city=loc.get("adminArea5") or None,
        state=loc.get("adminArea3") or None,
        zipcode=loc.get("postalCode") or None,
        country=loc.get("adminArea1") or None,
    )


def geocode(address: str) -> GeoLocation | None:
    """Return the best match for `address`, or None when unconfigured/unresolvable.

    Raises GeocoderError on transport or HTTP failures.
    """
    address = (address or "").strip()
    if not address:
        return None
    if not config.GEOCODER_API_KEY:
        logger.debug("Geocoder not configured; skipping lookup for %r", address)
        return None

    try:
        with httpx.Client(timeout=config.GEOCODER_TIMEOUT_S) as client:
            r = client.get(
                config.GEOCODER_BASE_URL,
                params={"key": config.GEOCODER_API_KEY, "location": address, "maxResults": 1},
            )
    except httpx.HTTPError as e:
        raise GeocoderError(f"Geocoder request failed: {e}") from e

    if r.status_code >= 400:
        raise GeocoderError(f"Geocoder returned HTTP {r.status_code}")

    data = r.json() or {}
    for result in data.get("results") or []:
        for loc in result.get("locations") or []:
            parsed = _parse_location(loc)
            if parsed is not None:
                return parsed
    return None
