"""
Address geocoding through the Google Maps Geocoding API.
"""

from dataclasses import dataclass
from typing import Optional, List, Dict, Any
import httpx
import logging

from grihome.config import settings

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str
    city: str = ""
    state: str = ""
    country: str = ""
    zipcode: str = ""
    locality: str = ""


def geocoding_enabled() -> bool:
    return bool(settings.google_maps_api_key)


def _component(components: List[Dict[str, Any]], *types: str) -> str:
    for component in components:
        if any(t in component.get("types", []) for t in types):
            return component.get("long_name", "")
    return ""


def parse_geocode_result(result: Dict[str, Any]) -> GeocodeResult:
    """
    Pull coordinates and address parts out of one Geocoding API result.
    Sub-localities (e.g. a neighbourhood) become the locality and the main
    locality becomes the city.
    """
    components = result.get("address_components", [])
    location = result["geometry"]["location"]

    main_locality = _component(components, "locality")
    sub_locality = (
        _component(components, "sublocality_level_1")
        or _component(components, "sublocality_level_2")
        or _component(components, "sublocality")
    )

    return GeocodeResult(
        latitude=float(location["lat"]),
        longitude=float(location["lng"]),
        formatted_address=result.get("formatted_address", ""),
        city=main_locality or _component(components, "administrative_area_level_2"),
        state=_component(components, "administrative_area_level_1"),
        country=_component(components, "country"),
        zipcode=_component(components, "postal_code"),
        locality=sub_locality or main_locality,
    )


async def geocode_address(address: str) -> Optional[GeocodeResult]:
    """
    Returns None when no API key is configured, the address is unknown or the
    request fails.
    """
    if not geocoding_enabled() or not address:
        return None

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.get(
                GEOCODE_URL,
                params={"address": address, "key": settings.google_maps_api_key},
            )
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Geocoding request failed for '{address}': {e}")
        return None

    if data.get("status") != "OK" or not data.get("results"):
        logger.info(f"Geocoding returned {data.get('status')} for '{address}'")
        return None

    return parse_geocode_result(data["results"][0])
