"""
Overpass API client: fetches drinking-water amenity nodes around a point
from OpenStreetMap and normalizes them into FountainRecord objects.

Free API, no key required. One POST per fetch, no retry, no pagination.

API docs: https://wiki.openstreetmap.org/wiki/Overpass_API
License: ODbL (OpenStreetMap data)
"""

import json
import logging
from typing import List, Optional

import requests
from pydantic import BaseModel, ValidationError

from src.data.schema import (
    DEFAULT_DESCRIPTION,
    DEFAULT_FOUNTAIN_NAME,
    Coordinate,
    FountainCategory,
    FountainRecord,
)
from src.fountains.config import DEFAULT_RADIUS_M, OVERPASS_INTERPRETER
from src.fountains.errors import EmptyResponseError, NetworkError, ParseError
from src.fountains.geo import is_valid_coordinate

logger = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = " • "

# Map the amenity tag onto our categories; anything else is a plain fountain
AMENITY_TO_CATEGORY = {
    "drinking_water": FountainCategory.DRINKING_FOUNTAIN,
    "water_point": FountainCategory.WATER_STATION,
}


# ---- Response schema ----
# Only the tags below are read; unknown keys are ignored.

class OverpassTags(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    operational: Optional[str] = None
    access: Optional[str] = None
    bottle: Optional[str] = None
    wheelchair: Optional[str] = None
    amenity: Optional[str] = None

    model_config = {"extra": "ignore"}


class OverpassElement(BaseModel):
    id: int
    lat: Optional[float] = None
    lon: Optional[float] = None
    tags: Optional[OverpassTags] = None

    model_config = {"extra": "ignore"}


class OverpassResponse(BaseModel):
    elements: List[OverpassElement]

    model_config = {"extra": "ignore"}


# ---- Query building ----

def build_overpass_query(lat: float, lon: float, radius_m: float) -> str:
    """Overpass QL selecting drinking-water nodes within radius_m of (lat, lon)."""
    around = f"(around:{radius_m:g},{lat},{lon})"
    return (
        "[out:json][timeout:25];\n"
        "(\n"
        f'  node["amenity"="drinking_water"]{around};\n'
        f'  node["amenity"="water_point"]{around};\n'
        f'  node["drinking_water"="yes"]{around};\n'
        ");\n"
        "out body;"
    )


# ---- Parsing ----

def extract_description(tags: Optional[OverpassTags]) -> str:
    """
    Summarize access, bottle refill and wheelchair tags, in that order.

    Returns the generic phrase when none of them is present.
    """
    if tags is None:
        return DEFAULT_DESCRIPTION

    components = []
    if tags.access is not None and tags.access != "yes":
        components.append(f"Access: {tags.access}")
    if tags.bottle == "yes":
        components.append("Bottle refill available")
    if tags.wheelchair == "yes":
        components.append("Wheelchair accessible")

    return DESCRIPTION_SEPARATOR.join(components) if components else DEFAULT_DESCRIPTION


def element_to_record(element: OverpassElement) -> Optional[FountainRecord]:
    """Convert one element; None if it has no usable coordinate."""
    if element.lat is None or element.lon is None:
        return None
    if not is_valid_coordinate(element.lat, element.lon):
        logger.warning(
            "Dropping node %s with out-of-range coordinate (%s, %s)",
            element.id, element.lat, element.lon,
        )
        return None

    tags = element.tags
    name = tags.name if tags and tags.name is not None else DEFAULT_FOUNTAIN_NAME
    if tags and tags.description is not None:
        description = tags.description
    else:
        description = extract_description(tags)
    amenity = tags.amenity if tags else None

    return FountainRecord(
        id=str(element.id),
        name=name,
        coordinate=Coordinate(latitude=element.lat, longitude=element.lon),
        description=description,
        is_operational=not (tags and tags.operational == "no"),
        category=AMENITY_TO_CATEGORY.get(amenity, FountainCategory.DRINKING_FOUNTAIN),
        wheelchair_accessible=True if tags and tags.wheelchair == "yes" else None,
    )


def parse_overpass_response(body: bytes) -> List[FountainRecord]:
    """
    Parse a raw Overpass JSON body into records.

    Raises:
        ParseError: If the body is not JSON or lacks the 'elements' array.
    """
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise ParseError(f"Overpass response is not valid JSON: {e}") from e

    try:
        response = OverpassResponse.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"Overpass response does not match expected schema: {e}") from e

    records = []
    seen_ids = set()
    for element in response.elements:
        record = element_to_record(element)
        if record is None or record.id in seen_ids:
            continue
        seen_ids.add(record.id)
        records.append(record)

    dropped = len(response.elements) - len(records)
    if dropped:
        logger.debug("Skipped %d of %d Overpass elements", dropped, len(response.elements))
    return records


# ---- Client ----

class OverpassClient:
    """
    Executes a single bounded-radius Overpass query per fetch.

    Usage:
        client = OverpassClient()
        fountains = client.fetch(Coordinate(latitude=40.71, longitude=-74.0))
    """

    def __init__(
        self,
        url: str = OVERPASS_INTERPRETER,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout
        if user_agent:
            self.session.headers.update({"User-Agent": user_agent})

    def fetch(self, center: Coordinate, radius_m: float = DEFAULT_RADIUS_M) -> List[FountainRecord]:
        """
        Fetch fountains within radius_m meters of center.

        Raises:
            NetworkError: Transport failure or HTTP error status.
            EmptyResponseError: The service returned no body.
            ParseError: The body did not match the expected schema.
        """
        if radius_m <= 0:
            raise ValueError(f"radius_m must be positive, got {radius_m}")

        query = build_overpass_query(center.latitude, center.longitude, radius_m)
        logger.info(
            "Querying Overpass: lat=%.5f, lon=%.5f, radius=%.0fm",
            center.latitude, center.longitude, radius_m,
        )

        try:
            resp = self.session.post(self.url, data={"data": query}, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning("Overpass API request failed: %s", e)
            raise NetworkError(f"Overpass API request failed: {e}") from e

        if not resp.content:
            logger.warning("Overpass API returned an empty body")
            raise EmptyResponseError("No data received from Overpass API")

        fountains = parse_overpass_response(resp.content)
        logger.info("Parsed %d fountains from Overpass", len(fountains))
        return fountains
