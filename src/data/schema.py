"""
Canonical schema definitions for fountain records and the JSON shape they
take in the local cache.
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


DEFAULT_FOUNTAIN_NAME = "Drinking Fountain"
DEFAULT_DESCRIPTION = "Public drinking water"

# A user-authored fountain counts as verified for this many days
VERIFIED_WITHIN_DAYS = 30


# ---------- Enumerations ----------

class FountainCategory(str, Enum):
    ALL = "All"
    DRINKING_FOUNTAIN = "Drinking Fountain"
    WATER_STATION = "Water Station"
    REFILL_STATION = "Refill Station"
    PUBLIC_FACILITY = "Public Facility"
    RESTAURANT = "Restaurant"
    STORE = "Store"


class SortOption(str, Enum):
    DISTANCE = "Distance"
    NAME = "Name"
    RATING = "Rating"
    NEWEST = "Newest"


class FountainType(str, Enum):
    STANDARD = "Standard"
    BOTTLE_FILLER = "Bottle Filler"
    COMBINED = "Combined"
    PET_FRIENDLY = "Pet Friendly"
    FILTERED = "Filtered"


class FountainStatus(str, Enum):
    ACTIVE = "Active"
    OUT_OF_ORDER = "Out of Order"
    REMOVED = "Removed"
    UNDER_MAINTENANCE = "Under Maintenance"


class Amenity(str, Enum):
    COLD = "Cold Water"
    HOT = "Hot Water"
    SPARKLING = "Sparkling Water"
    INDOOR = "Indoor"
    OUTDOOR = "Outdoor"
    TWENTY_FOUR_SEVEN = "24/7 Access"
    SECURE = "Secure Location"


# ---------- Records ----------

class Coordinate(BaseModel):
    """A WGS84 point."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    model_config = {"frozen": True}


def new_fountain_id() -> str:
    """Identifier for a locally authored fountain."""
    return str(uuid.uuid4())


class FountainRecord(BaseModel):
    """
    Normalized fountain entity.

    Records from the remote geodata source carry only the core fields plus a
    category; the remaining metadata is filled in for user-authored entries
    and is carried through the cache untouched.
    """
    id: str = Field(default_factory=new_fountain_id)
    name: str = DEFAULT_FOUNTAIN_NAME
    coordinate: Coordinate
    description: str = DEFAULT_DESCRIPTION
    is_operational: bool = True

    category: Optional[FountainCategory] = None
    address: Optional[str] = None
    building: Optional[str] = None
    floor: Optional[str] = None
    fountain_type: Optional[FountainType] = None
    wheelchair_accessible: Optional[bool] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: int = Field(0, ge=0)
    status: Optional[FountainStatus] = None
    amenities: List[Amenity] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    added_by: Optional[str] = None
    created_at: Optional[datetime] = None
    last_verified: Optional[datetime] = None

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "alias_generator": to_camel,
    }

    @field_validator("created_at", "last_verified")
    @classmethod
    def _normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Stored as UTC whole seconds, the precision the cache file keeps
        if value is None:
            return None
        return as_utc(value).replace(microsecond=0)

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude

    @property
    def formatted_rating(self) -> str:
        return f"{self.rating or 0.0:.1f}"

    def is_verified(self, now: Optional[datetime] = None) -> bool:
        """True if the fountain was verified within the last 30 days."""
        if self.last_verified is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - as_utc(self.last_verified) <= timedelta(days=VERIFIED_WITHIN_DAYS)


# ---------- Timestamp helpers ----------

def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, truncated to whole seconds."""
    return as_utc(value).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; 'Z' and naive values are taken as UTC."""
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


# ---------- JSON mapping ----------

def record_to_json(record: FountainRecord) -> dict:
    """Serialize a record with the camelCase keys used by the cache file."""
    data = record.model_dump(mode="json", by_alias=True, exclude_none=True)
    if record.created_at is not None:
        data["createdAt"] = format_timestamp(record.created_at)
    if record.last_verified is not None:
        data["lastVerified"] = format_timestamp(record.last_verified)
    return data


def record_from_json(data: dict) -> FountainRecord:
    """Inverse of record_to_json. Raises pydantic.ValidationError on bad input."""
    return FountainRecord.model_validate(data)
