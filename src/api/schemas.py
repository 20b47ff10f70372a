"""
Pydantic request/response schemas for the FastAPI fountain service.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.data.schema import (
    Amenity,
    Coordinate,
    FountainCategory,
    FountainRecord,
    FountainStatus,
    FountainType,
    SortOption,
)


class FountainInput(BaseModel):
    """Body for POST /fountains and PUT /fountains/{id}."""
    name: str = Field(..., min_length=1, description="Display name")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    description: str = Field("Public drinking water", description="Free-text summary")
    is_operational: bool = True
    category: Optional[FountainCategory] = FountainCategory.DRINKING_FOUNTAIN
    address: Optional[str] = None
    building: Optional[str] = None
    floor: Optional[str] = None
    fountain_type: Optional[FountainType] = FountainType.STANDARD
    wheelchair_accessible: Optional[bool] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: int = Field(0, ge=0)
    status: Optional[FountainStatus] = FountainStatus.ACTIVE
    amenities: List[Amenity] = []
    added_by: Optional[str] = None

    model_config = {"json_schema_extra": {
        "examples": [{
            "name": "Main Library Fountain",
            "latitude": 40.7128,
            "longitude": -74.0060,
            "address": "123 Library St",
            "rating": 4.5,
            "amenities": ["Cold Water", "Indoor"],
            "added_by": "user123",
        }]
    }}

    def to_record(self, fountain_id: Optional[str] = None, created_at: Optional[datetime] = None) -> FountainRecord:
        data = self.model_dump(exclude={"latitude", "longitude"})
        data["coordinate"] = Coordinate(latitude=self.latitude, longitude=self.longitude)
        if fountain_id is not None:
            data["id"] = fountain_id
        if created_at is not None:
            data["created_at"] = created_at
        return FountainRecord(**data)


class FountainOut(BaseModel):
    """A fountain in list and detail responses."""
    id: str
    name: str
    latitude: float
    longitude: float
    description: str
    is_operational: bool
    category: Optional[FountainCategory] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    rating_count: int = 0
    status: Optional[FountainStatus] = None
    amenities: List[Amenity] = []
    created_at: Optional[datetime] = None
    distance_m: Optional[float] = None
    distance_label: Optional[str] = None

    @classmethod
    def from_record(
        cls,
        record: FountainRecord,
        distance_m: Optional[float] = None,
        distance_label: Optional[str] = None,
    ) -> "FountainOut":
        return cls(
            id=record.id,
            name=record.name,
            latitude=record.latitude,
            longitude=record.longitude,
            description=record.description,
            is_operational=record.is_operational,
            category=record.category,
            address=record.address,
            rating=record.rating,
            rating_count=record.rating_count,
            status=record.status,
            amenities=record.amenities,
            created_at=record.created_at,
            distance_m=round(distance_m, 1) if distance_m is not None else None,
            distance_label=distance_label,
        )


class FountainListResponse(BaseModel):
    """Output schema for GET /fountains."""
    fountains: List[FountainOut]
    total: int
    search: str = ""
    category: FountainCategory = FountainCategory.ALL
    sort: SortOption = SortOption.DISTANCE


class CacheStatusResponse(BaseModel):
    """Cache diagnostics."""
    valid: bool
    path: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    cache_valid: bool
    version: str
