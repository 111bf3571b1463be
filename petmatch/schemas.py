from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

ReportStatus = Literal["lost", "found", "closed"]

# --------------------------
# Shared Submodels
# --------------------------
class Location(BaseModel):
    address: Optional[str] = None
    coordinates: List[float] = Field(default_factory=lambda: [0.0, 0.0], description="[lng, lat]")

    @field_validator("coordinates")
    @classmethod
    def _pair(cls, v: List[float]) -> List[float]:
        if len(v) != 2:
            raise ValueError("coordinates must be [lng, lat]")
        lng, lat = v
        if not (-180 <= lng <= 180 and -90 <= lat <= 90):
            raise ValueError("coordinates out of range")
        return v


class RequiredLocation(Location):
    coordinates: List[float] = Field(description="[lng, lat]")


class MatchResultOut(BaseModel):
    candidate_id: str
    score: int
    matched_at: datetime

# --------------------------
# Pets
# --------------------------
class PetIn(BaseModel):
    owner_id: Optional[str] = None
    name: str
    species: str
    breed: Optional[str] = None
    age: Optional[Union[str, float]] = None
    fur_color: Optional[str] = None
    eye_color: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = []
    location: Location = Field(default_factory=Location)


class PetOut(PetIn):
    id: str
    is_lost: bool = False
    is_found: bool = False

# --------------------------
# Reports (lost / found)
# --------------------------
class ReportIn(BaseModel):
    pet_id: str
    reporter_id: str
    status: Literal["lost", "found"] = "lost"
    phone_numbers: List[str] = []
    location: Location = Field(default_factory=Location)
    additional_details: Optional[str] = None


class ReportOut(BaseModel):
    id: str
    pet_id: str
    reporter_id: str
    status: ReportStatus
    phone_numbers: List[str] = []
    location: Location
    additional_details: Optional[str] = None
    matches: List[MatchResultOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusIn(BaseModel):
    status: ReportStatus


class ConfirmIn(BaseModel):
    candidate_id: str


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class ReportList(BaseModel):
    success: bool = True
    lost_pets: List[ReportOut]
    pagination: Pagination

# --------------------------
# Matching
# --------------------------
class MatchQuery(BaseModel):
    name: Optional[str] = None
    species: str = Field(min_length=1)
    breed: Optional[str] = None
    age: Optional[Union[str, float]] = None
    fur_color: Optional[str] = None
    eye_color: Optional[str] = None
    location: RequiredLocation
    min_score: Optional[int] = Field(default=None, ge=0)


class MatchHit(BaseModel):
    score: int
    lost_entry: ReportOut
    pet: dict


class MatchQueryOut(BaseModel):
    success: bool = True
    matches: List[MatchHit]


class ScanOut(BaseModel):
    ok: bool
    skipped: bool = False
    stats: dict
