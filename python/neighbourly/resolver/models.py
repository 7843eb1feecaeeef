"""Pydantic v2 models for the location resolution pipeline.

Reference-data models (Subzone, Neighbourhood, BoundingBox) are frozen: the
resolver only ever reads them.  Query-scoped models (Query, ResolvedAddress)
are created and discarded per request.

Hierarchy:
  Enums
    InputKind            -- postal / street / free_text
    ResolutionTier       -- which fallback tier produced a match
    Confidence           -- high / medium / low

  Reference data
    Coordinate           -- validated against the Singapore envelope
    BoundingBox
    Subzone
    Neighbourhood

  Results
    ContainmentMatch     -- tagged: ExactMatch | BestEffortMatch
    AddressCandidate
    ResolvedAddress
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from neighbourly.geometry import parse_latlng

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class InputKind(str, Enum):
    """Resolution strategy selected for a query."""

    postal = "postal"
    street = "street"
    free_text = "free_text"


class ResolutionTier(str, Enum):
    """The fallback tier that produced a match, strongest first."""

    exact = "exact"
    bbox_unique = "bbox_unique"
    bbox_verified = "bbox_verified"
    bbox_guess = "bbox_guess"
    name_exact = "name_exact"
    name_partial = "name_partial"


class Confidence(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class Coordinate(BaseModel):
    """WGS84 point, guaranteed to lie inside Singapore."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @model_validator(mode="after")
    def _check_bounds(self) -> "Coordinate":
        parse_latlng(self.lat, self.lng)
        return self


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, point: Coordinate) -> bool:
        """Inclusive containment test."""
        return (
            self.min_lat <= point.lat <= self.max_lat
            and self.min_lng <= point.lng <= self.max_lng
        )


class Subzone(BaseModel):
    """A subzone polygon as seen by the resolver (geometry stays in the store)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    planning_area_id: Optional[str] = None
    region: Optional[str] = None
    bbox: Optional[BoundingBox] = None

    def summary(self) -> dict[str, Optional[str]]:
        return {
            "id": self.id,
            "name": self.name,
            "planning_area_id": self.planning_area_id,
            "region": self.region,
        }


class Neighbourhood(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    one_liner: Optional[str] = None
    parent_subzone_id: Optional[str] = None
    type: Optional[str] = None
    planning_area_id: Optional[str] = None


class Query(BaseModel):
    raw: str
    normalized: str
    kind: InputKind


# ---------------------------------------------------------------------------
# Containment results
# ---------------------------------------------------------------------------


class ContainmentMatch(BaseModel):
    """Base for the tagged result of spatial containment resolution."""

    model_config = ConfigDict(frozen=True)

    subzone: Subzone
    tier: ResolutionTier

    @property
    def best_effort(self) -> bool:
        return False


class ExactMatch(ContainmentMatch):
    """Containment confirmed by the authoritative check or a unique bbox."""


class BestEffortMatch(ContainmentMatch):
    """No containment check succeeded; the first bbox candidate is a guess."""

    tier: ResolutionTier = ResolutionTier.bbox_guess

    @property
    def best_effort(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Resolution output
# ---------------------------------------------------------------------------


class AddressCandidate(BaseModel):
    """An alternate match the caller may pick via ``candidateIndex``."""

    address: str
    postal: Optional[str] = None
    latlng: Optional[Coordinate] = None
    subzone_id: Optional[str] = None
    subzone_name: Optional[str] = None
    neighbourhood_id: Optional[str] = None
    neighbourhood_name: Optional[str] = None


class ResolvedAddress(BaseModel):
    query: str
    normalized_query: str
    kind: InputKind

    resolved_address: Optional[str] = None
    postal: Optional[str] = None
    latlng: Optional[Coordinate] = None

    subzone_id: Optional[str] = None
    subzone_name: Optional[str] = None
    planning_area_id: Optional[str] = None
    planning_area_name: Optional[str] = None

    neighbourhood_id: str
    neighbourhood_name: str

    confidence: Confidence
    method: ResolutionTier
    best_effort: bool = False
    source_chain: list[str] = Field(default_factory=list)
    candidates: list[AddressCandidate] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.neighbourhood_name or self.subzone_name or self.neighbourhood_id
