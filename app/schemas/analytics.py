"""
TDMS Analytics - Analytics Schemas

Pydantic schemas for the scope-filtered rollups handed to the report layer.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ===========================================
# SCOPE
# ===========================================

class ScopeInfo(BaseModel):
    """Effective scope a response was computed for."""
    region: Optional[str] = None
    province: Optional[str] = None
    municipality: Optional[str] = None
    establishment_id: Optional[str] = None


# ===========================================
# MONTHLY SERIES
# ===========================================

class RollupFields(BaseModel):
    total_check_ins: int = Field(0, description="Sum of daily check-ins")
    total_overnight: int = Field(0, description="Sum of daily overnight guests")
    total_occupied: int = Field(0, description="Sum of daily occupied rooms (room-nights sold)")
    average_guest_nights: float = Field(0.0, description="Mean of stored per-submission guest nights")
    average_room_occupancy_rate: float = Field(0.0, description="Mean of stored per-submission occupancy rate (%)")
    average_guests_per_room: float = Field(0.0, description="Mean of stored per-submission guests per room")
    total_rooms: int = Field(0, description="Sum of rooms declared by the submissions")
    total_submissions: int = Field(0, description="Distinct latest submissions")
    submission_rate: float = Field(0.0, description="Submissions per eligible establishment (%)")


class MonthlyRollup(RollupFields):
    month: int = Field(..., ge=1, le=12)


class MonthlyMetricsResponse(BaseModel):
    year: int
    scope: ScopeInfo
    metrics: List[MonthlyRollup] = Field(..., min_length=12, max_length=12)


class MonthlyCheckIns(BaseModel):
    month: int = Field(..., ge=1, le=12)
    total_check_ins: int = 0


class MonthlyCheckInsResponse(BaseModel):
    year: int
    scope: ScopeInfo
    check_ins: List[MonthlyCheckIns]


# ===========================================
# NATIONALITY
# ===========================================

class NationalityCount(BaseModel):
    nationality: Optional[str] = None
    count: int
    male_count: int
    female_count: int


class NationalityCountsResponse(BaseModel):
    year: int
    month: int
    scope: ScopeInfo
    nationalities: List[NationalityCount]


class GroupedNationalityCountsResponse(BaseModel):
    year: int
    month: int
    group_by: str
    scope: ScopeInfo
    groups: Dict[str, Dict[str, int]] = Field(
        ..., description="group -> nationality -> check-in count"
    )


class CountryCount(BaseModel):
    country: str
    count: int


class TaxonomyGroup(BaseModel):
    region: str
    sub_region: Optional[str] = None
    label: str
    countries: List[CountryCount]
    subtotal: int


class NationalityDistributionResponse(BaseModel):
    year: int
    month: int
    scope: ScopeInfo
    groups: List[TaxonomyGroup]
    philippine_residents: int
    non_philippine_residents: int
    overseas_filipinos: int
    grand_total: int
    unclassified: List[str] = Field(
        default_factory=list,
        description="Nationality values counted under Others and Unspecified Residences",
    )


# ===========================================
# DEMOGRAPHICS
# ===========================================

class DemographicRow(BaseModel):
    gender: Optional[str] = None
    age_group: str = Field(..., description="Minors (under 18) or Adults")
    status: Optional[str] = None
    count: int


class GuestDemographicsResponse(BaseModel):
    year: int
    month: int
    scope: ScopeInfo
    demographics: List[DemographicRow]


# ===========================================
# AREA ROLLUPS
# ===========================================

class AreaRollup(RollupFields):
    area: str
    total_establishments: int = Field(0, description="Approved and active establishments")


class AreaMetricsResponse(BaseModel):
    year: int
    month: int
    group_by: str
    scope: ScopeInfo
    areas: List[AreaRollup]


class OverviewResponse(RollupFields):
    year: int
    month: int
    scope: ScopeInfo
    total_establishments: int
    average_area_submission_rate: float = Field(
        0.0, description="Plain mean of the areas' submission rates"
    )
    area_breakdown: List[AreaRollup] = Field(default_factory=list)
