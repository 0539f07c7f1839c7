"""
TDMS Analytics - Establishment Schemas
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EstablishmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_name: str
    region: str
    province: str
    municipality: str
    barangay: Optional[str] = None
    number_of_rooms: int
    accommodation_type: Optional[str] = None
    accommodation_code: Optional[str] = None
    is_approved: bool
    is_active: bool
    created_at: Optional[datetime] = None


class EstablishmentCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    region: str = Field(..., min_length=1, max_length=100)
    province: str = Field(..., min_length=1, max_length=100)
    municipality: str = Field(..., min_length=1, max_length=100)
    barangay: Optional[str] = Field(None, max_length=100)
    number_of_rooms: int = Field(0, ge=0)
    accommodation_type: Optional[str] = Field(None, max_length=50)


class AccommodationUpdate(BaseModel):
    accommodation_type: str = Field(..., min_length=1, max_length=50)


class AutoApprovalSetting(BaseModel):
    enabled: bool


class MunicipalityListResponse(BaseModel):
    municipalities: List[str]


class MessageResponse(BaseModel):
    message: str
