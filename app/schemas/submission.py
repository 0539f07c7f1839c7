"""
TDMS Analytics - Submission Schemas

Pydantic schemas for the compliance list and penalty payment.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubmissionResponse(BaseModel):
    """Submission with its compliance classification."""
    id: UUID
    establishment_id: UUID
    company_name: str
    municipality: Optional[str] = None
    province: Optional[str] = None
    month: int
    year: int
    submitted_at: datetime
    deadline: datetime
    number_of_rooms: int
    average_guest_nights: float
    average_room_occupancy_rate: float
    average_guests_per_room: float
    is_late: bool
    penalty_owed: bool
    penalty_paid: bool
    penalty_amount: Optional[Decimal] = None
    receipt_number: Optional[str] = None
    penalty_paid_at: Optional[datetime] = None


class DailyMetricResponse(BaseModel):
    day: int
    check_ins: int
    overnight: int
    occupied: int


class SubmissionDetailResponse(SubmissionResponse):
    daily_metrics: List[DailyMetricResponse] = Field(default_factory=list)


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionResponse]
    total: int
    page: int
    limit: int


class PenaltyPaymentRequest(BaseModel):
    """Record or revert payment of a late-submission penalty."""
    penalty: bool = Field(True, description="True marks the penalty paid, False reverts it")
    receipt_number: Optional[str] = Field(None, max_length=100)
    access_code: str = Field(..., min_length=1, description="Treasury access code")
