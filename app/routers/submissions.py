"""
TDMS Analytics - Submissions API Router

Compliance list, submission detail and penalty payment.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.dependencies import get_current_user, require_permission
from app.models.user import UserAccount
from app.schemas.submission import (
    PenaltyPaymentRequest,
    SubmissionDetailResponse,
    SubmissionListResponse,
    SubmissionResponse,
)
from app.services.scope_resolver import ScopeResolver
from app.services.submission_service import SubmissionService
from app.utils.permissions import Permission


router = APIRouter(prefix="/api/v1/submissions", tags=["Submissions"])


@router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    status: Optional[str] = Query(None, description="Late or On-Time"),
    penalty_status: Optional[str] = Query(None, description="Paid or Unpaid"),
    search: Optional[str] = Query(None, max_length=255, description="Establishment name contains"),
    municipality: Optional[str] = Query(None, description="Municipality to narrow to, or ALL"),
    province: Optional[str] = Query(None, description="Province to narrow to, or ALL"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_SUBMISSIONS)),
):
    """
    Submissions in scope with their compliance status, newest first.

    Resubmissions are listed individually.
    """
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    return await SubmissionService(db).list_submissions(
        scope,
        month=month,
        year=year,
        status=status,
        penalty_status=penalty_status,
        search=search,
        page=page,
        limit=limit,
    )


@router.get("/{submission_id}", response_model=SubmissionDetailResponse)
async def get_submission(
    submission_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(get_current_user),
):
    """One submission with daily metrics. Establishment users see only their own."""
    scope = await ScopeResolver(db).resolve_for(current_user)
    return await SubmissionService(db).get_submission(submission_id, scope)


@router.put("/{submission_id}/penalty", response_model=SubmissionResponse)
async def record_penalty_payment(
    submission_id: uuid.UUID,
    payload: PenaltyPaymentRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.RECORD_PENALTY_PAYMENT)),
):
    """
    Record payment of a late-submission penalty.

    - 401: access code mismatch
    - 403: submission outside the requester's jurisdiction
    - 422: submission was on time
    Repeating a payment returns the stored state unchanged.
    """
    scope = await ScopeResolver(db).resolve_for(current_user)
    return await SubmissionService(db).record_penalty_payment(
        submission_id,
        penalty=payload.penalty,
        receipt_number=payload.receipt_number,
        access_code=payload.access_code,
        scope=scope,
    )
