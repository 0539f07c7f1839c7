"""
TDMS Analytics - Submission Service

Business logic for monthly submissions:
1. Compliance list (filter by period, lateness, penalty state and name)
2. Submission detail with daily metrics
3. Penalty payment recording (idempotent)
4. Intake of a new submission with its stored averages
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.models.establishment import Establishment
from app.models.submission import DailyMetric, Guest, Submission
import app.services.compliance_service as compliance_service
from app.services.scope_resolver import GeographicScope
from app.utils.error_handling import (
    BusinessRuleException,
    EstablishmentNotFoundException,
    InvalidAccessCodeException,
    InvalidFilterException,
    NoPenaltyOwedException,
    ScopeViolationException,
    StoreReadException,
    SubmissionNotFoundException,
    ValidationException,
    validate_month,
    validate_year,
)
from app.utils.security import verify_access_code

logger = logging.getLogger(__name__)


STATUS_FILTERS = ("Late", "On-Time")
PENALTY_FILTERS = ("Paid", "Unpaid")


class SubmissionService:
    """Service for submission compliance operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # SERIALIZATION
    # ===========================================

    @staticmethod
    def to_dict(submission: Submission, establishment: Establishment) -> Dict[str, Any]:
        status = compliance_service.classify(submission)
        return {
            "id": submission.id,
            "establishment_id": establishment.id,
            "company_name": establishment.company_name,
            "municipality": establishment.municipality,
            "province": establishment.province,
            "month": submission.month,
            "year": submission.year,
            "submitted_at": compliance_service.as_utc(submission.submitted_at),
            "deadline": compliance_service.as_utc(submission.deadline),
            "number_of_rooms": submission.number_of_rooms,
            "average_guest_nights": float(submission.average_guest_nights or 0),
            "average_room_occupancy_rate": float(submission.average_room_occupancy_rate or 0),
            "average_guests_per_room": float(submission.average_guests_per_room or 0),
            "penalty_amount": submission.penalty_amount,
            "receipt_number": submission.receipt_number,
            "penalty_paid_at": (
                compliance_service.as_utc(submission.penalty_paid_at)
                if submission.penalty_paid_at else None
            ),
            **status.to_dict(),
        }

    # ===========================================
    # COMPLIANCE LIST
    # ===========================================

    async def list_submissions(
        self,
        scope: GeographicScope,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[str] = None,
        penalty_status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Every submission in scope (resubmissions included), newest first.

        Raises:
            ValidationException: unknown status/penalty filter or bad paging
        """
        limit = limit or settings.default_page_size
        if page < 1:
            raise ValidationException("page must be 1 or greater", field="page")
        if limit < 1 or limit > settings.max_page_size:
            raise ValidationException(
                f"limit must be between 1 and {settings.max_page_size}", field="limit",
            )
        if status is not None and status not in STATUS_FILTERS:
            raise InvalidFilterException("status", status, list(STATUS_FILTERS))
        if penalty_status is not None and penalty_status not in PENALTY_FILTERS:
            raise InvalidFilterException("penalty_status", penalty_status, list(PENALTY_FILTERS))

        conditions = list(scope.conditions())
        if month is not None:
            conditions.append(Submission.month == validate_month(month))
        if year is not None:
            conditions.append(Submission.year == validate_year(year))
        if status == "Late":
            conditions.append(Submission.submitted_at > Submission.deadline)
        elif status == "On-Time":
            conditions.append(Submission.submitted_at <= Submission.deadline)
        if penalty_status == "Paid":
            conditions.append(Submission.penalty_paid.is_(True))
        elif penalty_status == "Unpaid":
            conditions.append(Submission.penalty_paid.is_(False))
        if search and search.strip():
            conditions.append(Establishment.company_name.ilike(f"%{search.strip()}%"))

        base = (
            select(Submission, Establishment)
            .join(Establishment, Establishment.id == Submission.establishment_id)
            .where(*conditions)
        )
        count_query = (
            select(func.count(Submission.id))
            .select_from(Submission)
            .join(Establishment, Establishment.id == Submission.establishment_id)
            .where(*conditions)
        )

        try:
            total = (await self.db.execute(count_query)).scalar_one()
            result = await self.db.execute(
                base.order_by(Submission.submitted_at.desc(), Submission.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
        except SQLAlchemyError as e:
            raise StoreReadException("list_submissions", original_error=e)

        return {
            "submissions": [self.to_dict(s, e) for s, e in result.all()],
            "total": total,
            "page": page,
            "limit": limit,
        }

    # ===========================================
    # DETAIL
    # ===========================================

    async def _load(self, submission_id: uuid.UUID) -> Submission:
        result = await self.db.execute(
            select(Submission)
            .options(
                selectinload(Submission.establishment),
                selectinload(Submission.daily_metrics),
            )
            .where(Submission.id == submission_id)
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise SubmissionNotFoundException(submission_id)
        return submission

    @staticmethod
    def _check_scope(scope: GeographicScope, submission: Submission) -> None:
        if not scope.contains(submission.establishment):
            logger.warning(f"Submission {submission.id} requested outside jurisdiction")
            raise ScopeViolationException("submission", str(submission.id))

    async def get_submission(
        self,
        submission_id: uuid.UUID,
        scope: GeographicScope,
    ) -> Dict[str, Any]:
        """Submission with compliance status and its daily metrics."""
        submission = await self._load(submission_id)
        self._check_scope(scope, submission)

        detail = self.to_dict(submission, submission.establishment)
        detail["daily_metrics"] = [
            {
                "day": m.day,
                "check_ins": m.check_ins,
                "overnight": m.overnight,
                "occupied": m.occupied,
            }
            for m in submission.daily_metrics
        ]
        return detail

    # ===========================================
    # PENALTY PAYMENT
    # ===========================================

    async def record_penalty_payment(
        self,
        submission_id: uuid.UUID,
        penalty: bool,
        receipt_number: Optional[str],
        access_code: Optional[str],
        scope: GeographicScope,
    ) -> Dict[str, Any]:
        """
        Record (or revert) payment of a late-submission penalty.

        Paying an already-paid submission succeeds without touching the
        stored receipt or payment time.

        Raises:
            SubmissionNotFoundException: unknown submission
            ScopeViolationException: submission outside the requester's scope
            InvalidAccessCodeException: access code mismatch
            NoPenaltyOwedException: marking an on-time submission as paid
        """
        submission = await self._load(submission_id)
        self._check_scope(scope, submission)

        if not verify_access_code(access_code):
            logger.warning(f"Invalid access code for penalty on submission {submission_id}")
            raise InvalidAccessCodeException()

        status = compliance_service.classify(submission)

        if penalty:
            if not status.penalty_owed:
                raise NoPenaltyOwedException(submission_id)
            if submission.penalty_paid:
                logger.info(f"Penalty for submission {submission_id} already recorded as paid")
                return self.to_dict(submission, submission.establishment)
            if not receipt_number or not receipt_number.strip():
                raise ValidationException("receipt_number is required", field="receipt_number")

            submission.penalty_paid = True
            submission.receipt_number = receipt_number.strip()
            submission.penalty_paid_at = datetime.now(timezone.utc)
        else:
            if not submission.penalty_paid:
                return self.to_dict(submission, submission.establishment)
            submission.penalty_paid = False
            submission.receipt_number = None
            submission.penalty_paid_at = None

        await self.db.commit()

        logger.info(
            f"Penalty for submission {submission_id} marked "
            f"{'paid' if penalty else 'unpaid'}"
        )
        return self.to_dict(submission, submission.establishment)

    # ===========================================
    # INTAKE
    # ===========================================

    async def record_submission(
        self,
        establishment_id: uuid.UUID,
        month: int,
        year: int,
        daily_metrics: List[Dict[str, Any]],
        number_of_rooms: Optional[int] = None,
        submitted_at: Optional[datetime] = None,
        penalty_amount=None,
    ) -> Submission:
        """
        Store a monthly report with its deadline and computed averages.

        daily_metrics items carry day, check_ins, overnight, occupied and an
        optional list of guest dicts.

        Raises:
            EstablishmentNotFoundException: unknown establishment
            BusinessRuleException: a day outside the month, a repeated day,
                or more rooms occupied than declared
        """
        month = validate_month(month)
        year = validate_year(year)

        establishment = await self.db.get(Establishment, establishment_id)
        if establishment is None:
            raise EstablishmentNotFoundException(establishment_id)

        rooms = number_of_rooms if number_of_rooms is not None else establishment.number_of_rooms
        period_days = compliance_service.days_in_month(month, year)

        seen_days = set()
        for entry in daily_metrics:
            day = int(entry["day"])
            if day < 1 or day > period_days:
                raise BusinessRuleException(
                    f"Day {day} is outside {year}-{month:02d}", rule="day_within_period",
                )
            if day in seen_days:
                raise BusinessRuleException(f"Day {day} reported twice", rule="one_row_per_day")
            seen_days.add(day)
            if int(entry.get("occupied") or 0) > rooms:
                raise BusinessRuleException(
                    f"Day {day}: occupied rooms exceed the {rooms} declared",
                    rule="occupied_within_rooms",
                )

        averages = compliance_service.calculate_submission_averages(daily_metrics, rooms, period_days)

        submission = Submission(
            establishment_id=establishment.id,
            month=month,
            year=year,
            submitted_at=compliance_service.as_utc(submitted_at or datetime.now(timezone.utc)),
            deadline=compliance_service.submission_deadline(month, year),
            number_of_rooms=rooms,
            average_guest_nights=averages.average_guest_nights,
            average_room_occupancy_rate=averages.average_room_occupancy_rate,
            average_guests_per_room=averages.average_guests_per_room,
            penalty_amount=penalty_amount,
        )
        for entry in daily_metrics:
            metric = DailyMetric(
                day=int(entry["day"]),
                check_ins=int(entry.get("check_ins") or 0),
                overnight=int(entry.get("overnight") or 0),
                occupied=int(entry.get("occupied") or 0),
            )
            metric.guests = [
                Guest(
                    room_number=guest.get("room_number"),
                    gender=guest.get("gender"),
                    age=guest.get("age"),
                    status=guest.get("status"),
                    nationality=guest.get("nationality"),
                    is_check_in=bool(guest.get("is_check_in", False)),
                )
                for guest in entry.get("guests", [])
            ]
            submission.daily_metrics.append(metric)

        self.db.add(submission)
        await self.db.commit()
        await self.db.refresh(submission)

        logger.info(
            f"Recorded submission {submission.id} for {establishment.company_name} "
            f"{year}-{month:02d}"
        )
        return submission
