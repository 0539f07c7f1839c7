"""
TDMS Analytics - Compliance Calculator

Deadline, lateness and penalty rules for monthly submissions, plus the
per-submission averages stored at intake.

Rules:
1. A reporting month is due at 23:59:59 on the configured day (10th) of the
   following month, local time.
2. A submission is late only if submitted strictly after its deadline.
3. A penalty is owed exactly when a submission is late; whether it was paid
   is the recorded flag.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from app.config import settings
from app.utils.error_handling import validate_month, validate_year


# Stored averages keep four decimal places
AVERAGE_PRECISION = 4


@dataclass(frozen=True)
class ComplianceStatus:
    is_late: bool
    penalty_owed: bool
    penalty_paid: bool

    @property
    def penalty_outstanding(self) -> bool:
        return self.penalty_owed and not self.penalty_paid

    def to_dict(self) -> dict:
        return {
            "is_late": self.is_late,
            "penalty_owed": self.penalty_owed,
            "penalty_paid": self.penalty_paid,
        }


@dataclass(frozen=True)
class SubmissionAverages:
    average_guest_nights: float
    average_room_occupancy_rate: float
    average_guests_per_room: float


def as_utc(moment: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def submission_deadline(
    month: int,
    year: int,
    deadline_day: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> datetime:
    """
    Deadline for a reporting period, returned in UTC.

    Example: April 2024 with the default settings is due
    2024-05-10 23:59:59 Asia/Manila (2024-05-10 15:59:59 UTC).
    """
    month = validate_month(month)
    year = validate_year(year)
    day = deadline_day or settings.submission_deadline_day
    tz = ZoneInfo(tz_name or settings.deadline_timezone)

    due_month = datetime(year, month, 1, tzinfo=tz) + relativedelta(months=1)
    due = due_month.replace(day=day, hour=23, minute=59, second=59, microsecond=0)
    return due.astimezone(timezone.utc)


def is_late(submitted_at: datetime, deadline: datetime) -> bool:
    """Strictly after the deadline; submitting exactly at the deadline is on time."""
    return as_utc(submitted_at) > as_utc(deadline)


def classify(submission: Any) -> ComplianceStatus:
    """
    Classify a submission record (anything exposing submitted_at, deadline
    and penalty_paid).
    """
    late = is_late(submission.submitted_at, submission.deadline)
    return ComplianceStatus(
        is_late=late,
        penalty_owed=late,
        penalty_paid=bool(submission.penalty_paid),
    )


def days_in_month(month: int, year: int) -> int:
    return calendar.monthrange(year, month)[1]


def _value(row: Union[Mapping, Any], name: str) -> int:
    if isinstance(row, Mapping):
        return int(row.get(name) or 0)
    return int(getattr(row, name, 0) or 0)


def _ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def calculate_submission_averages(
    daily_metrics: Iterable[Union[Mapping, Any]],
    number_of_rooms: int,
    period_days: int,
) -> SubmissionAverages:
    """
    Compute the three stored rate fields of a submission.

    - guest nights per check-in = overnight / check-ins
    - room occupancy (%)        = occupied / (rooms x days) x 100
    - guests per occupied room  = overnight / occupied

    Any zero denominator yields 0.
    """
    check_ins = overnight = occupied = 0
    for row in daily_metrics:
        check_ins += _value(row, "check_ins")
        overnight += _value(row, "overnight")
        occupied += _value(row, "occupied")

    return SubmissionAverages(
        average_guest_nights=round(_ratio(overnight, check_ins), AVERAGE_PRECISION),
        average_room_occupancy_rate=round(
            _ratio(occupied, number_of_rooms * period_days) * 100, AVERAGE_PRECISION
        ),
        average_guests_per_room=round(_ratio(overnight, occupied), AVERAGE_PRECISION),
    )
