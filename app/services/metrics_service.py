"""
TDMS Analytics - Metrics Aggregation Service

Scope-filtered rollups over the submission store:
1. Monthly metrics (dense, 12 rows per year)
2. Monthly check-ins
3. Nationality counts, grouped counts and the taxonomy distribution
4. Guest demographics
5. Per-province / per-municipality rollups and the single-month overview

Only the latest submission per (establishment, year, month) contributes, and
only establishments that are approved and active are counted. Rate fields are
plain means of the stored per-submission values, never re-weighted by rooms
or days.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import String, and_, case, func, literal_column, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.establishment import Establishment
from app.models.submission import DailyMetric, Guest, Submission
from app.services.nationality_classifier import build_distribution
from app.services.scope_resolver import GeographicScope
from app.utils.error_handling import (
    InvalidFilterException,
    StoreReadException,
    ValidationException,
    validate_month,
    validate_year,
)

logger = logging.getLogger(__name__)


MONTHS = range(1, 13)
MINOR_AGE_LIMIT = 18
UNSPECIFIED_NATIONALITY = "Unspecified"

# Grouping keys for nationality counts
NATIONALITY_GROUPINGS = ("province", "municipality", "establishment")
# Grouping keys for area rollups
AREA_GROUPINGS = ("province", "municipality")


def safe_rate(numerator: float, denominator: float, digits: int = 2) -> float:
    """numerator / denominator x 100, rounded; 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return round(numerator * 100.0 / denominator, digits)


def _float(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _int(value: Any) -> int:
    return int(value) if value is not None else 0


def empty_rollup() -> Dict[str, Any]:
    return {
        "total_check_ins": 0,
        "total_overnight": 0,
        "total_occupied": 0,
        "average_guest_nights": 0.0,
        "average_room_occupancy_rate": 0.0,
        "average_guests_per_room": 0.0,
        "total_rooms": 0,
        "total_submissions": 0,
        "submission_rate": 0.0,
    }


class MetricsService:
    """Aggregation engine over the submission store."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # QUERY BUILDING BLOCKS
    # ===========================================

    @staticmethod
    def _eligible():
        return and_(
            Establishment.is_approved.is_(True),
            Establishment.is_active.is_(True),
        )

    def latest_submission_ids(
        self,
        scope: GeographicScope,
        year: int,
        month: Optional[int] = None,
    ):
        """
        Select the id of the latest submission per (establishment, year,
        month) inside the scope. Ties on submitted_at break on id.
        """
        ranked = (
            select(
                Submission.id.label("submission_id"),
                func.row_number().over(
                    partition_by=(
                        Submission.establishment_id,
                        Submission.year,
                        Submission.month,
                    ),
                    order_by=(Submission.submitted_at.desc(), Submission.id.desc()),
                ).label("position"),
            )
            .join(Establishment, Establishment.id == Submission.establishment_id)
            .where(
                Submission.year == year,
                self._eligible(),
                *scope.conditions(),
            )
        )
        if month is not None:
            ranked = ranked.where(Submission.month == month)

        ranked = ranked.subquery("ranked_submissions")
        return select(ranked.c.submission_id).where(ranked.c.position == 1)

    async def _execute(self, query, operation: str):
        try:
            return await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Store read failed during {operation}: {type(e).__name__}")
            raise StoreReadException(operation, original_error=e)

    async def _eligible_counts(self, scope: GeographicScope, key=None) -> Dict[Any, int]:
        """Approved and active establishments in scope, optionally per key."""
        columns = [func.count(Establishment.id)]
        if key is not None:
            columns.insert(0, key)
        query = select(*columns).where(self._eligible(), *scope.conditions())
        if key is not None:
            query = query.group_by(key)

        result = await self._execute(query, "eligible_establishments")
        if key is None:
            return {None: _int(result.scalar_one())}
        return {row[0]: _int(row[1]) for row in result.all()}

    async def _submission_stats(
        self,
        scope: GeographicScope,
        year: int,
        key=None,
        month: Optional[int] = None,
    ) -> Dict[Any, Dict[str, Any]]:
        """
        Per-submission aggregates: count, mean of the stored rate fields and
        declared rooms. Kept apart from the daily join so every submission
        weighs exactly once in the means.
        """
        latest = self.latest_submission_ids(scope, year, month)
        columns = [
            func.count(func.distinct(Submission.id)),
            func.avg(Submission.average_guest_nights),
            func.avg(Submission.average_room_occupancy_rate),
            func.avg(Submission.average_guests_per_room),
            func.sum(Submission.number_of_rooms),
        ]
        if key is not None:
            columns.insert(0, key)

        query = (
            select(*columns)
            .select_from(Submission)
            .join(Establishment, Establishment.id == Submission.establishment_id)
            .where(Submission.id.in_(latest))
        )
        if key is not None:
            query = query.group_by(key)

        result = await self._execute(query, "submission_stats")
        stats = {}
        for row in result.all():
            values = row[1:] if key is not None else row
            group = row[0] if key is not None else None
            stats[group] = {
                "total_submissions": _int(values[0]),
                "average_guest_nights": _float(values[1]),
                "average_room_occupancy_rate": _float(values[2]),
                "average_guests_per_room": _float(values[3]),
                "total_rooms": _int(values[4]),
            }
        return stats

    async def _daily_stats(
        self,
        scope: GeographicScope,
        year: int,
        key=None,
        month: Optional[int] = None,
    ) -> Dict[Any, Dict[str, int]]:
        """Summed daily counts over the latest submissions."""
        latest = self.latest_submission_ids(scope, year, month)
        columns = [
            func.sum(DailyMetric.check_ins),
            func.sum(DailyMetric.overnight),
            func.sum(DailyMetric.occupied),
        ]
        if key is not None:
            columns.insert(0, key)

        query = (
            select(*columns)
            .select_from(DailyMetric)
            .join(Submission, Submission.id == DailyMetric.submission_id)
            .join(Establishment, Establishment.id == Submission.establishment_id)
            .where(Submission.id.in_(latest))
        )
        if key is not None:
            query = query.group_by(key)

        result = await self._execute(query, "daily_stats")
        stats = {}
        for row in result.all():
            values = row[1:] if key is not None else row
            group = row[0] if key is not None else None
            stats[group] = {
                "total_check_ins": _int(values[0]),
                "total_overnight": _int(values[1]),
                "total_occupied": _int(values[2]),
            }
        return stats

    @staticmethod
    def _combine(
        submission_stats: Optional[Dict[str, Any]],
        daily_stats: Optional[Dict[str, int]],
        eligible: int,
    ) -> Dict[str, Any]:
        rollup = empty_rollup()
        if submission_stats:
            rollup.update(submission_stats)
        if daily_stats:
            rollup.update(daily_stats)
        for field in ("average_guest_nights", "average_room_occupancy_rate", "average_guests_per_room"):
            rollup[field] = round(rollup[field], 4)
        rollup["submission_rate"] = safe_rate(rollup["total_submissions"], eligible)
        return rollup

    # ===========================================
    # MONTHLY SERIES
    # ===========================================

    async def compute_monthly_rollups(
        self,
        scope: GeographicScope,
        year: int,
    ) -> List[Dict[str, Any]]:
        """
        Dense 12-month series for the scope.

        Months without submissions are zero-filled; submission_rate is
        submissions over approved-and-active establishments in the whole
        scope, as a percentage with two decimals.
        """
        year = validate_year(year)

        eligible = (await self._eligible_counts(scope))[None]
        submissions = await self._submission_stats(scope, year, key=Submission.month)
        daily = await self._daily_stats(scope, year, key=Submission.month)

        rollups = []
        for month in MONTHS:
            row = {"month": month}
            row.update(self._combine(submissions.get(month), daily.get(month), eligible))
            rollups.append(row)

        logger.debug(f"Monthly rollups for {scope.to_dict()} {year}: {eligible} eligible establishments")
        return rollups

    async def compute_monthly_check_ins(
        self,
        scope: GeographicScope,
        year: int,
    ) -> List[Dict[str, int]]:
        """Total check-ins per month, zero-filled."""
        year = validate_year(year)
        daily = await self._daily_stats(scope, year, key=Submission.month)
        return [
            {
                "month": month,
                "total_check_ins": daily.get(month, {}).get("total_check_ins", 0),
            }
            for month in MONTHS
        ]

    # ===========================================
    # GUESTS
    # ===========================================

    def _check_in_guests(self, scope: GeographicScope, year: int, month: int, *columns):
        latest = self.latest_submission_ids(scope, year, month)
        return (
            select(*columns)
            .select_from(Guest)
            .join(DailyMetric, DailyMetric.id == Guest.daily_metric_id)
            .join(Submission, Submission.id == DailyMetric.submission_id)
            .join(Establishment, Establishment.id == Submission.establishment_id)
            .where(
                Submission.id.in_(latest),
                Guest.is_check_in.is_(True),
            )
        )

    async def compute_nationality_counts(
        self,
        scope: GeographicScope,
        year: int,
        month: int,
    ) -> List[Dict[str, Any]]:
        """Check-in guests per nationality with gender split, largest first."""
        year = validate_year(year)
        month = validate_month(month)

        count = func.count(Guest.id)
        query = self._check_in_guests(
            scope, year, month,
            Guest.nationality,
            count.label("count"),
            func.sum(case((Guest.gender == "Male", 1), else_=0)).label("male_count"),
            func.sum(case((Guest.gender == "Female", 1), else_=0)).label("female_count"),
        ).group_by(Guest.nationality).order_by(count.desc(), Guest.nationality)

        result = await self._execute(query, "nationality_counts")
        return [
            {
                "nationality": row.nationality,
                "count": _int(row.count),
                "male_count": _int(row.male_count),
                "female_count": _int(row.female_count),
            }
            for row in result.all()
        ]

    @staticmethod
    def default_nationality_grouping(scope: GeographicScope) -> str:
        return "municipality" if scope.spans_multiple_municipalities else "establishment"

    def _grouping_column(self, group_by: str, scope: GeographicScope):
        province = func.trim(Establishment.province, type_=String)
        if group_by == "province":
            return province
        if group_by == "municipality":
            municipality = func.trim(Establishment.municipality, type_=String)
            if scope.province is None:
                # Municipality names repeat across provinces, e.g. "San Juan, Ilocos Sur"
                return municipality + literal_column("', '", String) + province
            return municipality
        return Establishment.company_name

    async def compute_grouped_nationality_counts(
        self,
        scope: GeographicScope,
        year: int,
        month: int,
        group_by: Optional[str] = None,
    ) -> Dict[str, Dict[str, int]]:
        """
        Check-in guests per nationality, keyed by group.

        group_by defaults to municipality when the scope spans several
        municipalities and to establishment otherwise.
        """
        year = validate_year(year)
        month = validate_month(month)

        if group_by is None:
            group_by = self.default_nationality_grouping(scope)
        elif group_by not in NATIONALITY_GROUPINGS:
            raise InvalidFilterException("group_by", group_by, list(NATIONALITY_GROUPINGS))

        key = self._grouping_column(group_by, scope)
        count = func.count(Guest.id)
        query = self._check_in_guests(
            scope, year, month,
            key.label("group_key"),
            Guest.nationality,
            count.label("count"),
        ).group_by(key, Guest.nationality).order_by(key, Guest.nationality)

        result = await self._execute(query, "grouped_nationality_counts")
        grouped: Dict[str, Dict[str, int]] = {}
        for row in result.all():
            if row.group_key is None:
                continue
            nationality = row.nationality if row.nationality is not None else UNSPECIFIED_NATIONALITY
            grouped.setdefault(row.group_key, {})[nationality] = _int(row.count)
        return grouped

    async def compute_nationality_distribution(
        self,
        scope: GeographicScope,
        year: int,
        month: int,
    ) -> Dict[str, Any]:
        """Nationality counts rolled into the country-of-residence taxonomy."""
        rows = await self.compute_nationality_counts(scope, year, month)
        distribution = build_distribution(rows)
        distribution.update({"year": year, "month": month})
        return distribution

    async def compute_guest_demographics(
        self,
        scope: GeographicScope,
        year: int,
        month: int,
    ) -> List[Dict[str, Any]]:
        """Check-in guests by gender, age group (Minors under 18 / Adults) and status."""
        year = validate_year(year)
        month = validate_month(month)

        age_group = case((Guest.age < MINOR_AGE_LIMIT, "Minors"), else_="Adults").label("age_group")
        query = self._check_in_guests(
            scope, year, month,
            Guest.gender,
            age_group,
            Guest.status,
            func.count(Guest.id).label("count"),
        ).group_by(Guest.gender, "age_group", Guest.status).order_by(Guest.gender, "age_group", Guest.status)

        result = await self._execute(query, "guest_demographics")
        return [
            {
                "gender": row.gender,
                "age_group": row.age_group,
                "status": row.status,
                "count": _int(row.count),
            }
            for row in result.all()
        ]

    # ===========================================
    # AREA ROLLUPS
    # ===========================================

    @staticmethod
    def default_area_grouping(scope: GeographicScope) -> str:
        if scope.is_single_establishment or scope.municipality is not None:
            raise ValidationException(
                "A single municipality cannot be broken down further",
                field="group_by",
            )
        return "province" if scope.province is None else "municipality"

    async def compute_area_rollups(
        self,
        scope: GeographicScope,
        year: int,
        month: int,
        group_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        One rollup per province or municipality in scope for a single month.

        Every area with at least one approved and active establishment is
        listed, zero-filled when nothing was submitted.
        """
        year = validate_year(year)
        month = validate_month(month)

        if group_by is None:
            group_by = self.default_area_grouping(scope)
        elif group_by not in AREA_GROUPINGS:
            raise InvalidFilterException("group_by", group_by, list(AREA_GROUPINGS))

        key = self._grouping_column(group_by, scope)
        eligible = await self._eligible_counts(scope, key=key)
        submissions = await self._submission_stats(scope, year, key=key, month=month)
        daily = await self._daily_stats(scope, year, key=key, month=month)

        rollups = []
        for area in sorted(a for a in eligible if a is not None):
            row = {"area": area, "total_establishments": eligible[area]}
            row.update(self._combine(submissions.get(area), daily.get(area), eligible[area]))
            rollups.append(row)
        return rollups

    async def compute_overview(
        self,
        scope: GeographicScope,
        year: int,
        month: int,
    ) -> Dict[str, Any]:
        """
        Single-month totals for the scope plus its per-area breakdown.

        average_area_submission_rate is the plain mean of the areas'
        submission rates.
        """
        year = validate_year(year)
        month = validate_month(month)

        eligible = (await self._eligible_counts(scope))[None]
        submissions = await self._submission_stats(scope, year, month=month)
        daily = await self._daily_stats(scope, year, month=month)

        overview = {"year": year, "month": month, "total_establishments": eligible}
        overview.update(self._combine(submissions.get(None), daily.get(None), eligible))

        breakdown: List[Dict[str, Any]] = []
        if not scope.is_single_establishment and scope.municipality is None:
            breakdown = await self.compute_area_rollups(scope, year, month)
        overview["area_breakdown"] = breakdown
        overview["average_area_submission_rate"] = (
            round(sum(r["submission_rate"] for r in breakdown) / len(breakdown), 2)
            if breakdown else 0.0
        )
        return overview
