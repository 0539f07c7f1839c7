"""
TDMS Analytics - Analytics API Router

Scope-filtered rollups for dashboards and reports.

Every endpoint resolves the requester's GeographicScope first:
- r_admin: region, optionally narrowed by province and/or municipality
- p_admin: province, optionally narrowed by municipality
- admin:   own municipality (narrowing ignored)
- user:    own establishment (narrowing ignored)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import require_permission
from app.models.user import UserAccount
from app.schemas.analytics import (
    AreaMetricsResponse,
    GroupedNationalityCountsResponse,
    GuestDemographicsResponse,
    MonthlyCheckInsResponse,
    MonthlyMetricsResponse,
    NationalityCountsResponse,
    NationalityDistributionResponse,
    OverviewResponse,
)
from app.services.metrics_service import MetricsService
from app.services.scope_resolver import ScopeResolver
from app.utils.permissions import Permission


router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


YEAR_QUERY = Query(..., ge=2000, le=2100, description="Reporting year")
MONTH_QUERY = Query(..., ge=1, le=12, description="Reporting month (1-12)")
PROVINCE_QUERY = Query(None, description="Province to narrow to, or ALL")
MUNICIPALITY_QUERY = Query(None, description="Municipality to narrow to, or ALL")


# ===========================================
# MONTHLY SERIES
# ===========================================

@router.get("/monthly-metrics", response_model=MonthlyMetricsResponse)
async def get_monthly_metrics(
    year: int = YEAR_QUERY,
    province: Optional[str] = PROVINCE_QUERY,
    municipality: Optional[str] = MUNICIPALITY_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_OWN_METRICS)),
):
    """
    Twelve monthly rollups for the year, zero-filled.

    Averages are plain means of the stored per-submission rates;
    submission_rate is relative to approved and active establishments.
    """
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    metrics = await MetricsService(db).compute_monthly_rollups(scope, year)
    return {"year": year, "scope": scope.to_dict(), "metrics": metrics}


@router.get("/monthly-check-ins", response_model=MonthlyCheckInsResponse)
async def get_monthly_check_ins(
    year: int = YEAR_QUERY,
    province: Optional[str] = PROVINCE_QUERY,
    municipality: Optional[str] = MUNICIPALITY_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_OWN_METRICS)),
):
    """Total check-ins per month, zero-filled."""
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    check_ins = await MetricsService(db).compute_monthly_check_ins(scope, year)
    return {"year": year, "scope": scope.to_dict(), "check_ins": check_ins}


# ===========================================
# NATIONALITY
# ===========================================

@router.get("/nationality-counts", response_model=NationalityCountsResponse)
async def get_nationality_counts(
    year: int = YEAR_QUERY,
    month: int = MONTH_QUERY,
    province: Optional[str] = PROVINCE_QUERY,
    municipality: Optional[str] = MUNICIPALITY_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_OWN_METRICS)),
):
    """Check-in guests per nationality with male/female split."""
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    rows = await MetricsService(db).compute_nationality_counts(scope, year, month)
    return {"year": year, "month": month, "scope": scope.to_dict(), "nationalities": rows}


@router.get("/nationality-counts/grouped", response_model=GroupedNationalityCountsResponse)
async def get_grouped_nationality_counts(
    year: int = YEAR_QUERY,
    month: int = MONTH_QUERY,
    group_by: Optional[str] = Query(
        None, description="province, municipality or establishment"
    ),
    province: Optional[str] = PROVINCE_QUERY,
    municipality: Optional[str] = MUNICIPALITY_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_OWN_METRICS)),
):
    """
    Check-in guests per nationality keyed by group.

    Without group_by, multi-municipality scopes group by municipality and
    single-municipality scopes by establishment.
    """
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    if group_by is None:
        group_by = MetricsService.default_nationality_grouping(scope)
    groups = await MetricsService(db).compute_grouped_nationality_counts(
        scope, year, month, group_by
    )
    return {
        "year": year,
        "month": month,
        "group_by": group_by,
        "scope": scope.to_dict(),
        "groups": groups,
    }


@router.get("/nationality-distribution", response_model=NationalityDistributionResponse)
async def get_nationality_distribution(
    year: int = YEAR_QUERY,
    month: int = MONTH_QUERY,
    province: Optional[str] = PROVINCE_QUERY,
    municipality: Optional[str] = MUNICIPALITY_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_OWN_METRICS)),
):
    """Regional Distribution of Travellers for one month."""
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    distribution = await MetricsService(db).compute_nationality_distribution(scope, year, month)
    distribution["scope"] = scope.to_dict()
    return distribution


# ===========================================
# DEMOGRAPHICS
# ===========================================

@router.get("/guest-demographics", response_model=GuestDemographicsResponse)
async def get_guest_demographics(
    year: int = YEAR_QUERY,
    month: int = MONTH_QUERY,
    province: Optional[str] = PROVINCE_QUERY,
    municipality: Optional[str] = MUNICIPALITY_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_OWN_METRICS)),
):
    """Check-in guests by gender, age group and status."""
    scope = await ScopeResolver(db).resolve_for(current_user, province, municipality)
    rows = await MetricsService(db).compute_guest_demographics(scope, year, month)
    return {"year": year, "month": month, "scope": scope.to_dict(), "demographics": rows}


# ===========================================
# AREA ROLLUPS
# ===========================================

@router.get("/area-metrics", response_model=AreaMetricsResponse)
async def get_area_metrics(
    year: int = YEAR_QUERY,
    month: int = MONTH_QUERY,
    group_by: Optional[str] = Query(None, description="province or municipality"),
    province: Optional[str] = PROVINCE_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_AREA_METRICS)),
):
    """
    Per-province (region scope) or per-municipality (province scope)
    rollups for one month.
    """
    scope = await ScopeResolver(db).resolve_for(current_user, province)
    service = MetricsService(db)
    if group_by is None:
        group_by = service.default_area_grouping(scope)
    areas = await service.compute_area_rollups(scope, year, month, group_by)
    return {
        "year": year,
        "month": month,
        "group_by": group_by,
        "scope": scope.to_dict(),
        "areas": areas,
    }


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    year: int = YEAR_QUERY,
    month: int = MONTH_QUERY,
    province: Optional[str] = PROVINCE_QUERY,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_AREA_METRICS)),
):
    """Single-month totals for the requester's territory with an area breakdown."""
    scope = await ScopeResolver(db).resolve_for(current_user, province)
    overview = await MetricsService(db).compute_overview(scope, year, month)
    overview["scope"] = scope.to_dict()
    return overview
