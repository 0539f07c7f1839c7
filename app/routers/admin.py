"""
TDMS Analytics - Establishment Administration Router

Approval workflow, accommodation classification and the auto-approval
toggle. Every write is limited to the requester's jurisdiction.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import require_permission
from app.models.user import UserAccount
from app.schemas.establishment import (
    AccommodationUpdate,
    AutoApprovalSetting,
    EstablishmentCreate,
    EstablishmentResponse,
    MessageResponse,
    MunicipalityListResponse,
)
from app.services.establishment_service import EstablishmentService
from app.services.scope_resolver import ScopeResolver
from app.services.settings_service import SettingsService
from app.utils.permissions import Permission


router = APIRouter(prefix="/api/v1/admin", tags=["Administration"])


# ===========================================
# ESTABLISHMENTS
# ===========================================

@router.get("/establishments", response_model=List[EstablishmentResponse])
async def list_establishments(
    pending_only: bool = Query(False, description="Only establishments awaiting approval"),
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_ESTABLISHMENTS)),
):
    scope = await ScopeResolver(db).resolve_for(current_user)
    return await EstablishmentService(db).list_establishments(scope, pending_only=pending_only)


@router.post(
    "/establishments",
    response_model=EstablishmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_establishment(
    payload: EstablishmentCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_ESTABLISHMENTS)),
):
    """Register an establishment; it starts approved only when auto-approval is on."""
    scope = await ScopeResolver(db).resolve_for(current_user)
    auto_approve = await SettingsService(db).get_auto_approval()
    return await EstablishmentService(db).register_establishment(
        scope,
        auto_approve,
        **payload.model_dump(),
    )


@router.put("/establishments/{establishment_id}/approve", response_model=EstablishmentResponse)
async def approve_establishment(
    establishment_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_ESTABLISHMENTS)),
):
    scope = await ScopeResolver(db).resolve_for(current_user)
    return await EstablishmentService(db).approve(establishment_id, scope)


@router.put("/establishments/{establishment_id}/decline", response_model=MessageResponse)
async def decline_establishment(
    establishment_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_ESTABLISHMENTS)),
):
    scope = await ScopeResolver(db).resolve_for(current_user)
    await EstablishmentService(db).decline(establishment_id, scope)
    return {"message": "Establishment declined"}


@router.put("/establishments/{establishment_id}/deactivate", response_model=EstablishmentResponse)
async def deactivate_establishment(
    establishment_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_ESTABLISHMENTS)),
):
    """Deactivated establishments no longer count towards submission rates."""
    scope = await ScopeResolver(db).resolve_for(current_user)
    return await EstablishmentService(db).deactivate(establishment_id, scope)


@router.put("/establishments/{establishment_id}/accommodation", response_model=EstablishmentResponse)
async def update_accommodation(
    establishment_id: uuid.UUID,
    payload: AccommodationUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_ESTABLISHMENTS)),
):
    scope = await ScopeResolver(db).resolve_for(current_user)
    return await EstablishmentService(db).update_accommodation(
        establishment_id, scope, payload.accommodation_type
    )


@router.get("/municipalities", response_model=MunicipalityListResponse)
async def list_municipalities(
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.VIEW_AREA_METRICS)),
):
    """Municipalities with at least one establishment in the requester's territory."""
    scope = await ScopeResolver(db).resolve_for(current_user)
    municipalities = await EstablishmentService(db).list_municipalities(scope)
    return {"municipalities": municipalities}


# ===========================================
# SETTINGS
# ===========================================

@router.get("/settings/auto-approval", response_model=AutoApprovalSetting)
async def get_auto_approval(
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_SETTINGS)),
):
    return {"enabled": await SettingsService(db).get_auto_approval()}


@router.post("/settings/auto-approval", response_model=AutoApprovalSetting)
async def set_auto_approval(
    payload: AutoApprovalSetting,
    db: AsyncSession = Depends(get_async_session),
    current_user: UserAccount = Depends(require_permission(Permission.MANAGE_SETTINGS)),
):
    return {"enabled": await SettingsService(db).set_auto_approval(payload.enabled)}
