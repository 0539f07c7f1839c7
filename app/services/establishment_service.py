"""
TDMS Analytics - Establishment Service

Establishment administration within a requester's scope:
1. Listing (optionally only those awaiting approval)
2. Registration with the current auto-approval state
3. Approve / decline / deactivate
4. Accommodation type and code
5. Municipalities available for filtering
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.establishment import Establishment, accommodation_code_for
from app.services.scope_resolver import GeographicScope, normalize_area
from app.utils.error_handling import (
    EstablishmentNotFoundException,
    ScopeViolationException,
    ValidationException,
)

logger = logging.getLogger(__name__)


class EstablishmentService:
    """Service for establishment administration."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_establishments(
        self,
        scope: GeographicScope,
        pending_only: bool = False,
    ) -> List[Establishment]:
        query = select(Establishment).where(*scope.conditions())
        if pending_only:
            query = query.where(Establishment.is_approved.is_(False))
        query = query.order_by(Establishment.company_name)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_municipalities(self, scope: GeographicScope) -> List[str]:
        """Distinct municipality names in scope, trimmed and sorted."""
        name = func.trim(Establishment.municipality)
        result = await self.db.execute(
            select(name).where(*scope.conditions()).distinct().order_by(name)
        )
        return [row[0] for row in result.all() if row[0]]

    async def get_in_scope(
        self,
        establishment_id: uuid.UUID,
        scope: GeographicScope,
    ) -> Establishment:
        establishment = await self.db.get(Establishment, establishment_id)
        if establishment is None:
            raise EstablishmentNotFoundException(establishment_id)
        if not scope.contains(establishment):
            logger.warning(f"Establishment {establishment_id} requested outside jurisdiction")
            raise ScopeViolationException("establishment", str(establishment_id))
        return establishment

    async def register_establishment(
        self,
        scope: GeographicScope,
        auto_approve: bool,
        company_name: str,
        region: str,
        province: str,
        municipality: str,
        number_of_rooms: int = 0,
        barangay: Optional[str] = None,
        accommodation_type: Optional[str] = None,
    ) -> Establishment:
        """
        Register an establishment inside the requester's scope.

        auto_approve is decided by the caller from the current settings.
        """
        if not company_name or not company_name.strip():
            raise ValidationException("company_name is required", field="company_name")
        if number_of_rooms < 0:
            raise ValidationException("number_of_rooms cannot be negative", field="number_of_rooms")

        establishment = Establishment(
            company_name=company_name.strip(),
            region=region.strip(),
            province=province.strip(),
            municipality=municipality.strip(),
            barangay=barangay.strip() if barangay else None,
            number_of_rooms=number_of_rooms,
            accommodation_type=accommodation_type,
            accommodation_code=accommodation_code_for(accommodation_type) if accommodation_type else None,
            is_approved=auto_approve,
            is_active=True,
        )
        for level in ("region", "province", "municipality"):
            wanted = getattr(scope, level)
            if wanted is not None and normalize_area(getattr(establishment, level)) != normalize_area(wanted):
                raise ScopeViolationException(level, getattr(establishment, level))

        self.db.add(establishment)
        await self.db.commit()
        await self.db.refresh(establishment)

        logger.info(
            f"Registered establishment {establishment.company_name} "
            f"({'approved' if auto_approve else 'pending approval'})"
        )
        return establishment

    async def approve(self, establishment_id: uuid.UUID, scope: GeographicScope) -> Establishment:
        establishment = await self.get_in_scope(establishment_id, scope)
        establishment.is_approved = True
        await self.db.commit()
        await self.db.refresh(establishment)
        logger.info(f"Approved establishment {establishment_id}")
        return establishment

    async def decline(self, establishment_id: uuid.UUID, scope: GeographicScope) -> None:
        """Decline a pending registration by removing it."""
        establishment = await self.get_in_scope(establishment_id, scope)
        await self.db.delete(establishment)
        await self.db.commit()
        logger.info(f"Declined establishment {establishment_id}")

    async def deactivate(self, establishment_id: uuid.UUID, scope: GeographicScope) -> Establishment:
        establishment = await self.get_in_scope(establishment_id, scope)
        establishment.is_active = False
        await self.db.commit()
        await self.db.refresh(establishment)
        logger.info(f"Deactivated establishment {establishment_id}")
        return establishment

    async def update_accommodation(
        self,
        establishment_id: uuid.UUID,
        scope: GeographicScope,
        accommodation_type: str,
    ) -> Establishment:
        """Set the accommodation type; the code follows it (unknown types get OTH)."""
        establishment = await self.get_in_scope(establishment_id, scope)
        establishment.accommodation_type = accommodation_type
        establishment.accommodation_code = accommodation_code_for(accommodation_type)
        await self.db.commit()
        await self.db.refresh(establishment)
        return establishment
