"""
TDMS Analytics - Scope Resolver

Turns a requester's role and address, plus optional narrowing parameters,
into the GeographicScope every aggregation query is filtered by.

Role lattice (widest first):
    r_admin  -> may narrow to a province and/or municipality in the region
    p_admin  -> may narrow to a municipality in the province
    admin    -> fixed to own municipality (narrowing ignored)
    user     -> fixed to own establishment (narrowing ignored)

A requested child area is accepted only if at least one establishment in the
requester's territory carries it. Anything else is a ScopeViolation; the
request is never widened or narrowed to make it fit.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.establishment import Establishment
from app.models.user import UserAccount, UserRole
from app.utils.error_handling import ScopeViolationException, StoreReadException

logger = logging.getLogger(__name__)


ALL_AREAS = "ALL"


def normalize_area(value: Optional[str]) -> Optional[str]:
    """Trim and upper-case an area name for comparison."""
    if value is None:
        return None
    return value.strip().upper()


def requested_area(value: Optional[str]) -> Optional[str]:
    """A narrowing parameter, or None when absent, blank or ALL."""
    if value is None:
        return None
    value = value.strip()
    if not value or value.upper() == ALL_AREAS:
        return None
    return value


def area_matches(column, value: str):
    """Case-insensitive, whitespace-trimmed equality on an address column."""
    return func.upper(func.trim(column)) == normalize_area(value)


@dataclass(frozen=True)
class RequesterAddress:
    """Where the requester sits in the hierarchy."""
    region: Optional[str] = None
    province: Optional[str] = None
    municipality: Optional[str] = None
    establishment_id: Optional[uuid.UUID] = None

    @classmethod
    def from_account(cls, account: UserAccount) -> "RequesterAddress":
        return cls(
            region=account.region,
            province=account.province,
            municipality=account.municipality,
            establishment_id=account.establishment_id,
        )


@dataclass(frozen=True)
class ScopeNarrowing:
    """Optional child areas a requester asked to drill into."""
    province: Optional[str] = None
    municipality: Optional[str] = None


@dataclass(frozen=True)
class GeographicScope:
    """
    Immutable filter applied before any aggregation.

    None on any level is a wildcard. establishment_id pins the scope to a
    single establishment.
    """
    region: Optional[str] = None
    province: Optional[str] = None
    municipality: Optional[str] = None
    establishment_id: Optional[uuid.UUID] = None

    @property
    def is_single_establishment(self) -> bool:
        return self.establishment_id is not None

    @property
    def spans_multiple_municipalities(self) -> bool:
        return self.municipality is None and self.establishment_id is None

    def conditions(self, model=Establishment) -> List:
        """SQL filter clauses restricting `model` (an establishment-like table) to this scope."""
        clauses = []
        if self.region is not None:
            clauses.append(area_matches(model.region, self.region))
        if self.province is not None:
            clauses.append(area_matches(model.province, self.province))
        if self.municipality is not None:
            clauses.append(area_matches(model.municipality, self.municipality))
        if self.establishment_id is not None:
            clauses.append(model.id == self.establishment_id)
        return clauses

    def contains(self, establishment: Establishment) -> bool:
        """Whether a loaded establishment lies inside this scope."""
        if self.establishment_id is not None and establishment.id != self.establishment_id:
            return False
        for level in ("region", "province", "municipality"):
            wanted = getattr(self, level)
            if wanted is not None and normalize_area(getattr(establishment, level)) != normalize_area(wanted):
                return False
        return True

    def to_dict(self) -> dict:
        return {
            "region": self.region,
            "province": self.province,
            "municipality": self.municipality,
            "establishment_id": str(self.establishment_id) if self.establishment_id else None,
        }


def scope_contains(scope: GeographicScope, establishment: Establishment) -> bool:
    return scope.contains(establishment)


class ScopeResolver:
    """Resolves the effective GeographicScope for a request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_for(
        self,
        account: UserAccount,
        province: Optional[str] = None,
        municipality: Optional[str] = None,
    ) -> GeographicScope:
        """Resolve the scope of an authenticated account."""
        return await self.resolve_scope(
            account.role,
            RequesterAddress.from_account(account),
            ScopeNarrowing(province=province, municipality=municipality),
        )

    async def resolve_scope(
        self,
        requester_role: UserRole,
        requester_address: RequesterAddress,
        requested_narrowing: Optional[ScopeNarrowing] = None,
    ) -> GeographicScope:
        """
        Resolve the effective scope.

        Raises:
            ScopeViolationException: requested area outside the requester's
                territory, or the requester has no territory assigned
        """
        narrowing = requested_narrowing or ScopeNarrowing()
        address = requester_address

        if requester_role == UserRole.USER:
            if address.establishment_id is None:
                raise ScopeViolationException(
                    "establishment", "unassigned",
                    message="No establishment is linked to this account",
                )
            return GeographicScope(
                region=address.region,
                province=address.province,
                municipality=address.municipality,
                establishment_id=address.establishment_id,
            )

        if requester_role == UserRole.ADMIN:
            self._require_assigned("municipality", address.municipality)
            return GeographicScope(
                region=address.region,
                province=address.province,
                municipality=address.municipality,
            )

        if requester_role == UserRole.P_ADMIN:
            self._require_assigned("province", address.province)
            province = requested_area(narrowing.province)
            if province is not None and normalize_area(province) != normalize_area(address.province):
                self._violation("province", province)

            base = GeographicScope(region=address.region, province=address.province)
            municipality = requested_area(narrowing.municipality)
            if municipality is None:
                return base
            await self._verify_child(base, "municipality", municipality)
            return GeographicScope(
                region=address.region,
                province=address.province,
                municipality=municipality,
            )

        if requester_role == UserRole.R_ADMIN:
            self._require_assigned("region", address.region)
            scope = GeographicScope(region=address.region)

            province = requested_area(narrowing.province)
            if province is not None:
                await self._verify_child(scope, "province", province)
                scope = GeographicScope(region=address.region, province=province)

            municipality = requested_area(narrowing.municipality)
            if municipality is not None:
                await self._verify_child(scope, "municipality", municipality)
                scope = GeographicScope(
                    region=scope.region,
                    province=scope.province,
                    municipality=municipality,
                )
            return scope

        raise ScopeViolationException("role", str(requester_role), message="Unknown requester role")

    async def _verify_child(self, parent: GeographicScope, level: str, value: str) -> None:
        """Accept `value` only if an establishment inside `parent` carries it."""
        column = getattr(Establishment, level)
        query = (
            select(func.count(Establishment.id))
            .where(*parent.conditions(), area_matches(column, value))
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreReadException("resolve_scope", original_error=e)

        if not result.scalar_one():
            self._violation(level, value)

    @staticmethod
    def _require_assigned(level: str, value: Optional[str]) -> None:
        if not value or not value.strip():
            raise ScopeViolationException(
                level, "unassigned",
                message=f"No {level} is assigned to this account",
            )

    @staticmethod
    def _violation(level: str, value: str) -> None:
        logger.warning(f"Scope violation: requested {level} '{value}' outside jurisdiction")
        raise ScopeViolationException(level, value)
