"""
TDMS Analytics - Scope Resolver Tests

Role lattice, narrowing and scope violations.
"""

import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from app.models.user import UserRole
from app.services.scope_resolver import (
    GeographicScope,
    RequesterAddress,
    ScopeNarrowing,
    ScopeResolver,
    requested_area,
    scope_contains,
)
from app.utils.error_handling import ScopeViolationException, StoreReadException

from helpers import REGION


class TestRequestedArea:

    def test_blank_and_all_mean_no_narrowing(self):
        assert requested_area(None) is None
        assert requested_area("   ") is None
        assert requested_area("ALL") is None
        assert requested_area("all") is None

    def test_value_is_trimmed(self):
        assert requested_area("  Pagudpud ") == "Pagudpud"


class TestRegionalAdmin:

    @pytest.mark.asyncio
    async def test_no_narrowing_is_whole_region(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(accounts.regional)

        assert scope == GeographicScope(region=REGION)
        assert scope.spans_multiple_municipalities

    @pytest.mark.asyncio
    async def test_narrow_to_province_ignores_case_and_spaces(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(accounts.regional, province=" ilocos norte ")

        assert scope.region == REGION
        assert scope.province == "ilocos norte"
        assert scope.municipality is None

    @pytest.mark.asyncio
    async def test_narrow_to_province_and_municipality(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(
            accounts.regional, province="Ilocos Norte", municipality="Pagudpud",
        )

        assert scope.province == "Ilocos Norte"
        assert scope.municipality == "Pagudpud"
        assert not scope.spans_multiple_municipalities

    @pytest.mark.asyncio
    async def test_all_is_not_narrowing(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(
            accounts.regional, province="ALL", municipality="ALL",
        )

        assert scope == GeographicScope(region=REGION)

    @pytest.mark.asyncio
    async def test_province_outside_region_is_violation(self, db_session, accounts):
        with pytest.raises(ScopeViolationException) as exc_info:
            await ScopeResolver(db_session).resolve_for(accounts.regional, province="Benguet")

        assert exc_info.value.status_code == 403
        assert exc_info.value.details["level"] == "province"
        assert exc_info.value.details["requested"] == "Benguet"

    @pytest.mark.asyncio
    async def test_municipality_outside_narrowed_province_is_violation(self, db_session, accounts):
        with pytest.raises(ScopeViolationException):
            await ScopeResolver(db_session).resolve_for(
                accounts.regional, province="Ilocos Norte", municipality="Vigan City",
            )


class TestProvincialAdmin:

    @pytest.mark.asyncio
    async def test_default_is_own_province(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(accounts.provincial)

        assert scope == GeographicScope(region=REGION, province="Ilocos Norte")

    @pytest.mark.asyncio
    async def test_narrow_to_municipality(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(
            accounts.provincial, municipality="LAOAG CITY",
        )

        assert scope.municipality == "LAOAG CITY"
        assert scope.province == "Ilocos Norte"

    @pytest.mark.asyncio
    async def test_own_province_requested_explicitly(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(accounts.provincial, province="Ilocos Norte")

        assert scope.province == "Ilocos Norte"

    @pytest.mark.asyncio
    async def test_other_province_is_violation(self, db_session, accounts):
        with pytest.raises(ScopeViolationException):
            await ScopeResolver(db_session).resolve_for(accounts.provincial, province="Ilocos Sur")

    @pytest.mark.asyncio
    async def test_municipality_in_other_province_is_violation(self, db_session, accounts):
        with pytest.raises(ScopeViolationException):
            await ScopeResolver(db_session).resolve_for(accounts.provincial, municipality="Vigan City")


class TestMunicipalAdminAndUser:

    @pytest.mark.asyncio
    async def test_municipal_narrowing_is_ignored(self, db_session, accounts):
        scope = await ScopeResolver(db_session).resolve_for(
            accounts.municipal, province="Ilocos Sur", municipality="Vigan City",
        )

        assert scope == GeographicScope(
            region=REGION, province="Ilocos Norte", municipality="Laoag City",
        )

    @pytest.mark.asyncio
    async def test_user_is_pinned_to_establishment(self, db_session, accounts, establishments):
        scope = await ScopeResolver(db_session).resolve_for(accounts.owner, municipality="Pagudpud")

        assert scope.establishment_id == establishments.laoag_hotel.id
        assert scope.is_single_establishment
        assert not scope.spans_multiple_municipalities

    @pytest.mark.asyncio
    async def test_user_without_establishment_is_violation(self, db_session):
        with pytest.raises(ScopeViolationException):
            await ScopeResolver(db_session).resolve_scope(
                UserRole.USER, RequesterAddress(region=REGION),
            )

    @pytest.mark.asyncio
    async def test_admin_without_municipality_is_violation(self, db_session):
        with pytest.raises(ScopeViolationException):
            await ScopeResolver(db_session).resolve_scope(
                UserRole.ADMIN,
                RequesterAddress(region=REGION, province="Ilocos Norte"),
                ScopeNarrowing(municipality="Laoag City"),
            )


class TestStoreFailures:

    @pytest.mark.asyncio
    async def test_store_error_during_verification(self):
        mock_db = AsyncMock()
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StoreReadException) as exc_info:
            await ScopeResolver(mock_db).resolve_scope(
                UserRole.R_ADMIN,
                RequesterAddress(region=REGION),
                ScopeNarrowing(province="Ilocos Norte"),
            )

        assert exc_info.value.status_code == 503


class TestScopeContains:

    @pytest.mark.asyncio
    async def test_contains_matches_ignoring_case(self, establishments):
        scope = GeographicScope(region="REGION I", province="ilocos norte")

        assert scope_contains(scope, establishments.laoag_hotel)
        assert not scope_contains(scope, establishments.vigan_pension)

    @pytest.mark.asyncio
    async def test_establishment_scope(self, establishments):
        scope = GeographicScope(establishment_id=establishments.laoag_hotel.id)

        assert scope.contains(establishments.laoag_hotel)
        assert not scope.contains(establishments.laoag_inn)
        assert not GeographicScope(establishment_id=uuid4()).contains(establishments.laoag_hotel)

    @pytest.mark.asyncio
    async def test_to_dict(self, establishments):
        scope = GeographicScope(region=REGION, establishment_id=establishments.laoag_hotel.id)

        assert scope.to_dict()["establishment_id"] == str(establishments.laoag_hotel.id)
        assert scope.to_dict()["province"] is None
