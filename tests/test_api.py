"""
TDMS Analytics - API Integration Tests

Integration tests for the analytics and submissions endpoints.
"""

import pytest
from httpx import AsyncClient

from app.config import settings

from helpers import april_2024_rows, auth_headers_for, guest, utc


class TestHealthEndpoint:
    """Test health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Test health check returns 200."""
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["app"] == settings.app_name


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/v1/analytics/monthly-metrics", params={"year": 2024})

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/analytics/monthly-metrics",
            params={"year": 2024},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_deactivated_account(self, client: AsyncClient, db_session, accounts):
        accounts.municipal.is_active = False
        await db_session.commit()

        response = await client.get(
            "/api/v1/analytics/monthly-metrics",
            params={"year": 2024},
            headers=auth_headers_for(accounts.municipal),
        )

        assert response.status_code == 403


class TestAnalyticsAPI:

    @pytest.mark.asyncio
    async def test_monthly_metrics(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.laoag_hotel, 2024, 4, april_2024_rows(), submitted_at=utc(2024, 5, 3))

        response = await client.get(
            "/api/v1/analytics/monthly-metrics",
            params={"year": 2024},
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["year"] == 2024
        assert data["scope"]["region"] == "Region I"
        assert len(data["metrics"]) == 12
        april = data["metrics"][3]
        assert april["month"] == 4
        assert april["total_check_ins"] == 40
        assert april["average_guests_per_room"] == 0.1944
        assert april["submission_rate"] == 25.0

    @pytest.mark.asyncio
    async def test_narrowing_outside_jurisdiction(self, client: AsyncClient, accounts, establishments):
        response = await client.get(
            "/api/v1/analytics/monthly-metrics",
            params={"year": 2024, "province": "Ilocos Sur"},
            headers=auth_headers_for(accounts.provincial),
        )

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["code"] == "SCOPE_VIOLATION"
        assert detail["details"] == {"level": "province", "requested": "Ilocos Sur"}

    @pytest.mark.asyncio
    async def test_establishment_user_scope(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.laoag_inn, 2024, 4, april_2024_rows())

        response = await client.get(
            "/api/v1/analytics/monthly-metrics",
            params={"year": 2024, "municipality": "Pagudpud"},
            headers=auth_headers_for(accounts.owner),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["scope"]["establishment_id"] == str(establishments.laoag_hotel.id)
        assert data["metrics"][3]["total_submissions"] == 0

    @pytest.mark.asyncio
    async def test_year_out_of_range(self, client: AsyncClient, accounts):
        response = await client.get(
            "/api/v1/analytics/monthly-metrics",
            params={"year": 1999},
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_month_out_of_range(self, client: AsyncClient, accounts):
        response = await client.get(
            "/api/v1/analytics/nationality-counts",
            params={"year": 2024, "month": 13},
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_monthly_check_ins(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.pagudpud_resort, 2024, 1, april_2024_rows())

        response = await client.get(
            "/api/v1/analytics/monthly-check-ins",
            params={"year": 2024, "municipality": "pagudpud"},
            headers=auth_headers_for(accounts.provincial),
        )

        assert response.status_code == 200
        assert response.json()["check_ins"][0] == {"month": 1, "total_check_ins": 40}

    @pytest.mark.asyncio
    async def test_grouped_nationality_counts(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.laoag_hotel, 2024, 4, guests=[guest("Japan"), guest("Japan")])

        response = await client.get(
            "/api/v1/analytics/nationality-counts/grouped",
            params={"year": 2024, "month": 4},
            headers=auth_headers_for(accounts.municipal),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["group_by"] == "establishment"
        assert data["groups"] == {"Laoag Grand Hotel": {"Japan": 2}}

    @pytest.mark.asyncio
    async def test_invalid_group_by(self, client: AsyncClient, accounts):
        response = await client.get(
            "/api/v1/analytics/nationality-counts/grouped",
            params={"year": 2024, "month": 4, "group_by": "barangay"},
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_FILTER"

    @pytest.mark.asyncio
    async def test_nationality_distribution(self, client: AsyncClient, accounts, establishments, submit):
        await submit(
            establishments.vigan_pension, 2024, 4,
            guests=[guest("Philippines"), guest("Korea"), guest("Overseas Filipinos")],
        )

        response = await client.get(
            "/api/v1/analytics/nationality-distribution",
            params={"year": 2024, "month": 4},
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["grand_total"] == 3
        assert data["philippine_residents"] == 1
        assert data["overseas_filipinos"] == 1
        assert data["non_philippine_residents"] == 1
        assert data["groups"][0]["label"] == "ASIA - ASEAN"

    @pytest.mark.asyncio
    async def test_guest_demographics(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.laoag_hotel, 2024, 4, guests=[guest("Japan", age=5)])

        response = await client.get(
            "/api/v1/analytics/guest-demographics",
            params={"year": 2024, "month": 4},
            headers=auth_headers_for(accounts.owner),
        )

        assert response.status_code == 200
        assert response.json()["demographics"] == [
            {"gender": "Male", "age_group": "Minors", "status": "Single", "count": 1},
        ]

    @pytest.mark.asyncio
    async def test_area_metrics(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.laoag_hotel, 2024, 4)

        response = await client.get(
            "/api/v1/analytics/area-metrics",
            params={"year": 2024, "month": 4},
            headers=auth_headers_for(accounts.provincial),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["group_by"] == "municipality"
        assert [a["area"] for a in data["areas"]] == ["Laoag City", "Pagudpud"]
        assert data["areas"][0]["submission_rate"] == 50.0

    @pytest.mark.asyncio
    async def test_area_metrics_forbidden_for_establishment_users(self, client: AsyncClient, accounts):
        response = await client.get(
            "/api/v1/analytics/area-metrics",
            params={"year": 2024, "month": 4},
            headers=auth_headers_for(accounts.owner),
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_overview(self, client: AsyncClient, accounts, establishments):
        response = await client.get(
            "/api/v1/analytics/overview",
            params={"year": 2024, "month": 4},
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_establishments"] == 4
        assert [a["area"] for a in data["area_breakdown"]] == ["Ilocos Norte", "Ilocos Sur"]


class TestSubmissionsAPI:

    @pytest.mark.asyncio
    async def test_list_submissions(self, client: AsyncClient, accounts, establishments, submit):
        await submit(establishments.laoag_hotel, 2024, 4, submitted_at=utc(2024, 5, 3))
        await submit(establishments.laoag_inn, 2024, 4, submitted_at=utc(2024, 5, 12))

        response = await client.get(
            "/api/v1/submissions",
            params={"month": 4, "year": 2024, "status": "Late"},
            headers=auth_headers_for(accounts.municipal),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["submissions"][0]["company_name"] == "Fort Ilocandia Inn"
        assert data["submissions"][0]["penalty_owed"] is True

    @pytest.mark.asyncio
    async def test_list_requires_admin_role(self, client: AsyncClient, accounts):
        response = await client.get("/api/v1/submissions", headers=auth_headers_for(accounts.owner))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_detail_for_own_establishment(self, client: AsyncClient, accounts, establishments, submit):
        own = await submit(establishments.laoag_hotel, 2024, 4, april_2024_rows())
        other = await submit(establishments.laoag_inn, 2024, 4)

        response = await client.get(f"/api/v1/submissions/{own.id}", headers=auth_headers_for(accounts.owner))
        assert response.status_code == 200
        assert len(response.json()["daily_metrics"]) == 30

        response = await client.get(f"/api/v1/submissions/{other.id}", headers=auth_headers_for(accounts.owner))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_record_penalty_payment(self, client: AsyncClient, accounts, establishments, submit):
        late = await submit(establishments.laoag_inn, 2024, 4, submitted_at=utc(2024, 6, 1))

        payload = {
            "penalty": True,
            "receipt_number": "OR-0042",
            "access_code": settings.penalty_access_code,
        }
        response = await client.put(
            f"/api/v1/submissions/{late.id}/penalty",
            json=payload,
            headers=auth_headers_for(accounts.municipal),
        )

        assert response.status_code == 200
        assert response.json()["penalty_paid"] is True
        assert response.json()["receipt_number"] == "OR-0042"

        repeat = await client.put(
            f"/api/v1/submissions/{late.id}/penalty",
            json=payload,
            headers=auth_headers_for(accounts.municipal),
        )
        assert repeat.status_code == 200
        assert repeat.json()["penalty_paid_at"] == response.json()["penalty_paid_at"]

    @pytest.mark.asyncio
    async def test_penalty_wrong_access_code(self, client: AsyncClient, accounts, establishments, submit):
        late = await submit(establishments.laoag_inn, 2024, 4, submitted_at=utc(2024, 6, 1))

        response = await client.put(
            f"/api/v1/submissions/{late.id}/penalty",
            json={"receipt_number": "OR-1", "access_code": "guess"},
            headers=auth_headers_for(accounts.municipal),
        )

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "INVALID_ACCESS_CODE"

    @pytest.mark.asyncio
    async def test_penalty_on_time_submission(self, client: AsyncClient, accounts, establishments, submit):
        on_time = await submit(establishments.laoag_inn, 2024, 4, submitted_at=utc(2024, 5, 1))

        response = await client.put(
            f"/api/v1/submissions/{on_time.id}/penalty",
            json={"receipt_number": "OR-1", "access_code": settings.penalty_access_code},
            headers=auth_headers_for(accounts.municipal),
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "NO_PENALTY_OWED"

    @pytest.mark.asyncio
    async def test_penalty_outside_jurisdiction(self, client: AsyncClient, accounts, establishments, submit):
        late = await submit(establishments.vigan_pension, 2024, 4, submitted_at=utc(2024, 6, 1))

        response = await client.put(
            f"/api/v1/submissions/{late.id}/penalty",
            json={"receipt_number": "OR-1", "access_code": settings.penalty_access_code},
            headers=auth_headers_for(accounts.provincial),
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "SCOPE_VIOLATION"

    @pytest.mark.asyncio
    async def test_unknown_submission(self, client: AsyncClient, accounts):
        response = await client.get(
            "/api/v1/submissions/00000000-0000-0000-0000-000000000000",
            headers=auth_headers_for(accounts.regional),
        )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SUBMISSION_NOT_FOUND"
