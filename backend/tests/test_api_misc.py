"""
Tests for employee_directory/api/v1/misc.py - Reference data endpoints.
"""
import pytest

from conftest import auth_headers


class TestReferenceData:
    """Lists for forms and filters; any authenticated employee may read them."""

    @pytest.mark.asyncio
    async def test_permissions(self, client, sample_login):
        response = await client.get(
            "/api/v1/misc/permissions", headers=auth_headers(sample_login["accessToken"])
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [p["name"] for p in data] == [
            "CREATE_EMPLOYEE",
            "DELETE_EMPLOYEE",
            "READ_EMPLOYEE",
            "UPDATE_EMPLOYEE",
        ]
        assert data[0]["description"] == "Can create new employees"

    @pytest.mark.asyncio
    async def test_departments_sorted_by_name(self, client, ceo_token):
        response = await client.get("/api/v1/misc/departments", headers=auth_headers(ceo_token))

        names = [d["name"] for d in response.json()["data"]]
        assert names == [
            "Engineering",
            "Executive",
            "Finance",
            "Human Resources",
            "Marketing",
            "Sales",
        ]
        assert response.json()["message"] == "Departments retrieved successfully"

    @pytest.mark.asyncio
    async def test_locations(self, client, ceo_token):
        response = await client.get("/api/v1/misc/locations", headers=auth_headers(ceo_token))

        data = response.json()["data"]
        assert len(data) == 5
        assert set(data[0]) == {"id", "name"}
        assert "Remote" in [loc["name"] for loc in data]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["permissions", "departments", "locations"])
    async def test_requires_authentication(self, client, path):
        response = await client.get(f"/api/v1/misc/{path}")

        assert response.status_code == 401
        assert response.json()["success"] is False
