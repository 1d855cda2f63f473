import pytest

from tests.conftest import PASSWORD, auth_headers


async def _award(client, user, qr_code="TABLE_1", points=20, **extra):
    body = {"qr_code": qr_code, "points": points}
    body.update(extra)
    return await client.post("/points/add", json=body, headers=auth_headers(user))


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestAuth:

    @pytest.mark.asyncio
    async def test_login_by_username_and_email(self, client, cashier):
        for login in ("cashier", "CASHIER@example.com"):
            response = await client.post("/auth/login", json={"username": login, "password": PASSWORD})
            assert response.status_code == 200
            assert response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, cashier):
        response = await client.post("/auth/login", json={"username": "cashier", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_logout_invalidates_token(self, client, cashier):
        login = await client.post("/auth/login", json={"username": "cashier", "password": PASSWORD})
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        assert (await client.get("/auth/me", headers=headers)).status_code == 200
        assert (await client.post("/auth/logout", headers=headers)).status_code == 200

        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_rotates(self, client, cashier):
        login = (await client.post("/auth/login", json={"username": "cashier", "password": PASSWORD})).json()

        refreshed = await client.post("/auth/refresh", json={"refresh_token": login["refresh_token"]})
        assert refreshed.status_code == 200

        reused = await client.post("/auth/refresh", json={"refresh_token": login["refresh_token"]})
        assert reused.status_code == 401


class TestPointsApi:

    @pytest.mark.asyncio
    async def test_cashier_awards_points(self, client, cashier, table):
        response = await _award(client, cashier, description="Pranzo")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["previous_points"] == 0
        assert data["table"]["points"] == 20
        assert data["transaction"]["type"] == "EARNED"
        assert data["transaction"]["points_difference"] == 20

    @pytest.mark.asyncio
    async def test_customer_is_forbidden(self, client, customer, table):
        response = await _award(client, customer)
        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "error": "Unauthorized",
            "message": "Permission denied",
        }

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthenticated(self, client, table):
        response = await client.post("/points/add", json={"qr_code": "TABLE_1", "points": 5})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_out_of_range_points(self, client, cashier, table):
        response = await _award(client, cashier, points=101)
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationFailed"

    @pytest.mark.asyncio
    async def test_malformed_body(self, client, cashier, table):
        response = await _award(client, cashier, points="many")
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "ValidationFailed"
        assert body["errors"]

    @pytest.mark.asyncio
    async def test_redeem_insufficient(self, client, cashier, table):
        await _award(client, cashier, points=10)
        response = await client.post(
            "/points/redeem",
            json={"qr_code": "TABLE_1", "points": 11},
            headers=auth_headers(cashier),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InsufficientPoints"

    @pytest.mark.asyncio
    async def test_unknown_table(self, client, cashier):
        response = await _award(client, cashier, qr_code="TABLE_50")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    @pytest.mark.asyncio
    async def test_history_is_public(self, client, cashier, table):
        await _award(client, cashier, points=10)
        await _award(client, cashier, points=5, type="BONUS")

        response = await client.get(f"/points/table/{table.id}/history")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["current_points"] == 15
        assert [t["type"] for t in data["transactions"]] == ["BONUS", "EARNED"]
        assert data["transactions"][0]["assigned_by_user"]["username"] == "cashier"

    @pytest.mark.asyncio
    async def test_daily_stats(self, client, cashier, table):
        await _award(client, cashier, points=10)
        await _award(client, cashier, points=30)

        response = await client.get("/points/stats/daily", headers=auth_headers(cashier))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"]["total_points"] == 40
        assert data["by_type"]["EARNED"]["avg_points"] == 20.0

    @pytest.mark.asyncio
    async def test_user_activity_self_only(self, client, cashier, admin, table):
        await _award(client, cashier, points=10)

        own = await client.get(f"/points/user/{cashier.id}/activity", headers=auth_headers(cashier))
        assert own.status_code == 200
        assert own.json()["count"] == 1

        other = await client.get(f"/points/user/{admin.id}/activity", headers=auth_headers(cashier))
        assert other.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_audit(self, client, admin, table):
        await _award(client, admin, points=12)
        response = await client.get("/points/audit", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["out_of_sync"] == 0


class TestTablesApi:

    @pytest.mark.asyncio
    async def test_leaderboard_is_public(self, client, cashier, admin):
        for number in (1, 2):
            await client.post("/tables/", json={"table_number": number}, headers=auth_headers(admin))
        await _award(client, cashier, qr_code="TABLE_2", points=30)

        response = await client.get("/tables/leaderboard")
        assert response.status_code == 200
        data = response.json()["data"]
        assert [t["qr_code"] for t in data] == ["TABLE_2", "TABLE_1"]
        assert data[0]["medal"] == "🥇"

        position = await client.get("/tables/qr/table_1/position")
        assert position.json()["position"] == 2

    @pytest.mark.asyncio
    async def test_create_and_duplicate(self, client, admin):
        created = await client.post(
            "/tables/", json={"table_number": 8, "location": "Veranda"}, headers=auth_headers(admin)
        )
        assert created.status_code == 201
        assert created.json()["data"]["qr_code"] == "TABLE_8"
        assert created.json()["data"]["name"] == "Tavolo 8"

        duplicate = await client.post("/tables/", json={"table_number": 8}, headers=auth_headers(admin))
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "DuplicateKey"

    @pytest.mark.asyncio
    async def test_public_rename(self, client, table):
        response = await client.put(f"/tables/{table.id}/name", json={"name": "  La Banda  "})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "La Banda"

    @pytest.mark.asyncio
    async def test_table_detail_has_recent_transactions(self, client, cashier, table):
        for points in (1, 2, 3, 4, 5, 6):
            await _award(client, cashier, points=points)

        response = await client.get(f"/tables/{table.id}")
        data = response.json()["data"]
        assert data["points"] == 21
        assert data["position"] == 1
        assert len(data["recent_transactions"]) == 5

    @pytest.mark.asyncio
    async def test_update_with_null_active_flag(self, client, cashier, table):
        response = await client.put(f"/tables/{table.id}", json={"is_active": None}, headers=auth_headers(cashier))
        assert response.status_code == 422
        assert response.json()["success"] is False
        assert response.json()["error"] == "ValidationFailed"

        detail = (await client.get(f"/tables/{table.id}")).json()["data"]
        assert detail["is_active"] is True

    @pytest.mark.asyncio
    async def test_update_with_blank_name(self, client, cashier, table):
        response = await client.put(f"/tables/{table.id}", json={"name": "   "}, headers=auth_headers(cashier))
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationFailed"

    @pytest.mark.asyncio
    async def test_inactive_table_detail_is_unranked(self, client, cashier, admin, table):
        await _award(client, cashier, points=50)
        await client.delete(f"/tables/{table.id}", headers=auth_headers(admin))

        data = (await client.get(f"/tables/{table.id}")).json()["data"]
        assert data["is_active"] is False
        assert data["points"] == 50
        assert data["position"] is None
        assert data["medal"] is None
        assert len(data["recent_transactions"]) == 1

    @pytest.mark.asyncio
    async def test_deactivate_requires_admin(self, client, cashier, admin, table):
        denied = await client.delete(f"/tables/{table.id}", headers=auth_headers(cashier))
        assert denied.status_code == 403

        allowed = await client.delete(f"/tables/{table.id}", headers=auth_headers(admin))
        assert allowed.status_code == 200

        inactive = await _award(client, cashier)
        assert inactive.status_code == 400
        assert inactive.json()["error"] == "TableInactive"


@pytest.mark.asyncio
async def test_mutations_are_recorded_in_activity(client, cashier, admin, table):
    await _award(client, cashier, points=10)

    response = await client.get("/activity/", headers=auth_headers(admin))
    assert response.status_code == 200
    entries = response.json()["data"]
    assert any(e["path"] == "/points/add" and e["username"] == "cashier" for e in entries)
