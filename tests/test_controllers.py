"""End-to-end tests for the API controllers over ASGI."""

from typing import Any, Dict, List

import httpx
import pytest

from plantgate.core.application import PlantGateApp
from plantgate.models import NotificationCenter, SystemLogHistory, UserLogin
from plantgate.services import administration as endpoints

API = "/api/v1"


async def audit_rows(app) -> List[Dict[str, Any]]:
    return await SystemLogHistory(await app.connections.default()).query().order_by("slh_id").get()


async def notification(app, code: str, **values: Any) -> None:
    await NotificationCenter(await app.connections.default()).create({
        "nc_db_code": code,
        "nc_type": "alert",
        "nc_title": f"Notice {code}",
        "nc_content": "Body",
        "nc_recipient_list": "all",
        "nc_status": 1,
        "nc_created_datetime": "2024-02-01 09:00:00",
        "nc_created_by": "Alice Tan",
        **values,
    })


@pytest.fixture
def verified(administration):
    user = {"username": "alice", "db_code": "LU0001", "pl_db_code": "PL0001", "access_token": "fresh-token"}
    administration.ok(endpoints.ACCOUNT_VERIFY, user, "Account verified")
    return user


class TestLogin:
    async def test_login_records_token_and_audit(self, app, client, administration, verified) -> None:
        reply = await client.post(f"{API}/auth/login", json={"username": "alice", "password": "pw"})

        assert reply.status_code == 200
        assert reply.json() == {"status_code": 200, "message": "Login successful", "data": verified}

        (form,) = administration.called(endpoints.ACCOUNT_VERIFY)
        assert form == {"username": "alice", "password": "pw", "platform": "admin", "fromPlatform": "qa"}

        row = await UserLogin(await app.connections.default()).find_by_token("fresh-token")
        assert row["ul_lu_db_code"] == "LU0001"
        assert row["ul_pl_db_code"] == "PL0001"

        (audit,) = await audit_rows(app)
        assert audit["slh_created_by"] == "alice"
        assert audit["slh_content"] == "Login successful"
        assert audit["slh_module"] == "general"
        assert audit["slh_subject"] == "General Action"
        assert audit["slh_ip_address"] == "127.0.0.1"

    async def test_second_login_updates_row(self, app, client, administration, verified) -> None:
        await client.post(f"{API}/auth/login", json={"username": "alice", "password": "pw"})
        administration.ok(endpoints.ACCOUNT_VERIFY, {**verified, "access_token": "newer-token"})
        await client.post(f"{API}/auth/login", json={"username": "alice", "password": "pw"})

        logins = UserLogin(await app.connections.default())
        assert await logins.query().count() == 1
        assert await logins.find_by_token("newer-token") is not None

    async def test_missing_fields(self, app, client, administration) -> None:
        reply = await client.post(f"{API}/auth/login", json={"username": "alice"})

        assert reply.status_code == 422
        assert list(reply.json()["errors"]) == ["password"]
        assert administration.calls == []
        assert await audit_rows(app) == []

    async def test_rejected_credentials(self, app, client, administration) -> None:
        administration.reply(endpoints.ACCOUNT_VERIFY, {"status_code": 401, "message": "Wrong password"})
        reply = await client.post(f"{API}/auth/login", data={"username": "alice", "password": "bad"})

        assert reply.status_code == 401
        assert reply.json()["message"] == "Wrong password"
        assert await audit_rows(app) == []

    async def test_hidden_validation_details_in_production(self, config, administration) -> None:
        config.set("app.environment", "production")
        app = PlantGateApp(config=config, transport=httpx.MockTransport(administration))
        try:
            async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
                reply = await client.post(f"{API}/auth/login", json={})
            assert reply.status_code == 422
            assert reply.json() == {"status_code": 422, "message": "Validation failed"}
        finally:
            await app.admin.close()
            await app.connections.close()


class TestPlatformAccessToken:
    async def test_verify_records_login_for_returned_user(self, app, client, administration) -> None:
        administration.ok(endpoints.ACCOUNT_VERIFY_PLATFORM_ACCESS_TOKEN, {
            "username": "bob",
            "db_code": "LU0002",
            "pl_db_code": "PL0002",
            "access_token": "bob-token",
        })
        reply = await client.post(f"{API}/auth/verify-platform-access-token", json={"platformAccessToken": "pat"})

        assert reply.status_code == 200
        assert reply.json()["message"] == "Access via token successful."
        assert administration.called(endpoints.ACCOUNT_VERIFY_PLATFORM_ACCESS_TOKEN) == [
            {"platformAccessToken": "pat", "platform": "admin"}
        ]
        assert await UserLogin(await app.connections.default()).find_by_token("bob-token") is not None
        (audit,) = await audit_rows(app)
        assert audit["slh_created_by"] == "bob"

    async def test_verify_redirect_is_not_audited(self, app, client, administration) -> None:
        administration.ok(endpoints.ACCOUNT_VERIFY_PLATFORM_ACCESS_TOKEN, {"username": "bob", "db_code": "LU0002", "access_token": "t"})
        reply = await client.post(f"{API}/auth/verify-redirect", json={"platformAccessToken": "pat"})

        assert reply.status_code == 200
        assert await audit_rows(app) == []

    async def test_token_required(self, client) -> None:
        reply = await client.post(f"{API}/auth/verify-platform-access-token", json={})
        assert reply.status_code == 422

    async def test_generate(self, client, administration, session) -> None:
        administration.ok(endpoints.ACCOUNT_GET_PLATFORM_ACCESS_TOKEN, {"platformAccessToken": "pat-1"})
        reply = await client.post(f"{API}/auth/get-platform-access-token", json=session)

        assert reply.json() == {
            "status_code": 200,
            "message": "The platform access token was generated successfully.",
            "data": {"platformAccessToken": "pat-1"},
        }


class TestLogout:
    async def test_rotates_token(self, app, client, administration, session) -> None:
        administration.ok(endpoints.ACCOUNT_LOGOUT)
        reply = await client.post(f"{API}/auth/logout", json=session)

        assert reply.json() == {"status_code": 200, "message": "Logout successful"}
        logins = UserLogin(await app.connections.default())
        assert await logins.find_by_token(session["accessToken"]) is None
        row = await logins.find_by_record("LU0001")
        assert len(row["ul_access_token"]) == 50

        (audit,) = await audit_rows(app)
        assert audit["slh_created_by"] == "alice"
        assert audit["slh_content"] == "Logout successful"

    async def test_administration_failure_still_logs_out(self, app, client, administration, session) -> None:
        administration.reply(endpoints.ACCOUNT_LOGOUT, {"status_code": 500, "message": "Session store down"})
        reply = await client.post(f"{API}/auth/logout", json=session)

        assert reply.status_code == 200
        assert reply.json() == {"status_code": 200, "message": "Logout successful"}
        assert len(administration.called(endpoints.ACCOUNT_LOGOUT)) == 1
        assert await UserLogin(await app.connections.default()).find_by_token(session["accessToken"]) is None

    async def test_unknown_token(self, client, administration) -> None:
        reply = await client.post(f"{API}/auth/logout", json={"accessUsername": "alice", "accessToken": "nope"})
        assert reply.status_code == 401
        assert reply.json()["message"] == "Invalid token"
        assert administration.called(endpoints.ACCOUNT_LOGOUT) == []


class TestMe:
    @pytest.mark.parametrize("method", ["GET", "POST"])
    async def test_returns_principal(self, client, session, alice, method) -> None:
        reply = await client.request(method, f"{API}/auth/me", json=session)
        assert reply.json() == {"status_code": 200, "message": "User found", "data": alice}


class TestPlatform:
    @pytest.mark.parametrize("path, endpoint, message", [
        ("/plant/plant-list-to-select", endpoints.PLANT_LIST_TO_SELECT, "Plants list retrieved successfully"),
        ("/site/site-list-to-select", endpoints.SITE_LIST_TO_SELECT, "Site information retrieved successfully"),
        ("/building/building-list-to-select", endpoints.BUILDING_LIST_TO_SELECT, "Building list retrieved successfully"),
        ("/entity/entity-list-to-select", endpoints.ENTITY_LIST_TO_SELECT, "Entity list retrieved successfully"),
        ("/user/user-list-to-select", endpoints.USER_LIST_TO_SELECT, "User list retrieved successfully"),
        ("/user/get-user-plant-list", endpoints.USER_PLANT_LIST, "User Plant List found"),
    ])
    async def test_lists_forward_credentials(self, client, administration, session, path, endpoint, message) -> None:
        administration.ok(endpoint, [{"id": 1}])
        reply = await client.post(API + path, json=session)

        assert reply.json() == {"status_code": 200, "message": message, "data": [{"id": 1}]}
        assert administration.called(endpoint) == [session]

    async def test_upstream_error_passed_through(self, client, administration, session) -> None:
        administration.reply(endpoints.SITE_LIST_TO_SELECT, {"status_code": 404, "message": "No sites"})
        reply = await client.post(f"{API}/site/site-list-to-select", json=session)

        assert reply.status_code == 404
        assert reply.json() == {"status_code": 404, "message": "No sites"}

    async def test_list_requires_credentials(self, client, administration) -> None:
        reply = await client.post(f"{API}/plant/plant-list-to-select", json={})
        assert reply.status_code == 422
        assert administration.called(endpoints.PLANT_LIST_TO_SELECT) == []

    async def test_warehouse_list_needs_no_session(self, client, administration) -> None:
        administration.ok(endpoints.WAREHOUSE_LIST_TO_SELECT, [{"wh_code": "W1"}])
        reply = await client.post(f"{API}/warehouse/all-warehouse-list-to-select", json={})

        assert reply.json()["message"] == "Warehouse list retrieved successfully"
        assert len(administration.called(endpoints.WAREHOUSE_LIST_TO_SELECT)) == 1

    async def test_profile_adds_last_login(self, client, administration, session) -> None:
        administration.ok(endpoints.USER_PROFILE, {"user": {"db_code": "LU0001", "name": "Alice Tan"}})
        reply = await client.post(f"{API}/user/get-user-profile", json=session)

        assert reply.json()["data"]["user"]["last_login"] == "2024-01-01 08:00:00"
        assert reply.json()["message"] == "User found"

    async def test_platform_list(self, client, administration, session) -> None:
        missing = await client.post(f"{API}/user/get-platform-list", json=session)
        assert missing.status_code == 422

        administration.ok(endpoints.PLATFORM_LIST, ["mes", "wms"])
        reply = await client.post(f"{API}/user/get-platform-list", json={**session, "currentPlatformType": "mes"})

        assert reply.json()["message"] == "User platform list found"
        (form,) = administration.called(endpoints.PLATFORM_LIST)
        assert form["currentPlatformType"] == "mes"


class TestSystemLog:
    async def seed(self, app, count: int) -> None:
        logs = SystemLogHistory(await app.connections.default())
        for i in range(count):
            await logs.create({
                "slh_lp_plant_db_code": "P1",
                "slh_ip_address": "10.0.0.1",
                "slh_subject": f"Entry {i}",
                "slh_content": "Content",
                "slh_module": "quality" if i % 2 else "user",
                "slh_created_datetime": f"2024-05-{i + 10} 12:00:00",
                "slh_created_by": "alice",
            })

    async def test_list_pages(self, app, client, administration, session) -> None:
        await self.seed(app, 5)
        administration.ok(endpoints.PLANT_LIST_TO_SELECT, [{"plant_db_code": "P1", "plant_code": "KUL"}])

        reply = await client.post(f"{API}/system-log/list", json={**session, "page": 2, "limit": 2})
        data = reply.json()["data"]

        assert reply.json()["message"] == "System logs retrieved successfully"
        assert (data["total"], data["page"], data["limit"], data["pages"]) == (5, 2, 2, 3)
        assert [log["subject"] for log in data["logs"]] == ["Entry 2", "Entry 1"]
        assert data["logs"][0]["lp_plant_code"] == "KUL"

    async def test_list_defaults_and_filters(self, app, client, session) -> None:
        await self.seed(app, 3)
        reply = await client.post(f"{API}/system-log/list", json={**session, "module": "quality"})
        data = reply.json()["data"]

        assert (data["page"], data["limit"], data["total"]) == (1, 10, 1)

    async def test_list_limit_bounds(self, client, session) -> None:
        reply = await client.post(f"{API}/system-log/list", json={**session, "limit": 1000000})
        assert reply.status_code == 400
        assert reply.json()["message"] == "Limit must be between 1-999999"

    async def test_list_requires_permission(self, client, administration, session) -> None:
        administration.ok(endpoints.ACCOUNT_ME, {"username": "alice", "user_access": {}})
        reply = await client.post(f"{API}/system-log/list", json=session)

        assert reply.status_code == 401
        assert reply.json()["message"] == "Permission denied"

    async def test_create_and_show(self, client, session) -> None:
        created = await client.post(f"{API}/system-log/create", json={
            **session,
            "plantId": "P1",
            "ipAddress": "10.0.0.9",
            "subject": "Manual entry",
            "content": "Calibrated sensor",
            "module": "quality",
        })
        body = created.json()
        assert body["status_code"] == 200
        assert body["message"] == "Log entry created successfully"
        log = body["data"]["log"]
        assert log["slh_created_by"] == "Alice Tan"

        shown = await client.post(f"{API}/system-log/get", json={**session, "id": log["slh_id"]})
        assert shown.json()["data"]["log"]["slh_subject"] == "Manual entry"

    async def test_create_validation(self, client, session) -> None:
        reply = await client.post(f"{API}/system-log/create", json={**session, "plantId": "P100", "subject": "ab"})

        assert reply.status_code == 422
        assert set(reply.json()["errors"]) == {"plantId", "ipAddress", "subject", "content", "module"}

    async def test_show_missing(self, client, session) -> None:
        reply = await client.post(f"{API}/system-log/get", json={**session, "id": 999})
        assert reply.status_code == 404
        assert reply.json()["message"] == "Log entry not found"

    async def test_modules_and_users(self, app, client, session) -> None:
        await self.seed(app, 3)

        modules = await client.post(f"{API}/system-log/modules", json=session)
        users = await client.post(f"{API}/system-log/users", json=session)

        assert modules.json()["data"]["modules"] == [{"slh_module": "quality"}, {"slh_module": "user"}]
        assert users.json()["data"]["users"] == [{"slh_created_by": "alice"}]


class TestNotificationCenter:
    async def test_create_requires_fields(self, app, client, session) -> None:
        reply = await client.post(f"{API}/notification-center/create", json={**session, "title": "t"})

        assert reply.status_code == 422
        errors = reply.json()["errors"]
        assert {"type", "content", "recipientList"} <= set(errors)
        assert "title" not in errors
        assert await audit_rows(app) == []

    async def test_create_is_audited(self, app, client, session) -> None:
        reply = await client.post(f"{API}/notification-center/create", json={
            **session,
            "type": "alert",
            "title": "Boiler pressure",
            "content": "Pressure above threshold",
            "recipientList": "ops",
            "globalPlantDbCode": "P1",
        })

        assert reply.json() == {"status_code": 200, "message": "Notification center record created successfully"}

        (row,) = await NotificationCenter(await app.connections.default()).query().get()
        assert row["nc_title"] == "Boiler pressure"
        assert row["nc_status"] == 1
        assert row["nc_created_by"] == "Alice Tan"

        (audit,) = await audit_rows(app)
        assert audit["slh_module"] == "notification_center"
        assert audit["slh_subject"] == "Create Notification"
        assert audit["slh_created_by"] == "alice"
        assert audit["slh_lp_plant_db_code"] == "P1"

    async def test_write_permission_required(self, app, client, administration, session) -> None:
        administration.ok(endpoints.ACCOUNT_ME, {
            "username": "alice",
            "user_access": {"notification_center": {"read": True, "write": False}},
        })
        reply = await client.post(f"{API}/notification-center/delete", json={**session, "code": "A"})

        assert reply.status_code == 401
        assert reply.json()["message"] == "Permission denied"
        assert await audit_rows(app) == []

    async def test_list(self, app, client, session) -> None:
        await notification(app, "A")
        await notification(app, "B", nc_type="notice")
        await notification(app, "C", nc_status=-1)

        reply = await client.post(f"{API}/notification-center/list", json={**session, "page": 1, "limit": 10})
        data = reply.json()["data"]
        assert data["total"] == 2
        assert data["pages"] == 1
        assert {record["db_code"] for record in data["notificationCenter"]} == {"A", "B"}

        typed = await client.post(f"{API}/notification-center/list", json={**session, "page": 1, "limit": 10, "type": "notice"})
        assert typed.json()["data"]["total"] == 1

    async def test_list_with_non_numeric_status(self, app, client, session) -> None:
        await notification(app, "A")
        await notification(app, "B", nc_status=0)

        reply = await client.post(f"{API}/notification-center/list", json={
            **session, "page": 1, "limit": 10, "status": "active",
        })

        assert reply.status_code == 200
        assert [record["db_code"] for record in reply.json()["data"]["notificationCenter"]] == ["B"]

    @pytest.mark.parametrize("page, limit, message", [
        (0, 10, "Page must be ≥ 1"),
        (1, 101, "Limit must be between 1-100"),
    ])
    async def test_list_bounds(self, client, session, page, limit, message) -> None:
        reply = await client.post(f"{API}/notification-center/list", json={**session, "page": page, "limit": limit})
        assert reply.status_code == 400
        assert reply.json()["message"] == message

    async def test_show(self, app, client, session) -> None:
        await notification(app, "A")

        found = await client.post(f"{API}/notification-center/get", json={**session, "code": "A"})
        missing = await client.post(f"{API}/notification-center/get", json={**session, "code": "Z"})

        assert found.json()["data"]["notificationCenter"]["title"] == "Notice A"
        assert missing.status_code == 404
        assert missing.json()["message"] == "Notification center record not found"

    async def test_update_takes_status_from_nc_status(self, app, client, session) -> None:
        await notification(app, "A")
        reply = await client.post(f"{API}/notification-center/update", json={
            **session,
            "code": "A",
            "type": "notice",
            "title": "Updated",
            "content": "New body",
            "status": "1",
            "ncStatus": "0",
        })

        assert reply.json() == {"status_code": 200, "message": "Notification center record updated successfully"}
        row = await NotificationCenter(await app.connections.default()).find_by_code("A")
        assert (row["title"], row["type"], row["status"]) == ("Updated", "notice", 0)
        assert row["recipient_list"] == "all"

        (audit,) = await audit_rows(app)
        assert audit["slh_subject"] == "Update Notification"

    async def test_update_requires_status(self, app, client, session) -> None:
        await notification(app, "A")
        reply = await client.post(f"{API}/notification-center/update", json={
            **session, "code": "A", "type": "notice", "title": "Updated", "content": "Body",
        })
        assert reply.status_code == 422
        assert list(reply.json()["errors"]) == ["status"]

    async def test_update_missing_record(self, client, session) -> None:
        reply = await client.post(f"{API}/notification-center/update", json={**session, "code": "Z"})
        assert reply.status_code == 404

    async def test_delete_is_soft(self, app, client, session) -> None:
        await notification(app, "A")
        reply = await client.post(f"{API}/notification-center/delete", json={**session, "code": "A"})

        assert reply.json()["message"] == "Notification center record deleted successfully"
        records = NotificationCenter(await app.connections.default())
        assert await records.find_by_code("A") == {}
        assert (await records.find_by_code("A", status=-1))["status"] == -1

        again = await client.post(f"{API}/notification-center/delete", json={**session, "code": "A"})
        assert again.status_code == 404
