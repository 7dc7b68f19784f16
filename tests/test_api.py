"""
API tests through the ASGI app: routing, auth dependencies and the error envelope.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from artgram_booking_platform.database import get_db
from artgram_booking_platform.main import app
from artgram_booking_platform.utils.dependencies import get_current_actor


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def act_as():
    def _act_as(actor):
        app.dependency_overrides[get_current_actor] = lambda: actor
    return _act_as


async def create_booking(client, session_id, seats=2):
    response = await client.post("/api/v1/bookings", json={"session_id": str(session_id), "seats": seats})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
class TestBookingEndpoints:

    async def test_create_booking(self, client, act_as, activity_session, customer):
        act_as(customer)

        body = await create_booking(client, activity_session.id, seats=2)

        assert body["booking"]["seats"] == 2
        assert body["booking"]["status"] == "active"
        assert body["booking"]["customer_id"] == customer.id
        assert body["booking"]["is_verified"] is False
        assert body["booking"]["qr_token"] in body["qr_payload"]

    async def test_capacity_exceeded_is_409(self, client, act_as, make_session, customer):
        act_as(customer)
        activity_session = await make_session(total_seats=2)

        response = await client.post(
            "/api/v1/bookings", json={"session_id": str(activity_session.id), "seats": 3}
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["error_code"] == "CAPACITY_EXCEEDED"
        assert error["details"]["available"] == 2
        assert "error_id" in response.json()

    async def test_invalid_body_is_422(self, client, act_as, activity_session, customer):
        act_as(customer)

        response = await client.post(
            "/api/v1/bookings", json={"session_id": str(activity_session.id), "seats": 0}
        )

        assert response.status_code == 422
        assert response.json()["error"]["error_code"] == "VALIDATION_ERROR"

    async def test_cancel_twice(self, client, act_as, activity_session, customer):
        act_as(customer)
        booking_id = (await create_booking(client, activity_session.id))["booking"]["id"]

        first = await client.post(f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "Sick"})
        second = await client.post(f"/api/v1/bookings/{booking_id}/cancel")

        assert first.status_code == 200
        assert first.json()["booking"]["status"] == "cancelled"
        assert second.status_code == 409
        assert second.json()["error"]["error_code"] == "BOOKING_ALREADY_CANCELLED"

    async def test_other_customer_gets_403(self, client, act_as, activity_session, customer, another_customer):
        act_as(customer)
        booking_id = (await create_booking(client, activity_session.id))["booking"]["id"]

        act_as(another_customer)
        response = await client.get(f"/api/v1/bookings/{booking_id}")

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "FORBIDDEN"

    async def test_list_and_history(self, client, act_as, activity_session, customer):
        act_as(customer)
        booking_id = (await create_booking(client, activity_session.id))["booking"]["id"]

        listing = await client.get("/api/v1/bookings", params={"status": "active"})
        history = await client.get(f"/api/v1/bookings/{booking_id}/history")

        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert history.status_code == 200
        assert [entry["action"] for entry in history.json()["history"]] == ["created"]


@pytest.mark.asyncio
class TestVerificationEndpoints:

    async def test_verify_twice(self, client, act_as, activity_session, customer, manager):
        act_as(customer)
        qr_payload = (await create_booking(client, activity_session.id))["qr_payload"]

        act_as(manager)
        first = await client.post("/api/v1/verification/verify", json={"qr_code": qr_payload})
        second = await client.post("/api/v1/verification/verify", json={"qr_code": qr_payload})

        assert first.status_code == second.status_code == 200
        assert first.json()["outcome"] == "verified"
        assert second.json()["outcome"] == "already_verified"
        assert second.json()["verified_at"] == first.json()["verified_at"]
        assert second.json()["verified_by"] == manager.id
        assert second.json()["message"].startswith("Already checked in at ")
        assert second.json()["message"].endswith(f"by {manager.id}")

    async def test_unknown_code_is_404(self, client, act_as, manager):
        act_as(manager)

        response = await client.post("/api/v1/verification/verify", json={"qr_code": "QR-0-nothing"})

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "TOKEN_NOT_FOUND"
        assert response.json()["error"]["message"] == "Invalid QR code"

    async def test_customers_cannot_verify(self, client, act_as, customer):
        act_as(customer)

        response = await client.post("/api/v1/verification/verify", json={"qr_code": "QR-0-nothing"})

        assert response.status_code == 403


@pytest.mark.asyncio
class TestSessionEndpoints:

    async def test_availability_is_public(self, client, activity_session, branch):
        response = await client.get(
            "/api/v1/sessions/availability",
            params={"branch_id": str(branch.id), "date_from": "2026-10-20", "date_to": "2026-10-22"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["stale"] is False
        assert [s["id"] for s in body["sessions"]] == [str(activity_session.id)]

    async def test_availability_without_dates(self, client, activity_session, branch):
        response = await client.get(
            "/api/v1/sessions/availability",
            params={"branch_id": str(branch.id), "activity": "slime"}
        )

        assert response.status_code == 200
        body = response.json()
        assert [s["id"] for s in body["sessions"]] == [str(activity_session.id)]
        assert body["sessions"][0]["available_seats"] == 15
        assert body["sessions"][0]["is_sold_out"] is False

    async def test_availability_rejects_reversed_range(self, client, branch):
        response = await client.get(
            "/api/v1/sessions/availability",
            params={"branch_id": str(branch.id), "date_from": "2026-10-22", "date_to": "2026-10-20"}
        )

        assert response.status_code == 422

    async def test_capacity_below_booked_is_422(self, client, act_as, make_session, manager):
        act_as(manager)
        activity_session = await make_session(total_seats=10, booked_seats=5)

        response = await client.put(
            f"/api/v1/sessions/{activity_session.id}/capacity", json={"total_seats": 2}
        )

        assert response.status_code == 422
        assert response.json()["error"]["error_code"] == "INVALID_CAPACITY"

    async def test_generate_and_delete(self, client, act_as, branch, admin):
        act_as(admin)

        generated = await client.post(
            "/api/v1/sessions/generate",
            json={"branch_id": str(branch.id), "activity": "tufting", "dates": ["2026-10-20", "2026-10-26"]}
        )

        assert generated.status_code == 200
        assert generated.json()["created"] == 3
        assert generated.json()["skipped_closed"] == ["2026-10-26"]

        listing = await client.get(
            "/api/v1/sessions/availability",
            params={"branch_id": str(branch.id), "date_from": "2026-10-20", "date_to": "2026-10-20"}
        )
        session_id = listing.json()["sessions"][0]["id"]

        deleted = await client.delete(f"/api/v1/sessions/{session_id}")
        missing = await client.get(f"/api/v1/sessions/{session_id}")

        assert deleted.status_code == 204
        assert missing.status_code == 404
        assert missing.json()["error"]["error_code"] == "SESSION_NOT_FOUND"

    async def test_delete_with_bookings_is_409(self, client, act_as, activity_session, customer, admin):
        act_as(customer)
        await create_booking(client, activity_session.id)

        act_as(admin)
        response = await client.delete(f"/api/v1/sessions/{activity_session.id}")

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "SESSION_HAS_BOOKINGS"

    async def test_customers_cannot_manage_sessions(self, client, act_as, activity_session, customer):
        act_as(customer)

        response = await client.patch(f"/api/v1/sessions/{activity_session.id}", json={"label": "Mine"})

        assert response.status_code == 403


@pytest.mark.asyncio
class TestAdminAndHealth:

    async def test_reconciliation_requires_admin(self, client, act_as, manager, admin):
        act_as(manager)
        assert (await client.get("/api/v1/admin/reconciliation")).status_code == 403

        act_as(admin)
        response = await client.get("/api/v1/admin/reconciliation")
        assert response.status_code == 200
        assert response.json()["drift"] == []

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    async def test_error_envelope_is_documented(self, client):
        response = await client.get("/openapi.json")

        schema = response.json()
        assert "ErrorResponse" in schema["components"]["schemas"]
        cancel = schema["paths"]["/api/v1/bookings/{booking_id}/cancel"]["post"]
        assert cancel["responses"]["409"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
