from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, stay
from hotel_booking.api.deps import get_coupon_service, get_reservation_service, get_store
from hotel_booking.core.security import create_access_token
from hotel_booking.db.session import build_engine, make_session_factory
from hotel_booking.db.store import SqlAlchemyStore
from hotel_booking.main import app
from hotel_booking.services.booking_service import ReservationService


def auth(user_id="guest-1", role="customer"):
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}


@pytest.fixture
def client(store, reservations, coupons):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_reservation_service] = lambda: reservations
    app.dependency_overrides[get_coupon_service] = lambda: coupons
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def admin():
    return auth("ops-1", role="admin")


def create_coupon(client, code="SAVE20", **extra):
    body = {
        "code": code,
        "discountPercentage": "20",
        "maxDiscountAmount": "50",
        "expiryDate": (NOW + timedelta(days=30)).isoformat(),
        **extra,
    }
    return client.post("/api/v1/admin/coupons", json=body, headers=admin())


def booking_body(room, start_day=10, nights=2, **extra):
    check_in, check_out = stay(start_day, nights)
    return {"roomId": room.id, "checkIn": check_in.isoformat(), "checkOut": check_out.isoformat(), **extra}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    def test_missing_token(self, client, room):
        assert client.post("/api/v1/bookings", json=booking_body(room)).status_code == 401

    def test_garbage_token(self, client, room):
        r = client.post("/api/v1/bookings", json=booking_body(room), headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401

    def test_expired_token(self, client, room):
        token = create_access_token("guest-1", expires_minutes=-1)
        r = client.post("/api/v1/bookings", json=booking_body(room), headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401

    def test_admin_routes_need_admin_role(self, client):
        assert client.get("/api/v1/admin/coupons", headers=auth()).status_code == 403
        assert client.get("/api/v1/admin/coupons", headers=auth("ops-1", role="admin")).status_code == 200


class TestBookings:
    def test_create_then_conflict(self, client, room):
        r = client.post("/api/v1/bookings", json=booking_body(room, specialRequests="late check-in"), headers=auth())
        assert r.status_code == 201
        body = r.json()
        assert body["status"] == "PENDING"
        assert body["userId"] == "guest-1"
        assert Decimal(body["totalAmount"]) == Decimal("200.00")

        r = client.post("/api/v1/bookings", json=booking_body(room, start_day=11), headers=auth("guest-2"))
        assert r.status_code == 409
        assert r.json()["detail"]["error"] == "RoomConflict"

    def test_invalid_range_is_400(self, client, room):
        check_in, _ = stay(10)
        body = {"roomId": room.id, "checkIn": check_in.isoformat(), "checkOut": check_in.isoformat()}
        r = client.post("/api/v1/bookings", json=body, headers=auth())
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidRange"

    def test_unknown_room_is_404(self, client):
        check_in, check_out = stay(10)
        body = {"roomId": "missing", "checkIn": check_in.isoformat(), "checkOut": check_out.isoformat()}
        assert client.post("/api/v1/bookings", json=body, headers=auth()).status_code == 404

    def test_availability(self, client, room):
        client.post("/api/v1/bookings", json=booking_body(room), headers=auth())
        check_in, check_out = stay(11)

        r = client.get(
            f"/api/v1/rooms/{room.id}/availability",
            params={"checkIn": check_in.isoformat(), "checkOut": check_out.isoformat()},
            headers=auth("guest-2"),
        )

        assert r.status_code == 200
        assert r.json()["available"] is False

    def test_owner_sees_and_cancels_booking(self, client, room):
        booking_id = client.post("/api/v1/bookings", json=booking_body(room), headers=auth()).json()["id"]

        assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth()).status_code == 200
        assert [b["id"] for b in client.get("/api/v1/bookings/me", headers=auth()).json()] == [booking_id]

        r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth())
        assert r.status_code == 200
        assert r.json()["status"] == "CANCELLED"
        # Repeating the cancel is harmless.
        assert client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth()).status_code == 200

    def test_other_guests_cannot_see_or_cancel(self, client, room):
        booking_id = client.post("/api/v1/bookings", json=booking_body(room), headers=auth()).json()["id"]

        assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth("guest-2")).status_code == 404
        assert client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth("guest-2")).status_code == 404
        assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth("ops-1", role="admin")).status_code == 200

    def test_admin_status_changes(self, client, room):
        booking_id = client.post("/api/v1/bookings", json=booking_body(room), headers=auth()).json()["id"]
        admin = auth("ops-1", role="admin")

        assert client.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "PENDING"}, headers=auth()).status_code == 403

        r = client.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "CONFIRMED"}, headers=admin)
        assert r.status_code == 200
        assert r.json()["status"] == "CONFIRMED"

        r = client.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "PENDING"}, headers=admin)
        assert r.status_code == 409
        assert r.json()["detail"]["error"] == "InvalidTransition"

        r = client.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "LOST"}, headers=admin)
        assert r.status_code == 400


class TestCoupons:

    def test_admin_creates_and_lists(self, client):
        r = create_coupon(client, code="save20")
        assert r.status_code == 201
        assert r.json()["code"] == "SAVE20"

        assert create_coupon(client, code="SAVE20").status_code == 409

        listed = client.get("/api/v1/admin/coupons", params={"state": "active"}, headers=auth("ops-1", role="admin"))
        assert [c["code"] for c in listed.json()] == ["SAVE20"]

    def test_validate_reports_reason_without_failing(self, client):
        r = client.post("/api/v1/coupons/validate", json={"code": "NOPE"}, headers=auth())
        assert r.status_code == 200
        assert r.json() == {
            "code": "NOPE", "valid": False, "reason": "NotFound",
            "discountPercentage": None, "maxDiscountAmount": None,
        }

    def test_validate_restricted_user(self, client):
        create_coupon(client, restrictedUserIds=["guest-1"])
        r = client.post("/api/v1/coupons/validate", json={"code": "save20"}, headers=auth())
        assert r.json()["valid"] is False
        assert r.json()["reason"] == "UserRestricted"

    def test_redeem_flow(self, client, make_room):
        create_coupon(client)
        room = make_room(price="100.00")
        booking_id = client.post("/api/v1/bookings", json=booking_body(room, nights=10), headers=auth()).json()["id"]

        r = client.post("/api/v1/coupons/redeem", json={"code": "SAVE20", "bookingId": booking_id}, headers=auth())
        assert r.status_code == 200
        assert Decimal(r.json()["totalAmount"]) == Decimal("950.00")

        r = client.post("/api/v1/coupons/redeem", json={"code": "SAVE20", "bookingId": booking_id}, headers=auth())
        assert r.status_code == 422
        assert r.json()["detail"] == {"error": "InvalidCoupon", "reason": "AlreadyUsed", "message": "coupon has already been used"}

    def test_redeem_on_missing_booking_is_404(self, client):
        create_coupon(client)
        r = client.post("/api/v1/coupons/redeem", json={"code": "SAVE20", "bookingId": "missing"}, headers=auth())
        assert r.status_code == 404
        assert r.json()["detail"]["error"] == "BookingNotFound"

    def test_deactivate(self, client):
        coupon_id = create_coupon(client).json()["id"]
        r = client.post(f"/api/v1/admin/coupons/{coupon_id}/deactivate", headers=auth("ops-1", role="admin"))
        assert r.status_code == 200
        assert r.json()["isActive"] is False


class TestFailureMapping:
    def test_unreachable_store_is_503(self, client, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'missing' / 'bookings.db'}", lock_timeout=0.1)
        app.dependency_overrides[get_reservation_service] = lambda: ReservationService(SqlAlchemyStore(make_session_factory(engine)))

        r = client.post("/api/v1/bookings", json={"roomId": "any", "checkIn": stay(10)[0].isoformat(),
                                                  "checkOut": stay(10)[1].isoformat()}, headers=auth())

        assert r.status_code == 503
        assert r.json()["detail"]["error"] == "StoreUnavailable"
        engine.dispose()

    def test_redeem_on_cancelled_booking_is_409(self, client, room):
        create_coupon(client)
        booking_id = client.post("/api/v1/bookings", json=booking_body(room), headers=auth()).json()["id"]
        client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth())

        r = client.post("/api/v1/coupons/redeem", json={"code": "SAVE20", "bookingId": booking_id}, headers=auth())

        assert r.status_code == 409
        assert r.json()["detail"]["error"] == "InvalidTransition"


class TestAdminListings:
    def test_paged_bookings(self, client, room):
        for day in (10, 20, 30):
            client.post("/api/v1/bookings", json=booking_body(room, start_day=day), headers=auth())

        r = client.get("/api/v1/admin/bookings", params={"page": 1, "pageSize": 2}, headers=admin())

        assert r.status_code == 200
        body = r.json()
        assert len(body["items"]) == 1
        assert (body["totalCount"], body["totalPages"], body["hasNextPage"], body["hasPreviousPage"]) == (3, 2, False, True)

    def test_paged_bookings_rejects_bad_paging(self, client):
        r = client.get("/api/v1/admin/bookings", params={"page": -1}, headers=admin())
        assert r.status_code == 400

    def test_paged_bookings_is_admin_only(self, client):
        assert client.get("/api/v1/admin/bookings", headers=auth()).status_code == 403

    def test_get_and_delete_coupon(self, client):
        coupon_id = create_coupon(client).json()["id"]

        assert client.get(f"/api/v1/admin/coupons/{coupon_id}", headers=admin()).json()["code"] == "SAVE20"
        assert client.delete(f"/api/v1/admin/coupons/{coupon_id}", headers=admin()).status_code == 204
        assert client.get(f"/api/v1/admin/coupons/{coupon_id}", headers=admin()).status_code == 404
        assert client.delete(f"/api/v1/admin/coupons/{coupon_id}", headers=admin()).status_code == 404

    def test_list_all_coupons(self, client):
        create_coupon(client, code="ONE")
        create_coupon(client, code="TWO")
        r = client.get("/api/v1/admin/coupons", params={"state": "all"}, headers=admin())
        assert sorted(c["code"] for c in r.json()) == ["ONE", "TWO"]
