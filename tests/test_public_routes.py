"""Tests for the public catalog, discount, booking token and subscribe endpoints."""

from unittest.mock import AsyncMock

import stripe
from fastapi.testclient import TestClient

from aura_studio.main import app
from aura_studio.models import Booking, Customer, DiscountCode
from aura_studio.routes.subscribe import get_brevo_service
from aura_studio.services.brevo_service import BrevoError, BrevoService
from tests.conftest import make_intent, make_service


class TestServices:
    def test_lists_enabled_services_without_add_ons(self, client: TestClient, db_session):
        make_service(db_session, slug="b", name="B", display_order=2)
        make_service(db_session, slug="a", name="A", display_order=1)
        make_service(db_session, slug="addon", name="Add On", category="Add-on")
        make_service(db_session, slug="off", name="Off", enabled=False)

        response = client.get("/api/services")

        assert response.status_code == 200
        assert [s["slug"] for s in response.json()] == ["a", "b"]

    def test_category_filter(self, client, db_session):
        make_service(db_session, slug="facial", category="Facials")
        make_service(db_session, slug="wax", category="Waxing")

        response = client.get("/api/services", params={"category": "Waxing"})
        assert [s["slug"] for s in response.json()] == ["wax"]

    def test_unknown_slug(self, client):
        response = client.get("/api/services/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Service not found"}


class TestValidateDiscount:
    def test_valid_percent_code(self, client, db_session, stripe_mock):
        db_session.add(DiscountCode(code="GLOW10", stripe_coupon_id="coupon_glow", is_active=True))
        db_session.commit()
        stripe_mock.retrieve_coupon.return_value = {
            "id": "coupon_glow",
            "name": "Glow",
            "valid": True,
            "percent_off": 10,
            "amount_off": None,
            "metadata": {},
        }

        response = client.post(
            "/api/payments/validate-discount",
            json={"code": "glow10", "amount": 150, "customerEmail": "jane@example.com"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["code"] == "GLOW10"
        assert body["discountAmount"] == 15.0
        assert body["finalAmount"] == 135.0

    def test_welcome_code_is_capped(self, client, db_session, stripe_mock):
        db_session.add(DiscountCode(code="WELCOME15", stripe_coupon_id="coupon_welcome", is_active=True))
        db_session.commit()
        stripe_mock.retrieve_coupon.return_value = {"id": "coupon_welcome", "valid": True, "percent_off": 15}

        response = client.post("/api/payments/validate-discount", json={"code": "WELCOME15", "amount": 400})

        assert response.json()["discountAmount"] == 30.0

    def test_welcome_code_used_once_per_customer(self, client, db_session, stripe_mock):
        db_session.add(DiscountCode(code="WELCOME15", stripe_coupon_id="coupon_welcome", is_active=True))
        db_session.add(Customer(email="jane@example.com", used_welcome_offer=True))
        db_session.commit()

        response = client.post(
            "/api/payments/validate-discount",
            json={"code": "WELCOME15", "amount": 100, "customerEmail": "jane@example.com"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "This welcome offer has already been used", "valid": False}
        stripe_mock.retrieve_coupon.assert_not_called()

    def test_inactive_code_is_invalid(self, client, db_session, stripe_mock):
        db_session.add(DiscountCode(code="OLD", stripe_coupon_id="coupon_old", is_active=None))
        db_session.commit()

        response = client.post("/api/payments/validate-discount", json={"code": "OLD", "amount": 100})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid discount code"

    def test_amount_required(self, client):
        response = client.post("/api/payments/validate-discount", json={"code": "GLOW10"})
        assert response.status_code == 400
        assert response.json() == {"error": "Valid amount is required"}

    def test_stripe_failure(self, client, db_session, stripe_mock):
        db_session.add(DiscountCode(code="GLOW10", stripe_coupon_id="coupon_glow", is_active=True))
        db_session.commit()
        stripe_mock.retrieve_coupon.side_effect = stripe.APIConnectionError("down")

        response = client.post("/api/payments/validate-discount", json={"code": "GLOW10", "amount": 100})

        assert response.status_code == 500
        assert response.json()["error"] == "Error validating discount code"


class TestCreateIntent:
    def test_prices_service_server_side_for_deposit(self, client, db_session, stripe_mock):
        make_service(db_session, price="$150")
        stripe_mock.create_payment_intent.return_value = make_intent(status="requires_payment_method")

        response = client.post(
            "/api/payments/create-intent",
            json={"serviceId": "signature-facial", "paymentType": "deposit", "customerEmail": "jane@example.com"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["amount"] == 75.0
        assert body["balanceDue"] == 75.0
        assert body["clientSecret"] == "pi_123_secret_abc"
        amount, metadata = stripe_mock.create_payment_intent.await_args.args[:2]
        assert amount == 75.0
        assert metadata["paymentType"] == "deposit"

    def test_unknown_service(self, client):
        response = client.post("/api/payments/create-intent", json={"serviceId": "ghost"})
        assert response.status_code == 404


class TestBookingTokens:
    slot = {"startTime": "2026-01-02T15:00:00Z", "eventTypeId": 4242, "timezone": "America/New_York"}

    def test_token_round_trip(self, client, db_session, stripe_mock):
        stripe_mock.retrieve_payment_intent.return_value = make_intent()

        created = client.post("/api/bookings/create-token", json={"paymentIntentId": "pi_123", "selectedSlot": self.slot})
        assert created.status_code == 200
        token = created.json()["token"]

        booking = db_session.query(Booking).filter_by(payment_intent_id="pi_123").one()
        assert booking.payment_status == "paid"
        assert booking.booking_metadata["bookingToken"] == token

        verified = client.get("/api/bookings/verify-token", params={"token": token})
        assert verified.status_code == 200
        body = verified.json()
        assert body["valid"] is True
        assert body["expired"] is False
        assert body["isBooked"] is False
        assert body["booking"]["selectedSlot"]["startTime"] == self.slot["startTime"]

    def test_unpaid_intent_rejected(self, client, stripe_mock):
        stripe_mock.retrieve_payment_intent.return_value = make_intent(status="requires_payment_method")

        response = client.post("/api/bookings/create-token", json={"paymentIntentId": "pi_123", "selectedSlot": self.slot})

        assert response.status_code == 400
        assert response.json()["error"] == "Payment not completed. Please complete payment first."

    def test_slot_required(self, client):
        response = client.post("/api/bookings/create-token", json={"paymentIntentId": "pi_123"})
        assert response.status_code == 400
        assert response.json()["error"] == "Selected availability slot is required"

    def test_unknown_token(self, client):
        response = client.get("/api/bookings/verify-token", params={"token": "garbage"})
        assert response.status_code == 404
        assert response.json() == {"error": "Invalid booking token", "valid": False}


class TestBookingRecords:
    payload = {
        "serviceId": "signature-facial",
        "serviceName": "Signature Facial",
        "clientEmail": "Jane@Example.com",
        "amount": 150,
        "hapioBookingId": "hb_1",
    }

    def test_create_and_duplicate(self, client):
        first = client.post("/api/bookings/create", json=self.payload)
        assert first.status_code == 200
        assert first.json()["booking"]["clientEmail"] == "jane@example.com"

        second = client.post("/api/bookings/create", json=self.payload)
        assert second.status_code == 409

    def test_missing_fields(self, client):
        response = client.post("/api/bookings/create", json={"serviceId": "x"})
        assert response.status_code == 400

    def test_cancel(self, client, db_session):
        created = client.post("/api/bookings/create", json={**self.payload, "hapioBookingId": None})
        booking_id = created.json()["booking"]["id"]

        response = client.post(f"/api/bookings/{booking_id}/cancel", json={"reason": "Schedule conflict"})

        assert response.status_code == 200
        assert response.json()["paymentStatus"] == "cancelled"
        assert response.json()["providerReleased"] is False

        again = client.post(f"/api/bookings/{booking_id}/cancel")
        assert again.status_code == 400


class TestSubscribe:
    valid = {
        "firstName": " Jane ",
        "lastName": "Doe",
        "email": "JANE@example.com",
        "phone": "(555) 123-4567",
        "signupSource": "welcome-offer",
    }

    def test_subscribes_with_attributes(self, client):
        brevo = AsyncMock()
        brevo.upsert_contact.return_value = {"message": "Successfully subscribed"}
        app.dependency_overrides[get_brevo_service] = lambda: brevo

        response = client.post("/api/subscribe", json=self.valid)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Successfully subscribed"}
        email, attributes = brevo.upsert_contact.await_args.args
        assert email == "jane@example.com"
        assert attributes["FIRSTNAME"] == "Jane"
        assert attributes["SMS"] == "+15551234567"
        assert attributes["WELCOME_CODE"].startswith("welcome15")

    def test_field_validation_message(self, client):
        response = client.post("/api/subscribe", json={**self.valid, "email": "nope"})
        assert response.status_code == 422
        assert response.json()["error"] == "Enter a valid email"

    def test_provider_error(self, client):
        brevo = AsyncMock()
        brevo.upsert_contact.side_effect = BrevoError("Key not found", status_code=401)
        app.dependency_overrides[get_brevo_service] = lambda: brevo

        response = client.post("/api/subscribe", json=self.valid)

        assert response.status_code == 401
        assert response.json()["error"] == "Key not found"

    def test_non_numeric_list_id_is_configuration_error(self, client):
        brevo = BrevoService(api_key="brevo_test", list_id="newsletter")
        app.dependency_overrides[get_brevo_service] = lambda: brevo

        response = client.post("/api/subscribe", json=self.valid)

        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error"


class TestSecurityHeaders:
    def test_api_responses_carry_headers(self, client):
        response = client.get("/api/services")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")
        assert "no-store" in response.headers["Cache-Control"]
        assert "Strict-Transport-Security" not in response.headers

    def test_health_is_excluded(self, client):
        response = client.get("/health")
        assert response.json() == {"status": "healthy"}
        assert "X-Frame-Options" not in response.headers
