"""Tests for the admin service catalog and discount code management."""

import stripe

from aura_studio.models import DiscountCode, Service
from aura_studio.services.hapio_service import HapioError
from tests.conftest import make_service

NEW_SERVICE = {
    "slug": "Hydra-Facial",
    "name": "Hydra Facial",
    "duration_minutes": 75,
    "price": "$180",
    "category": "Facials",
}


class TestServiceCatalog:
    def test_requires_admin(self, client):
        response = client.get("/api/admin/services")
        assert response.status_code == 401
        assert client.post("/api/admin/services", json=NEW_SERVICE).status_code == 401

    def test_list_includes_disabled_services_in_display_order(self, admin_client, db_session):
        make_service(db_session, slug="third", display_order=3)
        make_service(db_session, slug="first", display_order=1, enabled=False)
        make_service(db_session, slug="second", display_order=2)

        response = admin_client.get("/api/admin/services", params={"per_page": 2})

        body = response.json()
        assert [s["slug"] for s in body["data"]] == ["first", "second"]
        assert body["meta"] == {"current_page": 1, "per_page": 2, "total": 3, "last_page": 2}

        page_two = admin_client.get("/api/admin/services", params={"page": 2, "per_page": 2}).json()
        assert [s["slug"] for s in page_two["data"]] == ["third"]

    def test_create_service(self, admin_client, db_session):
        response = admin_client.post("/api/admin/services", json={**NEW_SERVICE, "buffer_after_minutes": 15})

        assert response.status_code == 201
        body = response.json()
        assert body["slug"] == "hydra-facial"
        assert body["buffer_before_minutes"] == 0
        assert body["buffer_after_minutes"] == 15
        assert body["hapio_service_id"] is None
        assert admin_client.get("/api/services/hydra-facial").status_code == 200

    def test_create_requires_price(self, admin_client):
        payload = {k: v for k, v in NEW_SERVICE.items() if k != "price"}
        response = admin_client.post("/api/admin/services", json=payload)

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "price"

    def test_duplicate_slug_conflicts(self, admin_client, db_session):
        make_service(db_session, slug="hydra-facial")

        response = admin_client.post("/api/admin/services", json=NEW_SERVICE)

        assert response.status_code == 409
        assert response.json() == {"error": "Service with this slug already exists"}

    def test_patch_applies_only_sent_fields(self, admin_client, db_session):
        service = make_service(db_session)

        response = admin_client.patch(f"/api/admin/services/{service.id}", json={"price": "$175"})

        assert response.status_code == 200
        assert response.json()["price"] == "$175"
        assert response.json()["name"] == "Signature Facial"
        assert response.json()["duration_minutes"] == 60

    def test_patch_to_taken_slug_conflicts(self, admin_client, db_session):
        make_service(db_session, slug="taken")
        service = make_service(db_session, slug="mine")

        response = admin_client.patch(f"/api/admin/services/{service.id}", json={"slug": "taken"})
        assert response.status_code == 409

        own = admin_client.patch(f"/api/admin/services/{service.id}", json={"slug": "mine"})
        assert own.status_code == 200

    def test_patch_cannot_clear_required_field(self, admin_client, db_session):
        service = make_service(db_session)

        response = admin_client.patch(f"/api/admin/services/{service.id}", json={"name": None})

        assert response.status_code == 400
        assert response.json()["error"] == "name cannot be empty"

    def test_missing_service(self, admin_client):
        for method in ("get", "patch", "delete"):
            kwargs = {"json": {"price": "$1"}} if method == "patch" else {}
            response = getattr(admin_client, method)("/api/admin/services/999", **kwargs)
            assert response.status_code == 404
            assert response.json() == {"error": "Service not found"}

    def test_delete_service(self, admin_client, db_session):
        service = make_service(db_session)

        response = admin_client.delete(f"/api/admin/services/{service.id}")

        assert response.json() == {"success": True}
        assert db_session.query(Service).count() == 0

    def test_reorder_skips_unknown_ids(self, admin_client, db_session):
        first = make_service(db_session, slug="a", display_order=1)
        second = make_service(db_session, slug="b", display_order=2)

        response = admin_client.post(
            "/api/admin/services/reorder",
            json={
                "services": [
                    {"id": first.id, "display_order": 2},
                    {"id": second.id, "display_order": 1},
                    {"id": 999, "display_order": 0},
                ]
            },
        )

        assert response.json() == {"success": True, "updated": 2}
        db_session.expire_all()
        assert db_session.get(Service, first.id).display_order == 2
        assert db_session.get(Service, second.id).display_order == 1


class TestServiceSync:
    def test_first_sync_creates_and_stores_id(self, admin_client, db_session, hapio):
        service = make_service(db_session, buffer_after_minutes=15)
        hapio.create_service.return_value = {"id": "hs_1", "name": "Signature Facial"}

        response = admin_client.post(f"/api/admin/services/{service.id}/sync")

        assert response.status_code == 200
        assert response.json()["hapio_service_id"] == "hs_1"
        assert response.json()["message"] == "Service created in Hapio and synced successfully"
        hapio.create_service.assert_awaited_once_with(
            {
                "name": "Signature Facial",
                "type": "service",
                "duration": "PT60M",
                "buffer_time_after": "PT15M",
                "enabled": True,
                "metadata": {
                    "slug": "signature-facial",
                    "category": "Facials",
                    "duration_display": None,
                    "price": 150.0,
                },
            }
        )
        db_session.expire_all()
        assert db_session.get(Service, service.id).hapio_service_id == "hs_1"

    def test_linked_service_is_updated(self, admin_client, db_session, hapio):
        service = make_service(db_session, hapio_service_id="hs_9")
        hapio.update_service.return_value = {"id": "hs_9"}

        response = admin_client.post(f"/api/admin/services/{service.id}/sync")

        assert response.json()["message"] == "Service synced to Hapio successfully"
        assert hapio.update_service.await_args.args[0] == "hs_9"
        assert hapio.update_service.await_args.args[1]["duration"] == "PT60M"
        hapio.create_service.assert_not_awaited()

    def test_provider_failure(self, admin_client, db_session, hapio):
        service = make_service(db_session)
        hapio.create_service.side_effect = HapioError("Hapio unreachable", status_code=502)

        response = admin_client.post(f"/api/admin/services/{service.id}/sync")

        assert response.status_code == 502
        assert response.json() == {"error": "Failed to sync service to Hapio", "details": "Hapio unreachable"}
        db_session.expire_all()
        assert db_session.get(Service, service.id).hapio_service_id is None


class TestDiscountCodes:
    def test_requires_admin(self, client):
        assert client.get("/api/admin/discount-codes").status_code == 401

    def test_list_groups_by_active_flag(self, admin_client, db_session):
        db_session.add_all(
            [
                DiscountCode(code="GLOW10", stripe_coupon_id="c1", is_active=True),
                DiscountCode(code="OLD", stripe_coupon_id="c2", is_active=False),
                DiscountCode(code="LEGACY", stripe_coupon_id="c3", is_active=None),
            ]
        )
        db_session.commit()

        body = admin_client.get("/api/admin/discount-codes").json()

        assert [c["code"] for c in body["active"]] == ["GLOW10"]
        assert sorted(c["code"] for c in body["inactive"]) == ["LEGACY", "OLD"]

    def test_create_links_stripe_coupon(self, admin_client, db_session, stripe_mock):
        stripe_mock.retrieve_coupon.return_value = {"id": "coupon_glow", "valid": True}

        response = admin_client.post(
            "/api/admin/discount-codes", json={"code": " glow20 ", "stripeCouponId": "coupon_glow"}
        )

        assert response.status_code == 201
        assert response.json()["code"] == "GLOW20"
        assert response.json()["isActive"] is True
        stripe_mock.retrieve_coupon.assert_awaited_once_with("coupon_glow")
        stored = db_session.query(DiscountCode).filter_by(code="GLOW20").one()
        assert stored.stripe_coupon_id == "coupon_glow"

    def test_unknown_coupon_rejected(self, admin_client, db_session, stripe_mock):
        stripe_mock.retrieve_coupon.side_effect = stripe.InvalidRequestError("No such coupon: 'nope'", "id")

        response = admin_client.post("/api/admin/discount-codes", json={"code": "GLOW20", "stripeCouponId": "nope"})

        assert response.status_code == 400
        assert response.json() == {"error": "Stripe coupon not found"}
        assert db_session.query(DiscountCode).count() == 0

    def test_duplicate_code_conflicts(self, admin_client, db_session, stripe_mock):
        db_session.add(DiscountCode(code="GLOW20", stripe_coupon_id="c1", is_active=True))
        db_session.commit()

        response = admin_client.post("/api/admin/discount-codes", json={"code": "glow20", "stripeCouponId": "c2"})

        assert response.status_code == 409
        stripe_mock.retrieve_coupon.assert_not_awaited()

    def test_generate_code(self, admin_client, db_session, stripe_mock):
        stripe_mock.retrieve_coupon.return_value = {"id": "coupon_vip", "valid": True}

        response = admin_client.post(
            "/api/admin/discount-codes/generate", json={"stripeCouponId": "coupon_vip", "prefix": "vip"}
        )

        assert response.status_code == 201
        code = response.json()["code"]
        assert code.startswith("VIP")
        assert len(code) == len("VIP") + 8
        assert code[3:].isalnum() and code[3:].isupper()
        assert db_session.query(DiscountCode).filter_by(code=code).one().stripe_coupon_id == "coupon_vip"

    def test_update_active_flag(self, admin_client, db_session, stripe_mock):
        discount_code = DiscountCode(code="GLOW10", stripe_coupon_id="c1", is_active=True)
        db_session.add(discount_code)
        db_session.commit()

        response = admin_client.patch(f"/api/admin/discount-codes/{discount_code.id}", json={"isActive": False})

        assert response.json()["isActive"] is False
        stripe_mock.retrieve_coupon.assert_not_awaited()
        body = admin_client.get("/api/admin/discount-codes").json()
        assert [c["code"] for c in body["inactive"]] == ["GLOW10"]

    def test_update_missing_code(self, admin_client):
        response = admin_client.patch("/api/admin/discount-codes/999", json={"isActive": False})
        assert response.status_code == 404
        assert response.json() == {"error": "Discount code not found"}
