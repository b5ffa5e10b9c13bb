"""Billing action tests"""
import json
import uuid
from datetime import datetime

from app.models.subscription import Subscription, SubscriptionStatus


def _subscription(db, user, product, status=SubscriptionStatus.ACTIVE, polar_id="sub_1", created_at=None):
    subscription = Subscription(
        user_id=user.id,
        product_id=product.id,
        polar_subscription_id=polar_id,
        status=status,
        current_period_end=datetime(2026, 11, 1),
        created_at=created_at or datetime(2026, 10, 1),
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def test_create_checkout(client, user, product, auth_headers, polar_api):
    response = client.post(
        "/billing/checkout",
        json={"product_id": str(product.id), "price_id": "price_pro_monthly"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"url": "https://checkout.polar.test/co_test"},
        "error": None,
    }

    sent = json.loads(polar_api.requests[-1].content)
    assert sent["product_id"] == "prod_pro_monthly"
    assert sent["customer_email"] == "jane@example.com"
    assert sent["success_url"] == "http://localhost:3000/dashboard/billing?success=true"
    assert sent["metadata"] == {"user_id": str(user.id)}


def test_checkout_for_unknown_product(client, user, auth_headers, polar_api):
    response = client.post(
        "/billing/checkout",
        json={"product_id": str(uuid.uuid4()), "price_id": "price_1"},
        headers=auth_headers,
    )
    assert response.json() == {"success": False, "data": None, "error": "Product not found"}
    assert polar_api.requests == []


def test_checkout_rejects_malformed_product_id(client, user, auth_headers):
    response = client.post("/billing/checkout", json={"product_id": "abc", "price_id": "p"}, headers=auth_headers)
    assert response.status_code == 400


def test_checkout_provider_failure_is_generic(client, user, product, auth_headers, polar_api):
    polar_api.fail_with = 500
    response = client.post(
        "/billing/checkout",
        json={"product_id": str(product.id), "price_id": "price_1"},
        headers=auth_headers,
    )
    assert response.json()["success"] is False
    assert response.json()["error"] == "Failed to create checkout"


def test_checkout_with_unexpected_provider_status(client, user, product, auth_headers, polar_api):
    polar_api.checkout_overrides = {"status": "draft"}
    response = client.post(
        "/billing/checkout",
        json={"product_id": str(product.id), "price_id": "price_1"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"success": False, "data": None, "error": "Failed to create checkout"}


def test_cancel_subscription(client, db, user, product, auth_headers, polar_api):
    subscription = _subscription(db, user, product)
    response = client.post(f"/billing/subscriptions/{subscription.id}/cancel", headers=auth_headers)
    assert response.json() == {"success": True, "data": None, "error": None}
    assert polar_api.requests[-1].method == "DELETE"

    db.expire_all()
    assert db.get(Subscription, subscription.id).cancel_at_period_end is True


def test_cancel_other_users_subscription(client, db, other_user, product, auth_headers, polar_api):
    subscription = _subscription(db, other_user, product)
    response = client.post(f"/billing/subscriptions/{subscription.id}/cancel", headers=auth_headers)
    assert response.json()["error"] == "Subscription not found"
    assert polar_api.requests == []


def test_cancel_keeps_local_state_when_provider_fails(client, db, user, product, auth_headers, polar_api):
    subscription = _subscription(db, user, product)
    polar_api.fail_with = 502
    response = client.post(f"/billing/subscriptions/{subscription.id}/cancel", headers=auth_headers)
    assert response.json()["success"] is False

    db.expire_all()
    assert db.get(Subscription, subscription.id).cancel_at_period_end is False


def test_reactivate_subscription(client, db, user, product, auth_headers, polar_api):
    subscription = _subscription(db, user, product)
    subscription.cancel_at_period_end = True
    db.commit()

    response = client.post(f"/billing/subscriptions/{subscription.id}/reactivate", headers=auth_headers)
    assert response.json()["success"] is True

    request = polar_api.requests[-1]
    assert request.method == "PATCH"
    assert json.loads(request.content) == {"metadata": {"cancel_at_period_end": "false"}}

    db.expire_all()
    assert db.get(Subscription, subscription.id).cancel_at_period_end is False


def test_current_subscription(client, db, user, product, auth_headers):
    _subscription(db, user, product, status=SubscriptionStatus.CANCELED, polar_id="sub_old", created_at=datetime(2026, 1, 1))
    current = _subscription(db, user, product, status=SubscriptionStatus.TRIALING, polar_id="sub_new")

    response = client.get("/billing/subscription", headers=auth_headers)
    body = response.json()
    assert body["success"] is True
    assert body["data"]["id"] == str(current.id)
    assert body["data"]["status"] == "trialing"
    assert body["data"]["cancel_at_period_end"] is False


def test_current_subscription_when_none(client, user, auth_headers):
    response = client.get("/billing/subscription", headers=auth_headers)
    assert response.json() == {"success": True, "data": None, "error": None}


def test_billing_requires_authentication(client, db):
    response = client.post("/billing/sync")
    assert response.status_code == 401
