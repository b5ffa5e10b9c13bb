"""Subscription listing endpoint tests"""
import uuid
from datetime import datetime

from app.models.subscription import Subscription, SubscriptionStatus


def _add_subscription(db, user, product, polar_id, created_at, status=SubscriptionStatus.ACTIVE):
    subscription = Subscription(
        user_id=user.id,
        product_id=product.id,
        polar_subscription_id=polar_id,
        status=status,
        created_at=created_at,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def test_list_subscriptions_newest_first_with_product(client, db, user, other_user, product, auth_headers):
    _add_subscription(db, user, product, "sub_old", datetime(2026, 1, 1), SubscriptionStatus.CANCELED)
    _add_subscription(db, user, product, "sub_new", datetime(2026, 6, 1))
    _add_subscription(db, other_user, product, "sub_other", datetime(2026, 7, 1))

    response = client.get("/subscriptions", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert [s["polar_subscription_id"] for s in body] == ["sub_new", "sub_old"]
    assert body[0]["status"] == "active"
    assert body[0]["product"]["name"] == "Pro"
    assert body[0]["product"]["price_amount"] == 2999


def test_get_own_subscription(client, db, user, product, auth_headers):
    subscription = _add_subscription(db, user, product, "sub_1", datetime(2026, 6, 1))
    response = client.get(f"/subscriptions/{subscription.id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == str(subscription.id)


def test_other_users_subscription_is_not_found(client, db, other_user, product, auth_headers):
    """Another user's subscription answers 404, same as a missing one"""
    subscription = _add_subscription(db, other_user, product, "sub_other", datetime(2026, 6, 1))

    response = client.get(f"/subscriptions/{subscription.id}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Subscription not found"}

    response = client.get(f"/subscriptions/{uuid.uuid4()}", headers=auth_headers)
    assert response.status_code == 404


def test_malformed_subscription_id(client, user, auth_headers):
    response = client.get("/subscriptions/not-a-uuid", headers=auth_headers)
    assert response.status_code == 400
