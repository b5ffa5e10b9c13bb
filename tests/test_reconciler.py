"""Subscription reconciler tests"""
import logging

from app.models.subscription import Subscription, SubscriptionStatus
from app.schemas.polar import PolarSubscription
from app.services.subscription_reconciler import (
    handle_subscription_canceled,
    resolve_user,
    upsert_subscription,
)
from conftest import subscription_data


def test_upsert_is_keyed_by_polar_subscription_id(db, user, product):
    upsert_subscription(db, user, product, PolarSubscription.model_validate(subscription_data()))
    db.commit()
    upsert_subscription(db, user, product, PolarSubscription.model_validate(subscription_data(status="past_due")))
    db.commit()

    db.expire_all()
    rows = db.query(Subscription).all()
    assert len(rows) == 1
    assert rows[0].status == SubscriptionStatus.PAST_DUE


def test_off_graph_provider_update_is_applied_with_warning(db, user, product, caplog):
    upsert_subscription(db, user, product, PolarSubscription.model_validate(subscription_data(status="canceled")))
    db.commit()

    with caplog.at_level(logging.WARNING, logger="app.services.subscription_reconciler"):
        subscription = upsert_subscription(
            db, user, product, PolarSubscription.model_validate(subscription_data(status="active"))
        )
    db.commit()

    assert subscription.status == SubscriptionStatus.ACTIVE
    assert "off-graph" in caplog.text


def test_resolve_user_ignores_malformed_metadata_user_id(db, user):
    polar_subscription = PolarSubscription.model_validate(subscription_data(metadata={"user_id": "not-a-uuid"}))
    assert resolve_user(db, polar_subscription).id == user.id


def test_resolve_user_without_email_or_metadata(db, user):
    polar_subscription = PolarSubscription.model_validate(subscription_data(email=None))
    assert resolve_user(db, polar_subscription) is None


def test_canceled_event_for_unseen_subscription_is_recorded(db, user, product):
    polar_subscription = PolarSubscription.model_validate(
        subscription_data(status="active", cancel_at_period_end=True)
    )
    subscription = handle_subscription_canceled(db, polar_subscription)
    db.commit()

    assert subscription.status == SubscriptionStatus.CANCELED
    assert subscription.cancel_at_period_end is False
    assert subscription.canceled_at is not None
