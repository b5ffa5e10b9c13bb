"""Shared fixtures: in-memory database, signed webhook deliveries, auth tokens and a fake Polar API"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["POLAR_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["POLAR_ACCESS_TOKEN"] = "polar_test_token"
os.environ["POLAR_ORGANIZATION_ID"] = "org_test"

import json
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.api.deps import get_polar_client
from app.db.session import Base, SessionLocal, engine, get_db
from app.main import app as fastapi_app
from app.models.product import Product, ProductInterval
from app.models.user import User
from app.services.polar_client import PolarClient
from app.services.polar_webhooks import compute_signature

WEBHOOK_SECRET = os.environ["POLAR_WEBHOOK_SECRET"]
JWT_SECRET = os.environ["AUTH_JWT_SECRET"]
POLAR_BASE_URL = "https://api.polar.test/v1"


class FakePolarAPI:
    """In-memory stand-in for the Polar REST API, served through httpx.MockTransport"""

    def __init__(self):
        self.subscriptions = []
        self.products = {}
        self.requests = []
        self.fail_with = None
        self.checkout_overrides = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"detail": "upstream failure"})

        path = request.url.path[len("/v1"):]
        parts = [p for p in path.split("/") if p]

        if request.method == "GET" and parts == ["subscriptions"]:
            email = request.url.params.get("customer_email")
            items = [s for s in self.subscriptions if s.get("customer_email") == email]
            return httpx.Response(200, json={"items": items, "pagination": {"total_count": len(items)}})

        if parts[:1] == ["products"] and len(parts) >= 2:
            product = self.products.get(parts[1])
            if product is None:
                return httpx.Response(404, json={"detail": "Not found"})
            if len(parts) == 3 and parts[2] == "prices":
                return httpx.Response(200, json={"items": product.get("prices", [])})
            return httpx.Response(200, json=product)

        if request.method == "POST" and parts == ["checkouts"]:
            body = json.loads(request.content)
            return httpx.Response(
                201,
                json={
                    "id": "co_test",
                    "url": "https://checkout.polar.test/co_test",
                    "customer_email": body.get("customer_email"),
                    "product_id": body.get("product_id"),
                    "price_id": body.get("price_id"),
                    "success_url": body.get("success_url"),
                    "metadata": body.get("metadata") or {},
                } | self.checkout_overrides,
            )

        if parts[:1] == ["subscriptions"] and len(parts) == 2:
            if request.method == "DELETE":
                return httpx.Response(200, json={"id": parts[1], "status": "active", "cancel_at_period_end": True})
            if request.method == "PATCH":
                return httpx.Response(200, json={"id": parts[1], "status": "active", "cancel_at_period_end": False})

        return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def polar_api():
    return FakePolarAPI()


@pytest.fixture
def polar_client(polar_api):
    client = PolarClient(
        access_token="polar_test_token",
        organization_id="org_test",
        base_url=POLAR_BASE_URL,
        transport=httpx.MockTransport(polar_api.handler),
    )
    yield client
    client.close()


@pytest.fixture
def client(db, polar_client):
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_polar_client] = lambda: polar_client
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


def make_token(user_id, email, full_name=None, expires_in=3600, audience="authenticated", secret=JWT_SECRET):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "email": email,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "user_metadata": {"full_name": full_name} if full_name else {},
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers_for(user_id, email, **kwargs):
    return {"Authorization": f"Bearer {make_token(user_id, email, **kwargs)}"}


@pytest.fixture
def user(db):
    user = User(id=uuid.uuid4(), email="jane@example.com", full_name="Jane Doe")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db):
    user = User(id=uuid.uuid4(), email="other@example.com", full_name="Other Person")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(user):
    return auth_headers_for(user.id, user.email)


@pytest.fixture
def product(db):
    product = Product(
        polar_product_id="prod_pro_monthly",
        name="Pro",
        description="Ideal for growing businesses and teams",
        price_amount=2999,
        interval=ProductInterval.MONTH,
        features=[{"name": "Advanced Analytics", "included": True}],
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def subscription_data(
    subscription_id="sub_1",
    status="active",
    product_id="prod_pro_monthly",
    email="jane@example.com",
    **overrides,
):
    data = {
        "id": subscription_id,
        "status": status,
        "customer_id": "cus_1",
        "customer_email": email,
        "product_id": product_id,
        "price_id": "price_pro_monthly",
        "current_period_start": "2026-10-01T00:00:00Z",
        "current_period_end": "2026-11-01T00:00:00Z",
        "cancel_at_period_end": False,
        "metadata": {},
    }
    data.update(overrides)
    return data


def webhook_event(event_id, event_type, data):
    return {"id": event_id, "type": event_type, "created_at": "2026-10-01T00:00:00Z", "data": data}


def post_webhook(client, payload, secret=WEBHOOK_SECRET, header="x-polar-signature"):
    body = json.dumps(payload).encode("utf-8")
    headers = {"content-type": "application/json", header: compute_signature(body, secret)}
    return client.post("/webhooks/polar", content=body, headers=headers)
