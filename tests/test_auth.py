"""Basic auth tests"""
import uuid

from conftest import auth_headers_for, make_token


def test_missing_token(client, user):
    response = client.get(f"/users/{user.id}")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_expired_token(client, user):
    headers = auth_headers_for(user.id, user.email, expires_in=-60)
    response = client.get(f"/users/{user.id}", headers=headers)
    assert response.status_code == 401


def test_token_with_wrong_secret(client, user):
    token = make_token(user.id, user.email, secret="not-the-secret")
    response = client.get(f"/users/{user.id}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_with_wrong_audience(client, user):
    token = make_token(user.id, user.email, audience="anon")
    response = client.get(f"/users/{user.id}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_subject_must_be_user_id(client, db):
    token = make_token("not-a-uuid", "someone@example.com")
    response = client.get(f"/users/{uuid.uuid4()}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
