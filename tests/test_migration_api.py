"""
Tests for the migration HTTP endpoints.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from idbridge.modules.migration import (
    InMemoryMigrationLedger,
    LegacyIdentity,
    MigrationError,
    MigrationErrorCode,
    ProvisionedAccount,
    TokenExchangeService,
    create_migration_router,
)
from idbridge.modules.migration.router import parse_exchange_request


@pytest.fixture
def validator_mock():
    validator = MagicMock()
    validator.validate.side_effect = lambda token: LegacyIdentity(
        user_id=f"passage-{token}", email=f"{token}@example.com", email_verified=True
    )
    return validator


@pytest.fixture
def provisioner_mock():
    provisioner = MagicMock()
    provisioner.find_or_create.side_effect = lambda identifier, verified: ProvisionedAccount(
        user_id=f"auth0|{identifier}", identifier=identifier, email_verified=verified
    )
    return provisioner


@pytest.fixture
def client(validator_mock, provisioner_mock):
    service = TokenExchangeService(validator_mock, provisioner_mock, InMemoryMigrationLedger())
    app = FastAPI()
    app.include_router(create_migration_router(service))
    return TestClient(app)


def test_exchange_token_success(client, validator_mock):
    response = client.post("/migrate/exchange-token", json={"passage_token": "alice"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["auth0_user_id"] == "auth0|alice@example.com"
    assert body["email"] == "alice@example.com"
    assert body["is_new_migration"] is True
    assert "passwordless" in body["message"]
    validator_mock.validate.assert_called_once_with("alice")


def test_exchange_token_strips_bearer_prefix(client, validator_mock):
    response = client.post("/migrate/exchange-token", json={"passage_token": "Bearer alice"})

    assert response.status_code == 200
    validator_mock.validate.assert_called_once_with("alice")


def test_second_exchange_not_new(client):
    client.post("/migrate/exchange-token", json={"passage_token": "alice"})
    response = client.post("/migrate/exchange-token", json={"passage_token": "alice"})

    assert response.json()["is_new_migration"] is False


@pytest.mark.parametrize("content,message", [
    (b"{not json", "Invalid request body"),
    (b"", "Invalid request body"),
    (b"{}", "passage_token is required"),
    (b'{"passage_token": ""}', "passage_token is required"),
    (b'{"passage_token": 42}', "Invalid request body"),
])
def test_exchange_token_bad_request(client, validator_mock, content, message):
    response = client.post(
        "/migrate/exchange-token", content=content, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == message
    validator_mock.validate.assert_not_called()


def test_exchange_token_failure_returns_provider_text(client, provisioner_mock):
    provisioner_mock.find_or_create.side_effect = MigrationError(
        MigrationErrorCode.ACCOUNT_CREATION_FAILED,
        "failed to create/find auth0 user",
        '409 - {"message":"The user already exists."}',
    )

    response = client.post("/migrate/exchange-token", json={"passage_token": "alice"})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert "The user already exists." in body["message"]
    assert "auth0_user_id" not in body


def test_exchange_token_no_identifier(client, validator_mock, provisioner_mock):
    validator_mock.validate.side_effect = None
    validator_mock.validate.return_value = LegacyIdentity(user_id="passage-anon")

    response = client.post("/migrate/exchange-token", json={"passage_token": "anon"})

    assert response.status_code == 401
    assert response.json()["message"] == "passage user has no email or phone"
    provisioner_mock.find_or_create.assert_not_called()


def test_stats_after_distinct_exchanges(client):
    for name in ["alice", "bob", "carol"]:
        assert client.post("/migrate/exchange-token", json={"passage_token": name}).status_code == 200

    response = client.get("/migrate/stats")

    assert response.status_code == 200
    assert response.json() == {"total_migrated_users": 3, "cache_size": 3}


def test_status_endpoint(client):
    client.post("/migrate/exchange-token", json={"passage_token": "alice"})

    found = client.get("/migrate/status/passage-alice")
    missing = client.get("/migrate/status/passage-nobody")

    assert found.status_code == 200
    assert found.json()["auth0_user_id"] == "auth0|alice@example.com"
    assert found.json()["migrated_at"] == found.json()["last_exchange"]
    assert missing.status_code == 404


def test_parse_exchange_request_error_code():
    with pytest.raises(MigrationError) as exc_info:
        parse_exchange_request(b"[]")

    assert exc_info.value.code == MigrationErrorCode.INVALID_REQUEST_BODY
