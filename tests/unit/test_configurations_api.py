"""
Tests for configuration API routes.
"""

import pytest
from fastapi.testclient import TestClient

from registrar.config import AuthConfig, Config, DatabaseConfig, PolicyConfig
from registrar.main import create_app


TEST_POLICY = {
    "password.min.length": "8",
    "password.max.length": "30",
    "password.min.uppercase": "1",
    "password.min.lowercase": "1",
    "password.min.digits": "1",
    "password.min.special": "1",
    "password.allowed.special": "-.#&",
}


@pytest.fixture
def app_config(tmp_path):
    """Create a config pointing at a temporary database."""
    return Config(
        database=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        auth=AuthConfig(jwt_secret="test_jwt_secret_key_12345", jwt_expire_hours=24),
        policy=PolicyConfig(request_timeout=5.0, seed_defaults=True, seed=dict(TEST_POLICY)),
    )


@pytest.fixture
def client(app_config):
    """Create a test client with the application started."""
    with TestClient(create_app(app_config)) as client:
        yield client


def _registration(email, password):
    return {
        "name": "Juan Rodriguez",
        "email": email,
        "password": password,
        "phones": [{"number": "1234567", "citycode": "1", "contrycode": "57"}],
    }


@pytest.fixture
def auth_headers(client):
    """Register a user and get auth headers."""
    response = client.post("/api/users/register", json=_registration("admin@rodriguez.org", "Admin123#"))
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestAuth:
    """Tests for the bearer token requirement."""

    def test_no_token(self, client):
        response = client.get("/api/configurations")

        assert response.status_code == 401
        assert response.json() == {"message": "missing or invalid token"}

    def test_invalid_token(self, client):
        response = client.get(
            "/api/configurations", headers={"Authorization": "Bearer invalid.token.here"}
        )

        assert response.status_code == 401
        assert response.json() == {"message": "invalid or expired token"}

    def test_wrong_scheme(self, client, auth_headers):
        token = auth_headers["Authorization"].split()[1]
        response = client.get("/api/configurations", headers={"Authorization": f"Basic {token}"})

        assert response.status_code == 401

    def test_policy_requires_token(self, client):
        assert client.get("/api/password-policy").status_code == 401


class TestReadConfigurations:
    """Tests for reading parameters."""

    def test_list(self, client, auth_headers):
        response = client.get("/api/configurations", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 7
        assert {item["key"] for item in data} == set(TEST_POLICY)

    def test_get_by_key(self, client, auth_headers):
        response = client.get("/api/configurations/password.min.length", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["value"] == "8"
        assert data["active"] is True
        assert "type_id" in data
        assert "created_at" in data

    def test_get_unknown_key(self, client, auth_headers):
        response = client.get("/api/configurations/password.unknown", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"message": "configuration not found for key: password.unknown"}

    def test_password_policy(self, client, auth_headers):
        response = client.get("/api/password-policy", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["min_length"] == 8
        assert data["max_length"] == 30
        assert data["allowed_special"] == "#&-."
        assert data["pattern"].startswith("^(?=.{8,30})")


class TestUpdateConfigurations:
    """Tests for changing parameters."""

    def test_update_by_query_value(self, client, auth_headers):
        """Raising the minimum length rejects passwords that were valid before."""
        response = client.put(
            "/api/configurations/password.min.length",
            params={"value": "10"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["value"] == "10"

        short = client.post("/api/users/register", json=_registration("a@rodriguez.org", "Passwd1#"))
        assert short.status_code == 400

        longer = client.post("/api/users/register", json=_registration("b@rodriguez.org", "Password1#"))
        assert longer.status_code == 201

    def test_update_by_body(self, client, auth_headers):
        response = client.put(
            "/api/configurations/password.min.digits",
            json={"value": "2"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["value"] == "2"

        rejected = client.post("/api/users/register", json=_registration("c@rodriguez.org", "Password1#"))
        assert rejected.status_code == 400

    def test_update_value_route(self, client, auth_headers):
        response = client.put(
            "/api/configurations/password.max.length/value",
            json={"value": "12"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["value"] == "12"

        policy = client.get("/api/password-policy", headers=auth_headers).json()
        assert policy["max_length"] == 12

    def test_update_without_value(self, client, auth_headers):
        response = client.put("/api/configurations/password.min.length", headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "value is required"}

    def test_update_by_type_id(self, client, auth_headers):
        current = client.get("/api/configurations/password.min.special", headers=auth_headers).json()

        response = client.put(
            "/api/configurations",
            json={"typeId": current["type_id"], "configValue": "0"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["key"] == "password.min.special"
        assert data["value"] == "0"
        assert data["id"] == current["id"]

    def test_update_by_unknown_type_id(self, client, auth_headers):
        response = client.put(
            "/api/configurations",
            json={"type_id": 9999, "value": "1"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json() == {"message": "configuration type not found with id: 9999"}

    def test_update_by_type_id_missing_fields(self, client, auth_headers):
        response = client.put("/api/configurations", json={"value": "1"}, headers=auth_headers)

        assert response.status_code == 400

    def test_inconsistent_update(self, client, auth_headers):
        """The value is stored but the previous policy stays in force."""
        response = client.put(
            "/api/configurations/password.min.length",
            params={"value": "40"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "password.min.length (40)" in response.json()["message"]

        stored = client.get("/api/configurations/password.min.length", headers=auth_headers).json()
        assert stored["value"] == "40"

        accepted = client.post("/api/users/register", json=_registration("d@rodriguez.org", "Password1#"))
        assert accepted.status_code == 201

    def test_unknown_key_is_created(self, client, auth_headers):
        response = client.put(
            "/api/configurations/some.other.key",
            params={"value": "xyz"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["key"] == "some.other.key"
        assert data["description"] == "auto-generated for some.other.key"

        policy = client.get("/api/password-policy", headers=auth_headers).json()
        assert policy["min_length"] == 8


class TestEmptyPolicy:
    """Tests for a service started without a stored policy."""

    @pytest.fixture
    def app_config(self, tmp_path):
        return Config(
            database=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}"),
            auth=AuthConfig(jwt_secret="test_jwt_secret_key_12345"),
            policy=PolicyConfig(seed_defaults=False),
        )

    def test_registration_fails_until_policy_stored(self, client):
        response = client.post("/api/users/register", json=_registration("e@rodriguez.org", "Password1#"))

        assert response.status_code == 500
        assert response.json() == {"message": "password policy is not available"}
