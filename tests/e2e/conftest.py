"""
Pytest fixtures for end-to-end tests.
"""

import pytest
import pytest_asyncio
import asyncio
import tempfile
import os
import time
import uuid
from multiprocessing import Process

import httpx


STANDARD_POLICY = {
    "password.min.length": "8",
    "password.max.length": "30",
    "password.min.uppercase": "1",
    "password.min.lowercase": "1",
    "password.min.digits": "1",
    "password.min.special": "1",
    "password.allowed.special": "-.#&",
}


def run_registrar(config_path: str):
    """Run Registrar in a subprocess."""
    from registrar.config import load_config
    from registrar.main import run_server

    config = load_config(config_path)
    asyncio.run(run_server(config))


def _wait_until_healthy(base_url: str, timeout: float = 10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if httpx.get(f"{base_url}/health").status_code == 200:
                return
        except httpx.TransportError:
            pass
        time.sleep(0.1)
    raise RuntimeError(f"Registrar did not start at {base_url}")


@pytest.fixture(scope="session")
def server_port():
    """Port for the Registrar server."""
    return 18080


@pytest.fixture(scope="session")
def test_config(server_port):
    """Create test configuration file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        seed = "\n".join(f'    {key}: "{value}"' for key, value in STANDARD_POLICY.items())
        config_content = f"""
server:
  port: {server_port}
  host: "127.0.0.1"

database:
  url: "sqlite+aiosqlite:///{tmpdir}/test.db"

auth:
  jwt_secret: "test-secret-key"
  jwt_expire_hours: 24

policy:
  request_timeout: 5
  seed_defaults: true
  seed:
{seed}

logging:
  level: "WARNING"
"""
        config_path = os.path.join(tmpdir, "config.yaml")
        with open(config_path, "w") as f:
            f.write(config_content)

        yield config_path


@pytest.fixture(scope="session")
def registrar_server(test_config, server_port):
    """Start the Registrar server."""
    process = Process(target=run_registrar, args=(test_config,))
    process.start()

    base_url = f"http://127.0.0.1:{server_port}"
    try:
        _wait_until_healthy(base_url)
        yield base_url
    finally:
        process.terminate()
        process.join(timeout=5)


@pytest_asyncio.fixture
async def http_client():
    """Async HTTP client."""
    async with httpx.AsyncClient(timeout=30.0) as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(registrar_server, http_client):
    """Register a user and get bearer auth headers."""
    response = await http_client.post(
        f"{registrar_server}/api/users/register",
        json={
            "name": "Admin",
            "email": f"admin-{uuid.uuid4().hex[:12]}@rodriguez.org",
            "password": "Admin123#",
            "phones": [{"number": "1234567", "citycode": "1", "contrycode": "57"}],
        },
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture
async def restore_policy(registrar_server, http_client, auth_headers):
    """Put the standard policy back after a test changes it."""
    yield
    # max first so the restored min never exceeds it
    for key in sorted(STANDARD_POLICY, key=lambda k: k != "password.max.length"):
        response = await http_client.put(
            f"{registrar_server}/api/configurations/{key}",
            params={"value": STANDARD_POLICY[key]},
            headers=auth_headers,
        )
        assert response.status_code == 200
