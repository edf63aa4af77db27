"""
Shared helpers for SynergySphere examples.

Handles the health check and authentication (register + login) so each
example can focus on its specific workflow.
"""

import sys
import uuid

import httpx

SERVER = "http://localhost:8000"
BASE = f"{SERVER}/api/v1"


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn synergy.main:app --reload --port 8000")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Sockets:  {health['realtime']['connections']} open")

    if health["database"] != "ok":
        print("\nERROR: Postgres is not connected. Start it with: docker compose up -d")
        sys.exit(1)


def authenticate() -> str:
    """Register a fresh user and login, returning an access token.

    Uses a unique email per run so examples are idempotent.
    """
    run_id = uuid.uuid4().hex[:8]
    email = f"demo-{run_id}@example.com"
    password = "demo-password-123"

    resp = httpx.post(
        f"{BASE}/auth/register",
        json={
            "email": email,
            "username": f"demo-{run_id}",
            "full_name": f"Demo User {run_id}",
            "password": password,
        },
        timeout=10,
    )
    if resp.status_code not in (201, 409):  # 409 = already exists
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    resp = httpx.post(
        f"{BASE}/auth/login",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    return resp.json()["access_token"]


def create_client() -> tuple[httpx.Client, str]:
    """Check backend, authenticate, and return (client, access token)."""
    check_backend()
    token = authenticate()
    print("  Auth:     ✓ (JWT)")
    client = httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {token}"},
    )
    return client, token
