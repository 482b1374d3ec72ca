from __future__ import annotations

from fastapi.testclient import TestClient


def auth_headers(client: TestClient, username: str = "alice", password: str = "s3cret-pass") -> dict:
    """Register (if needed) and sign in, returning an Authorization header."""
    client.post("/api/v1/auth/signup", json={"username": username, "password": password})
    res = client.post("/api/v1/auth/signin", json={"username": username, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['accessToken']}"}
