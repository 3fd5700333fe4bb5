#!/usr/bin/env python3
"""
SimpleSecurity Quickstart — full account lifecycle in one script.

Registers a user → logs in → reads the principal → logs out → unregisters.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: simplesec serve  (http://localhost:8000)
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"


def main():
    run_id = uuid.uuid4().hex[:6]
    name = f"demo-{run_id}"
    password = "demo-password-123"
    # The client keeps the ticket cookie between requests, like a browser
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    # ── Register ──────────────────────────────────────────────────
    print(f"\n1. Registering {name}...")
    resp = client.post("/account/register", json={
        "name": name,
        "password": password,
        "password_repeat": password,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"

    # ── Anonymous before login ────────────────────────────────────
    me = client.get("/account/me").json()
    print(f"\n2. Before login: authenticated={me['authenticated']}")

    # ── Login ─────────────────────────────────────────────────────
    print("\n3. Logging in...")
    resp = client.post("/account/login", json={"name": name, "password": password})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Cookies: {', '.join(client.cookies.keys())}")

    me = client.get("/account/me").json()
    print(f"   Principal: {me['name']} roles={me['roles']}")

    # ── Logout ────────────────────────────────────────────────────
    print("\n4. Logging out...")
    client.post("/account/logout")
    me = client.get("/account/me").json()
    print(f"   authenticated={me['authenticated']}")

    # ── Unregister ────────────────────────────────────────────────
    print("\n5. Unregistering...")
    client.post("/account/login", json={"name": name, "password": password})
    resp = client.post("/account/unregister")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    resp = client.post("/account/login", json={"name": name, "password": password})
    print(f"   Login after unregister: {resp.status_code} {resp.json()['detail']}")

    print(f"\n✓ Account lifecycle finished for {name}.")


if __name__ == "__main__":
    main()
