"""
Post-Deploy Smoke Test Script.

Runs read-only checks against a running instance:
1. Health check
2. Staff login
3. Fiscal window and finance dashboards
4. Order monitoring board (when the account may see it)

Credentials come from OPSDESK_USERNAME / OPSDESK_PASSWORD.
"""

import os
import sys

import requests

BASE_URL = os.getenv("OPSDESK_BASE_URL", "http://127.0.0.1:8000")
API_PREFIX = "/v1"
TIMEOUT = 10


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def get(path, headers=None, **params):
    return requests.get(f"{BASE_URL}{path}", headers=headers, params=params, timeout=TIMEOUT)


def main():
    print(f"🚀 Validating deployment at {BASE_URL}...")
    
    print_step("HEALTH", "Checking /health...")
    try:
        response = get("/health")
    except requests.RequestException as e:
        fail(f"Server unreachable: {e}")
    if response.status_code != 200:
        fail(f"Health check returned {response.status_code}")
    health = response.json()
    success(f"Healthy (redis: {health.get('redis')})")
    
    username = os.getenv("OPSDESK_USERNAME")
    password = os.getenv("OPSDESK_PASSWORD")
    if not username or not password:
        fail("Set OPSDESK_USERNAME and OPSDESK_PASSWORD to run the authenticated checks")
    
    print_step("AUTH", f"Logging in as {username}...")
    response = requests.post(
        f"{BASE_URL}{API_PREFIX}/auth/login",
        json={"username": username, "password": password},
        timeout=TIMEOUT
    )
    if response.status_code != 200:
        fail(f"Login failed: {response.status_code} {response.text}")
    login = response.json()
    headers = {"Authorization": f"Bearer {login['access_token']}"}
    role = login["role"]
    success(f"Logged in with role {role}")
    
    if role in ("superadmin", "admin", "finance"):
        print_step("FINANCE", "Checking fiscal window and dashboards...")
        for path, params in [
            ("/finance/fiscal-window", {"selector": "current"}),
            ("/finance/stats/day", {"selector": "current"}),
            ("/finance/stats/pending", {}),
            ("/finance/transactions/stats", {}),
        ]:
            response = get(f"{API_PREFIX}{path}", headers, **params)
            if response.status_code != 200:
                fail(f"{path} returned {response.status_code} {response.text}")
            success(f"{path}: {response.json()}")
    
    if role in ("superadmin", "admin", "support"):
        print_step("OPERATIONS", "Checking order board...")
        response = get(f"{API_PREFIX}/operations/orders/stats", headers)
        if response.status_code != 200:
            fail(f"Order stats returned {response.status_code} {response.text}")
        success(f"Order board: {response.json()}")
    
    requests.post(f"{BASE_URL}{API_PREFIX}/auth/logout", headers=headers, timeout=TIMEOUT)
    success("Deployment Validation Passed!")


if __name__ == "__main__":
    main()
