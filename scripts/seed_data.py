#!/usr/bin/env python3
"""
Seed script — creates a small dataset for exploring the Chitter API.

Creates:
  • 8 users (password: chitter123)
  • A follow graph (each user follows 3 others)
  • 4 chits per user, some with a location

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

All IDs and one token are printed so you can use them in curl commands.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional


PASSWORD = "chitter123"

BASE_USERS = [
    ("Alice", "Chen"),
    ("Bob", "Martinez"),
    ("Carol", "Singh"),
    ("Dave", "Kim"),
    ("Eve", "Johnson"),
    ("Frank", "Williams"),
    ("Grace", "Li"),
    ("Henry", "Brown"),
]

SAMPLE_CHITS = [
    "First chit! Hello everyone.",
    "Coffee first, code second.",
    "Anyone else watching the match tonight?",
    "Just finished a 10k run. Legs are jelly.",
    "Reading a great book on distributed systems.",
    "The sunset from the office roof today was unreal.",
    "Trying a new ramen place downtown, will report back.",
    "Monday again. How?",
    "Finally fixed that bug that has haunted me all week.",
    "Weekend plans: absolutely nothing. Perfect.",
    "Who else is learning a new language this year?",
    "Rain, rain, go away.",
]

PLACES = [(51.5074, -0.1278), (40.7128, -74.0060), (35.6762, 139.6503), (-33.8688, 151.2093)]


@dataclass
class ApiClient:
    base_url: str
    token: Optional[str] = None

    def request(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["X-Authorization"] = self.token
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: dict) -> dict:
        return self.request("POST", path, data)

    def get(self, path: str) -> dict:
        return self.request("GET", path)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except urllib.error.URLError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    anon = ApiClient(api_url)
    wait_for_api(anon)

    # ── Create users & log in ─────────────────────────────────────────────
    print("Creating users...")
    sessions: dict[str, ApiClient] = {}
    for first, last in BASE_USERS:
        email = f"{first.lower()}.{last.lower()}@example.com"
        anon.post(
            "/api/auth/signup",
            {"firstName": first, "lastName": last, "email": email, "password": PASSWORD},
        )
        login = anon.post("/api/auth/login", {"email": email, "password": PASSWORD})
        uid = login.get("user_id", "")
        if uid:
            sessions[uid] = ApiClient(api_url, token=login["token"])
            print(f"  ✓ {first} {last} ({uid})")
        else:
            print(f"  ✗ Failed to create {first} {last}")

    if not sessions:
        print("No users created — aborting")
        return
    user_ids = list(sessions)

    # ── Create follow graph ───────────────────────────────────────────────
    print("\nCreating follow relationships...")
    edges = 0
    for follower_id, session in sessions.items():
        others = [u for u in user_ids if u != follower_id]
        for followee_id in random.sample(others, k=min(3, len(others))):
            if session.post(f"/api/user/{followee_id}/follow", {"follower_id": follower_id}):
                edges += 1
    print(f"  ✓ {edges} follow edges created")

    # ── Create chits ──────────────────────────────────────────────────────
    print("\nPosting chits...")
    chits = 0
    pool = SAMPLE_CHITS[:]
    random.shuffle(pool)
    idx = 0
    for user_id, session in sessions.items():
        for _ in range(4):
            body = {"text": pool[idx % len(pool)]}
            idx += 1
            if random.random() < 0.3:
                body["latitude"], body["longitude"] = random.choice(PLACES)
            if session.post(f"/api/user/{user_id}/chits", body).get("chit_id"):
                chits += 1
    print(f"  ✓ {chits} chits posted")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    token = sessions[u].token
    print("# Global feed:")
    print(f"  curl -s '{api_url}/api/chits?limit=5' | python3 -m json.tool\n")
    print(f"# Personal feed for {BASE_USERS[0][0]}:")
    print(f"  curl -s '{api_url}/api/user/{u}/feed' \\")
    print(f"    -H 'X-Authorization: {token}' | python3 -m json.tool\n")
    print("# Post a chit:")
    print(f"  curl -s -X POST '{api_url}/api/user/{u}/chits' \\")
    print(f"    -H 'X-Authorization: {token}' -H 'Content-Type: application/json' \\")
    print("    -d '{\"text\": \"Hello world!\"}' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print("# Check MinIO: http://localhost:9001 (minioadmin/minioadmin)")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Chitter API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
