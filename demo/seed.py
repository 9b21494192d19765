#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample tours, users and reviews.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords. It is intended ONLY for
local demos and frontend development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┬────────────┐
    │ Email                        │ Password          │ Role       │
    ├──────────────────────────────┼───────────────────┼────────────┤
    │ admin@toursdemo.com          │ AdminDemo123!     │ admin      │
    │ lea.guide@toursdemo.com      │ LeaDemo123!       │ lead-guide │
    │ alice.chen@example.com       │ AliceDemo123!     │ user       │
    │ bob.martinez@example.com     │ BobDemo123!       │ user       │
    │ carol.nguyen@example.com     │ CarolDemo123!     │ user       │
    └──────────────────────────────┴───────────────────┴────────────┘
"""

import argparse
import asyncio
import os
import random
import sys

import httpx

from promote_admin import promote

BASE_URL = "http://localhost:8000"
API = "/api/v1"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

ADMIN = {
    "name": "Admin User",
    "email": "admin@toursdemo.com",
    "password": "AdminDemo123!",
}

LEAD_GUIDE = {
    "name": "Lea Guide",
    "email": "lea.guide@toursdemo.com",
    "password": "LeaDemo123!",
}

MEMBERS = [
    {"name": "Alice Chen", "email": "alice.chen@example.com", "password": "AliceDemo123!"},
    {"name": "Bob Martinez", "email": "bob.martinez@example.com", "password": "BobDemo123!"},
    {"name": "Carol Nguyen", "email": "carol.nguyen@example.com", "password": "CarolDemo123!"},
]

TOURS = [
    {
        "name": "The Forest Hiker",
        "duration": 5,
        "max_group_size": 25,
        "image_cover": "tour-1-cover.jpg",
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
    },
    {
        "name": "The Sea Explorer",
        "duration": 7,
        "max_group_size": 15,
        "image_cover": "tour-2-cover.jpg",
        "difficulty": "medium",
        "price": 497,
        "price_discount": 100,
        "summary": "Exploring the jaw-dropping US east coast by foot and by boat",
    },
    {
        "name": "The Snow Adventurer",
        "duration": 4,
        "max_group_size": 10,
        "image_cover": "tour-3-cover.jpg",
        "difficulty": "difficult",
        "price": 997,
        "summary": "Exciting adventure in the snow with snowboarding and skiing",
    },
    {
        "name": "The City Wanderer",
        "duration": 9,
        "max_group_size": 20,
        "image_cover": "tour-4-cover.jpg",
        "difficulty": "easy",
        "price": 1197,
        "summary": "Living the life of Wanderlust in the US' most beatiful cities",
    },
    {
        "name": "The Hidden Valley",
        "duration": 3,
        "max_group_size": 6,
        "image_cover": "tour-5-cover.jpg",
        "difficulty": "difficult",
        "price": 1497,
        "summary": "Invitation-only trek to a valley that is not on any map",
        "secret_tour": True,
    },
]

REVIEW_TEXTS = [
    "Amazing experience, would book again!",
    "Great guides and stunning views.",
    "Good value, but the pace was a bit fast.",
    "Well organized from start to finish.",
    "Not what I expected, though the scenery was nice.",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def signup(client: httpx.AsyncClient, user: dict) -> str:
    resp = await client.post(f"{BASE_URL}{API}/users/signup", json={
        "name": user["name"],
        "email": user["email"],
        "password": user["password"],
        "password_confirm": user["password"],
    })
    resp.raise_for_status()
    return resp.json()["token"]


async def create_tour(client: httpx.AsyncClient, token: str, tour: dict) -> dict:
    resp = await client.post(
        f"{BASE_URL}{API}/tours",
        json=tour,
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()["data"]


async def create_review(client: httpx.AsyncClient, token: str, tour_id: str,
                        text: str, rating: int) -> dict:
    resp = await client.post(
        f"{BASE_URL}{API}/tours/{tour_id}/reviews",
        json={"review": text, "rating": rating},
        headers=auth_header(token),
    )
    return resp.json()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn tours_api.main:app --reload\n")
            sys.exit(1)

        # --- Staff ---
        print("Creating staff users...")
        admin_token = await signup(client, ADMIN)
        await promote(ADMIN["email"], "admin")
        log(f"Admin: {ADMIN['email']} / {ADMIN['password']}")

        await signup(client, LEAD_GUIDE)
        await promote(LEAD_GUIDE["email"], "lead-guide")
        log(f"Lead guide: {LEAD_GUIDE['email']} / {LEAD_GUIDE['password']}")

        # --- Tours ---
        print("\nCreating tours...")
        public_tours: list[dict] = []
        for tour in TOURS:
            created = await create_tour(client, admin_token, tour)
            label = " (secret)" if tour.get("secret_tour") else ""
            log(f"{created['name']}: ${created['price']:,.0f}{label}")
            if not tour.get("secret_tour"):
                public_tours.append(created)

        # --- Members and reviews ---
        for member in MEMBERS:
            print(f"\nCreating {member['name']}...")
            token = await signup(client, member)
            log(f"Login: {member['email']} / {member['password']}")

            for tour in random.sample(public_tours, k=min(3, len(public_tours))):
                result = await create_review(
                    client, token, tour["id"],
                    random.choice(REVIEW_TEXTS), random.randint(3, 5),
                )
                if result.get("status") == "success":
                    log(f"  Reviewed {tour['name']}: {result['data']['rating']}/5")

        # --- Ratings ---
        print("\nTour ratings:")
        resp = await client.get(
            f"{BASE_URL}{API}/tours",
            params={"sort": "-ratings_average", "fields": "name,ratings_average,ratings_quantity"},
        )
        resp.raise_for_status()
        for tour in resp.json()["data"]:
            log(f"{tour['name']:<25s} {tour['ratings_average']:.1f} ({tour['ratings_quantity']} reviews)")

    # --- Summary ---
    print("\n========================================")
    print("  SEED COMPLETE — Login Credentials")
    print("========================================")
    print(f"\n  {'Email':<30s} {'Password':<20s} {'Role'}")
    print(f"  {'─' * 30} {'─' * 20} {'─' * 10}")
    print(f"  {ADMIN['email']:<30s} {ADMIN['password']:<20s} admin")
    print(f"  {LEAD_GUIDE['email']:<30s} {LEAD_GUIDE['password']:<20s} lead-guide")
    for m in MEMBERS:
        print(f"  {m['email']:<30s} {m['password']:<20s} user")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "tours.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample users, tours, and reviews for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
