#!/usr/bin/env python3
"""
Seed script: creates users, an admin and items via the API (no direct DB).
Every write goes through the normal pipeline, so audit logs and notifications
are populated too.
Run: API must be running.
  python scripts/seed_data.py
  python scripts/seed_data.py --users 20 --items-per-user 15
"""

import argparse
import random

import httpx

API_BASE = "http://localhost:8000/api/v1"

PRODUCTS = [
    ("Chair", "Furniture", "Solid wood dining chair"),
    ("Desk", "Furniture", "Standing desk, oak top"),
    ("Bookshelf", "Furniture", "Five-shelf pine bookcase"),
    ("Laptop stand", "Electronics", "Aluminium adjustable stand"),
    ("Bluetooth speaker", "Electronics", "Portable, 12h battery"),
    ("Mechanical keyboard", "Electronics", "Hot-swappable switches"),
    ("Logo design", "Services", "Brand logo with three revisions"),
    ("Website audit", "Services", "Performance and accessibility review"),
    ("Tailoring", "Services", "Suit alterations"),
    ("Coffee beans 1kg", "Groceries", "Single-origin, medium roast"),
    ("Olive oil 5L", "Groceries", "Cold pressed"),
    ("Running shoes", "Clothing", "Neutral trainers"),
    ("Rain jacket", "Clothing", "Waterproof shell"),
]

CUSTOMERS = ["Ada Obi", "Bola Ade", "Chen Wei", "Dara Khan", "Eli Stone", "Femi Bello"]

PRICES = [1500, 2500, 5000, 7500, 12000, 20000, 45000, 90000]


def random_item() -> dict:
    name, category, description = random.choice(PRODUCTS)
    customer = random.choice(CUSTOMERS)
    return {
        "name": name,
        "description": description,
        "category": category,
        "price": random.choice(PRICES),
        "inStock": random.random() > 0.2,
        "customerName": customer,
        "customerEmail": customer.lower().replace(" ", ".") + "@example.com",
        "paymentStatus": random.choice(["paid", "unpaid", "pending"]),
    }


def main():
    ap = argparse.ArgumentParser(description="Seed users and items via API")
    ap.add_argument("--users", type=int, default=10, help="Number of users to create")
    ap.add_argument("--items-per-user", type=int, default=10, help="Items per user")
    ap.add_argument("--admin-code", default="ADMIN2024", help="Admin enrollment code")
    ap.add_argument("--base-url", default=API_BASE, help="API base URL")
    args = ap.parse_args()

    created_users = 0
    created_items = 0
    errors = []

    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        r = client.post("/users/register-admin", json={
            "name": "Admin",
            "email": "admin@example.com",
            "password": "admin123",
            "adminCode": args.admin_code,
        })
        if r.status_code not in (201, 409):
            errors.append(f"Register admin: {r.status_code} {r.text[:80]}")

        print(f"Creating {args.users} users with {args.items_per_user} items each...")
        for i in range(args.users):
            email = f"user{i + 1}@example.com"
            password = "password123"
            r = client.post("/users/register", json={
                "name": f"User {i + 1}",
                "email": email,
                "password": password,
            })
            if r.status_code == 201:
                created_users += 1
            elif r.status_code != 409:
                errors.append(f"Register {email}: {r.status_code} {r.text[:80]}")
                continue

            r = client.post("/users/login", json={"email": email, "password": password})
            if r.status_code != 200:
                errors.append(f"Login {email}: {r.status_code}")
                continue
            headers = {"Authorization": f"Bearer {r.json()['accessToken']}"}

            for _ in range(args.items_per_user):
                r = client.post("/items", headers=headers, json=random_item())
                if r.status_code == 201:
                    created_items += 1
                else:
                    errors.append(f"Item {email}: {r.status_code} {r.text[:80]}")
            print(f"  {email}: total items so far {created_items}")

    print(f"\nDone. Users: {created_users}, Items created: {created_items}")
    if errors:
        print(f"Errors ({len(errors)}):")
        for e in errors[:15]:
            print("  ", e)
        if len(errors) > 15:
            print("  ... and", len(errors) - 15, "more")


if __name__ == "__main__":
    main()
