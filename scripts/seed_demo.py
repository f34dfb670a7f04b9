#!/usr/bin/env python3
"""
Prepopulate a running stock-aid server with demo data.

Sets up users, adds stores (vetted by Places, so point the server at
scripts/fake_places.py) and uploads reports, all through the HTTP API.

Run with: python scripts/seed_demo.py --base-url http://127.0.0.1:8001
"""

import argparse
import sys

import httpx

USERS = [
    {"first_name": "Ada", "last_name": "Shopper", "zip_code": "94043"},
    {"first_name": "Grace", "last_name": "Checker", "zip_code": "94301"},
]

STORES = [
    {"name": "Safeway", "address": "570 N Shoreline Blvd, Mountain View, CA 94043"},
    {"name": "CVS", "address": "454 University Ave, Palo Alto, CA 94301"},
    {"name": "Whole Foods", "address": "2001 Market St, San Francisco, CA 94114"},
]

# (user index, store index, in stock, out of stock)
REPORTS = [
    (0, 0, ["toilet paper", "eggs"], ["flour", "yeast"]),
    (1, 0, ["toilet paper"], ["hand sanitizer"]),
    (1, 1, ["hand sanitizer", "face masks"], ["disinfecting wipes"]),
    (0, 2, ["flour", "yeast", "rice"], []),
]


def post(client: httpx.Client, path: str, payload: dict) -> dict:
    response = client.post(path, json=payload)
    if response.status_code != 200:
        print(f"  {path} failed ({response.status_code}): {response.text}")
        response.raise_for_status()
    return response.json()


def seed(base_url: str) -> None:
    with httpx.Client(base_url=base_url, timeout=30.0) as client:
        user_ids = []
        for user in USERS:
            user_ids.append(post(client, "/stock-aid/user/setup", user)["user_id"])
            print(f"User {user['first_name']}: {user_ids[-1]}")

        store_ids = []
        for store in STORES:
            result = post(client, "/stock-aid/store/add", {"user_id": user_ids[0], **store})
            store_ids.append(result["store_id"])
            print(f"Store {store['name']}: {store_ids[-1]}")

        for user_idx, store_idx, in_stock, out_stock in REPORTS:
            post(
                client,
                "/stock-aid/report/upload",
                {
                    "user_id": user_ids[user_idx],
                    "store_id": store_ids[store_idx],
                    "in_stock_items": in_stock,
                    "out_stock_items": out_stock,
                },
            )
        print(f"Uploaded {len(REPORTS)} report(s)")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a stock-aid server with demo data")
    parser.add_argument(
        "--base-url",
        default="http://127.0.0.1:8001",
        help="Datasette server URL (default: http://127.0.0.1:8001)",
    )
    args = parser.parse_args()

    try:
        seed(args.base_url)
    except httpx.HTTPError as e:
        print(f"Seeding failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
