#!/usr/bin/env python3
"""
Fake Google Places API server for local development.

Implements the two endpoints used to vet stores:
- findplacefromtext/json (free text -> candidate places)
- details/json (place id -> place types)

Run with: python scripts/fake_places.py --port 9010
Then configure the plugin with:

    plugins:
      datasette-stock-aid:
        places:
          api_base: "http://127.0.0.1:9010/maps/api/place"
          api_key: "fake"
"""

import argparse
import json
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

# place_id: place record
FAKE_PLACES = {
    "fake-safeway-mv": {
        "name": "Safeway",
        "formatted_address": "570 N Shoreline Blvd, Mountain View, CA 94043, United States",
        "location": {"lat": 37.3995, "lng": -122.0814},
        "types": ["grocery_or_supermarket", "food", "store", "point_of_interest"],
        "keywords": ["safeway", "shoreline"],
    },
    "fake-cvs-pa": {
        "name": "CVS Pharmacy",
        "formatted_address": "454 University Ave, Palo Alto, CA 94301, United States",
        "location": {"lat": 37.4484, "lng": -122.1589},
        "types": ["drugstore", "pharmacy", "store"],
        "keywords": ["cvs", "university"],
    },
    "fake-wholefoods-sf": {
        "name": "Whole Foods Market",
        "formatted_address": "2001 Market St, San Francisco, CA 94114, United States",
        "location": {"lat": 37.7686, "lng": -122.4277},
        "types": ["supermarket", "grocery_or_supermarket", "store"],
        "keywords": ["whole foods", "market st"],
    },
    "fake-library-mv": {
        "name": "Mountain View Public Library",
        "formatted_address": "585 Franklin St, Mountain View, CA 94041, United States",
        "location": {"lat": 37.3903, "lng": -122.0842},
        "types": ["library", "point_of_interest"],
        "keywords": ["library"],
    },
}


def match_places(query: str) -> list[str]:
    """Place ids with any keyword appearing in the query."""
    query = query.lower()
    return [
        place_id
        for place_id, place in FAKE_PLACES.items()
        if any(keyword in query for keyword in place["keywords"])
    ]


class FakePlacesHandler(BaseHTTPRequestHandler):
    """HTTP handler implementing fake Places endpoints."""

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        print(f"[FakePlaces] {args[0]}")

    def send_json(self, data: dict, status: int = 200) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        params = {k: v[0] for k, v in parse_qs(parsed.query).items()}

        if not params.get("key"):
            self.send_json({"status": "REQUEST_DENIED", "error_message": "Missing API key"})
            return

        if parsed.path.endswith("/findplacefromtext/json"):
            self.handle_find_place(params)
        elif parsed.path.endswith("/details/json"):
            self.handle_details(params)
        else:
            self.send_json({"status": "INVALID_REQUEST"}, status=404)

    def handle_find_place(self, params: dict) -> None:
        candidates = []
        for place_id in match_places(params.get("input", "")):
            place = FAKE_PLACES[place_id]
            candidates.append(
                {
                    "place_id": place_id,
                    "name": place["name"],
                    "formatted_address": place["formatted_address"],
                    "geometry": {"location": place["location"]},
                }
            )
        self.send_json(
            {"status": "OK" if candidates else "ZERO_RESULTS", "candidates": candidates}
        )

    def handle_details(self, params: dict) -> None:
        place = FAKE_PLACES.get(params.get("place_id", ""))
        if place is None:
            self.send_json({"status": "NOT_FOUND"})
            return
        self.send_json({"status": "OK", "result": {"types": place["types"]}})


def main() -> None:
    parser = argparse.ArgumentParser(description="Run fake Google Places API server")
    parser.add_argument("--port", type=int, default=9010, help="Port to listen on (default: 9010)")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    args = parser.parse_args()

    server = HTTPServer((args.host, args.port), FakePlacesHandler)
    print(f"Fake Places API running at http://{args.host}:{args.port}/maps/api/place")
    print("Known places:")
    for place in FAKE_PLACES.values():
        print(f"  {place['name']}: {place['formatted_address']}")
    print()

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
        server.shutdown()


if __name__ == "__main__":
    main()
