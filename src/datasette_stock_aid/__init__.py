"""Datasette plugin for crowd-sourced store stock availability."""

from datasette_stock_aid.plugin import (
    register_routes,
    skip_csrf,
    startup,
)

__all__ = [
    "register_routes",
    "skip_csrf",
    "startup",
]
