"""Request validators and JSON representations for the API."""
from __future__ import annotations


def iso(value):
    return value.isoformat() if value else None
