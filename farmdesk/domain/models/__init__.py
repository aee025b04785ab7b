"""Domain models for the Farmdesk application."""

from .account import Account, Location

__all__ = [
    "Account",
    "Location",
]
