"""Pitlane — get a Stripe + Postgres dev environment onto the grid."""

__version__ = "0.1.0"
