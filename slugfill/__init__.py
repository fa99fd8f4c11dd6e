"""Backfill unique URL slugs for rows whose slug column is blank."""

__version__ = "0.1.0"
