"""Taxonomy store: ORM models, lookups and baseline seed data."""
