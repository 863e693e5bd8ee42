# Scripts package init
"""Operational scripts run from backend/ (catalog seeding)."""
