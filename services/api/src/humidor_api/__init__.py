"""Humidor Hub entitlements API."""
