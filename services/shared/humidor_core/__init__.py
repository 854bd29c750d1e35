"""Humidor Hub core: configuration, logging, persistence and entitlements."""

__version__ = "0.1.0"
