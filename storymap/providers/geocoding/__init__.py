"""Geocoding provider implementations."""
