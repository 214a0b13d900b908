"""Tracking domain exceptions."""

from __future__ import annotations


class LocationPermissionDenied(Exception):
    """Foreground location permission was refused; tracking cannot start."""


class TrackingUnavailable(Exception):
    """No tracking sample exists for the delivery."""
