"""Courier domain exceptions."""

from __future__ import annotations


class CourierNotFound(Exception):
    """The user is not registered as a courier."""


class CourierAlreadyRegistered(Exception):
    """The user already has a courier profile."""


class CourierBusy(Exception):
    """Availability cannot change while the courier holds an active delivery."""
