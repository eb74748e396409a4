"""Utility helpers."""

from .validation import is_valid_period, validate_period

__all__ = ["is_valid_period", "validate_period"]
