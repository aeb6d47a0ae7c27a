"""Utility helpers for mediagov."""

from .validation import coerce_model

__all__ = ["coerce_model"]
