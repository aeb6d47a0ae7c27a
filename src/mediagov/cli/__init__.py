"""
Command-line interface for mediagov administration tasks.
"""

from __future__ import annotations

__all__: list[str] = []
