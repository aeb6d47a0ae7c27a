"""
mediagov - Media-type schema registry and tag governance engine.

Lets administrators define custom media record types, governs their
lifecycle as records come to depend on them, migrates records between
types, and keeps free-text tags consistent across the corpus.
"""

from __future__ import annotations

__version__ = "0.4.0"
__author__ = "mediagov"
__email__ = "noreply@mediagov.dev"
__license__ = "AGPL-3.0-or-later"

__all__ = ["__version__", "__author__", "__email__", "__license__"]
