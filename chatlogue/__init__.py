"""Chatlogue: streaming import of third-party chat exports.

Detect which export format a file uses, then decode it incrementally into
canonical messages and members delivered as an ordered event sequence.
"""

from __future__ import annotations

from chatlogue.formats import FeatureRegistry, default_registry
from chatlogue.models import ParseOptions

__version__ = "0.1.0"

__all__ = ["FeatureRegistry", "ParseOptions", "__version__", "default_registry"]
