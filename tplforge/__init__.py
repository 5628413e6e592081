"""Project scaffolding, release, and single-entry dist extraction."""

from __future__ import annotations

from .extract import DependencyExtractor
from .models import Cancelled, Completed, ExtractionResult, Failed

__version__ = "0.1.0"

__all__ = [
    "Cancelled",
    "Completed",
    "DependencyExtractor",
    "ExtractionResult",
    "Failed",
    "__version__",
]
