"""Timestamp harmonization onto daily time slots."""

from .analysis import HarmonizationAnalysis
from .engine import HarmonizationEngine, format_slot, parse_slot
from .service import HarmonizationService

__all__ = [
    "HarmonizationAnalysis",
    "HarmonizationEngine",
    "HarmonizationService",
    "format_slot",
    "parse_slot",
]
