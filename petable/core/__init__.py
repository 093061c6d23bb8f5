"""
PETable Core Module
====================

Contains the decode engine and the result data models.
"""

from petable.core.models import DecodeResult, ImportEntry, SectionInfo
from petable.core.engine import PETableEngine

__all__ = [
    "PETableEngine",
    "DecodeResult",
    "ImportEntry",
    "SectionInfo",
]
