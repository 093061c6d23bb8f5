"""
PETable -- PE Import / Export Lister
=====================================

PETable decodes the Portable Executable container format straight from a
byte buffer and answers three questions: is this a PE image, which
functions does it import (grouped by DLL), and which functions does it
export by name.

Capabilities:
    - ``PE\\0\\0`` signature check via ``e_lfanew``
    - Bounds-checked COFF / optional / section header decoding
    - RVA to file-offset translation through the section table
    - Export name table walk
    - Import descriptor and lookup table walk (ordinal imports skipped)
    - Plain-text, JSON and Rich table output

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
    - Pietrek, M. (2002). An In-Depth Look into the Win32 Portable
      Executable File Format. MSDN Magazine.
"""

__version__ = "1.0.0"

from petable.core.engine import (
    PETableEngine,
    classify,
    list_exports,
    list_imports,
)
from petable.core.models import DecodeResult, ImportEntry, SectionInfo
from petable.parsers.pe_parser import PEParser, decode, is_pe

__all__ = [
    "PETableEngine",
    "PEParser",
    "DecodeResult",
    "ImportEntry",
    "SectionInfo",
    "classify",
    "decode",
    "is_pe",
    "list_exports",
    "list_imports",
]
