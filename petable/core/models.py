"""
PETable Data Models
====================

Pydantic models for the results the PE decoder hands to the shell.  The
decoder's internal header records are plain slotted classes in
:mod:`petable.parsers.pe_parser`; only what leaves the decoder is modelled
here.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
    - Pydantic v2 documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Section information
# ---------------------------------------------------------------------------

class SectionInfo(BaseModel):
    """One entry of the section table.

    Attributes:
        name: Section name (e.g. ``.text``), NUL padding stripped.
        virtual_address: RVA the section is mapped at.
        virtual_size: Size of the mapped range in bytes.
        raw_offset: File offset of the section's raw data.
    """
    name: str = ""
    virtual_address: int = 0
    virtual_size: int = 0
    raw_offset: int = 0


# ---------------------------------------------------------------------------
# Import information
# ---------------------------------------------------------------------------

class ImportEntry(BaseModel):
    """Functions imported by name from one library.

    Attributes:
        library: DLL name as stored in the import descriptor.
        functions: Imported names in lookup-table order.  Ordinal-only
            imports carry no name and are not listed.
    """
    library: str = ""
    functions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Aggregate decode result
# ---------------------------------------------------------------------------

class DecodeResult(BaseModel):
    """Outcome of decoding one buffer.

    Attributes:
        path: Source file path, or ``"<bytes>"`` for in-memory input.
        size: Buffer size in bytes.
        is_pe: ``True`` if the buffer decoded as a PE image.
        error: Reason for rejection, empty on success.
        sections: Section table in file order.
        exports: Exported names in name-pointer-array order.
        imports: Per-library imports in descriptor order.
    """
    path: str = "<bytes>"
    size: int = 0
    is_pe: bool = False
    error: str = ""
    sections: list[SectionInfo] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    imports: list[ImportEntry] = Field(default_factory=list)

    @property
    def import_count(self) -> int:
        """Total number of named imports across all libraries."""
        return sum(len(entry.functions) for entry in self.imports)
