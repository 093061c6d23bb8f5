"""
PETable Exceptions
===================

Exception hierarchy shared by the decoder, the engine and the CLI::

    PETableError
    ├── NotPEError               input rejected as a PE image
    │   └── PEFormatError        structural problem found while decoding
    │       ├── OutOfBoundsError
    │       └── UnmappedRVAError
    └── InputError               file could not be read or is too large
"""

from __future__ import annotations


class PETableError(Exception):
    """Base exception for all PETable errors."""


class NotPEError(PETableError):
    """The buffer is not a decodable PE image."""


class PEFormatError(NotPEError):
    """A header or table inside the image is malformed."""


class OutOfBoundsError(PEFormatError):
    """A read would run past the end of the buffer or view.

    Attributes:
        offset: Absolute offset the read started at.
        width: Number of bytes requested.
        limit: End of the readable range.
    """

    def __init__(self, offset: int, width: int, limit: int) -> None:
        self.offset = offset
        self.width = width
        self.limit = limit
        super().__init__(
            f"Read of {width} byte(s) at 0x{offset:x} exceeds limit 0x{limit:x}"
        )


class UnmappedRVAError(PEFormatError):
    """An RVA does not fall inside any section's virtual range."""

    def __init__(self, rva: int) -> None:
        self.rva = rva
        super().__init__(f"RVA 0x{rva:x} is not mapped by any section")


class InputError(PETableError):
    """The input file could not be read or exceeds the size limit."""
