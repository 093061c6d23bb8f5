"""Shared fixtures for PETable tests: a small in-memory PE image builder."""

from __future__ import annotations

import struct
from typing import Sequence, Union

import pytest

from petable.parsers.pe_parser import (
    FILE_HEADER_SIZE,
    IMAGE_ORDINAL_FLAG64,
    OPTIONAL_HEADER_DATA_DIRECTORIES,
    OPTIONAL_HEADER_SIZE,
    SECTION_HEADER_SIZE,
)

E_LFANEW = 0x40
SECTION_TABLE_OFFSET = E_LFANEW + 4 + FILE_HEADER_SIZE + OPTIONAL_HEADER_SIZE
SECTION_VA = 0x1000
SECTION_RAW = 0x200

ImportSpec = Sequence[tuple[str, Sequence[Union[str, int]]]]


class _SectionBody:
    """Grows the contents of the single data section and hands out RVAs."""

    def __init__(self, va: int) -> None:
        self.va = va
        self.data = bytearray()

    def add(self, blob: bytes, align: int = 4) -> int:
        while len(self.data) % align:
            self.data.append(0)
        rva = self.va + len(self.data)
        self.data.extend(blob)
        return rva


def build_pe(
    exports: Sequence[str] | None = None,
    imports: ImportSpec | None = None,
    *,
    section_count: int | None = None,
    extra_sections: Sequence[tuple[str, int, int, int]] = (),
    export_directory: tuple[int, int] | None = None,
    import_directory: tuple[int, int] | None = None,
) -> bytes:
    """Build a minimal PE image with one ``.data`` section.

    Args:
        exports: Export names, written in the given order.  ``None`` leaves
            the export directory empty.
        imports: ``(library, entries)`` pairs; an ``int`` entry is an
            ordinal import, a ``str`` entry an import by name.
        section_count: Override ``NumberOfSections`` in the file header.
        extra_sections: ``(name, va, vsize, raw)`` headers appended after
            ``.data``; their contents are not written.
        export_directory: Override the export data directory ``(rva, size)``.
        import_directory: Override the import data directory ``(rva, size)``.
    """
    body = _SectionBody(SECTION_VA)
    export_dir = (0, 0)
    import_dir = (0, 0)

    if exports is not None:
        name_rvas = [body.add(name.encode("ascii") + b"\x00", align=1) for name in exports]
        pointers_rva = body.add(b"".join(struct.pack("<I", rva) for rva in name_rvas))
        directory = bytearray(40)
        struct.pack_into("<I", directory, 24, len(exports))
        struct.pack_into("<I", directory, 28, len(exports))
        struct.pack_into("<I", directory, 32, pointers_rva)
        export_dir = (body.add(bytes(directory)), 40)

    if imports is not None:
        descriptors = bytearray()
        for library, entries in imports:
            thunks = bytearray()
            for entry in entries:
                if isinstance(entry, int):
                    thunks += struct.pack("<Q", IMAGE_ORDINAL_FLAG64 | entry)
                else:
                    hint_rva = body.add(b"\x00\x00" + entry.encode("ascii") + b"\x00", align=2)
                    thunks += struct.pack("<Q", hint_rva)
            thunks += b"\x00" * 8
            lookup_rva = body.add(bytes(thunks), align=8)
            library_rva = body.add(library.encode("ascii") + b"\x00", align=1)
            descriptors += struct.pack("<IIIII", lookup_rva, 0, 0, library_rva, lookup_rva)
        descriptors += b"\x00" * 20
        import_dir = (body.add(bytes(descriptors)), len(descriptors))

    if export_directory is not None:
        export_dir = export_directory
    if import_directory is not None:
        import_dir = import_directory

    if not body.data:
        body.add(b"\x00" * 16)

    sections = [(".data", SECTION_VA, len(body.data), SECTION_RAW), *extra_sections]

    headers = bytearray(SECTION_RAW)
    headers[0:2] = b"MZ"
    struct.pack_into("<I", headers, 0x3C, E_LFANEW)
    headers[E_LFANEW:E_LFANEW + 4] = b"PE\x00\x00"

    coff = E_LFANEW + 4
    struct.pack_into("<H", headers, coff, 0x8664)
    struct.pack_into(
        "<H", headers, coff + 2,
        len(sections) if section_count is None else section_count,
    )
    struct.pack_into("<H", headers, coff + 16, OPTIONAL_HEADER_SIZE)

    optional = coff + FILE_HEADER_SIZE
    struct.pack_into("<H", headers, optional, 0x20B)
    dirs = optional + OPTIONAL_HEADER_DATA_DIRECTORIES
    struct.pack_into("<II", headers, dirs, *export_dir)
    struct.pack_into("<II", headers, dirs + 8, *import_dir)

    for i, (name, va, vsize, raw) in enumerate(sections):
        off = SECTION_TABLE_OFFSET + i * SECTION_HEADER_SIZE
        headers[off:off + 8] = name.encode("ascii").ljust(8, b"\x00")[:8]
        struct.pack_into("<IIII", headers, off + 8, vsize, va, len(body.data), raw)

    return bytes(headers) + bytes(body.data)


@pytest.fixture
def make_pe():
    """Provide :func:`build_pe` to tests."""
    return build_pe


@pytest.fixture
def kernel32_image() -> bytes:
    """Image importing ``ExitProcess`` and one ordinal from KERNEL32.dll."""
    return build_pe(imports=[("KERNEL32.dll", ["ExitProcess", 17])])


@pytest.fixture
def sample_image() -> bytes:
    """Image with both exports and imports from two libraries."""
    return build_pe(
        exports=["Zeta", "Alpha", "Mid"],
        imports=[
            ("KERNEL32.dll", ["GetStdHandle", "WriteFile", 3]),
            ("USER32.dll", ["MessageBoxA"]),
        ],
    )


@pytest.fixture
def pe_file(tmp_path, sample_image):
    """Write :func:`sample_image` to disk and return its path."""
    path = tmp_path / "sample.dll"
    path.write_bytes(sample_image)
    return path
