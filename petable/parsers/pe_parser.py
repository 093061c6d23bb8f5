"""
PE/COFF Image Decoder
======================

Manual struct-based decoder for the Portable Executable (PE) format used
by Microsoft Windows for executables (.exe) and dynamic link libraries
(.dll).

All reads go through the bounded helpers in
:mod:`petable.parsers.reader`, so a truncated or hostile image produces a
:class:`~pekit.errors.PEFormatError` instead of an ``IndexError`` or a
silently wrong value.  :meth:`PEParser.parse` turns any such error into a
rejection of the whole image.

The decoder extracts:
    - PE signature verification (``e_lfanew`` at ``0x3C``)
    - COFF file header (section count)
    - Optional header data directories (export = 0, import = 1)
    - Section table (RVA -> file offset map)
    - Export name table
    - Import descriptors and their lookup tables

Header layout is fixed: a 240-byte optional header with its 16 data
directories at ``0x70`` and 8-byte lookup entries.  There is no branch on
the optional-header magic.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
      https://learn.microsoft.com/en-us/windows/win32/debug/pe-format
    - Pietrek, M. (1994). Peering Inside the PE: A Tour of the Win32
      Portable Executable File Format. Microsoft Systems Journal.
"""

from __future__ import annotations

from pekit.errors import NotPEError, OutOfBoundsError, PEFormatError, UnmappedRVAError
from pekit.logger import PETableLogger

from petable.core.models import ImportEntry, SectionInfo
from petable.parsers.reader import (
    Buffer,
    ByteView,
    Cursor,
    read_cstring,
    read_i32,
    read_u32_be,
)


# ---------------------------------------------------------------------------
# PE Constants
# ---------------------------------------------------------------------------

E_LFANEW_OFFSET: int = 0x3C
NT_SIGNATURE: int = 0x50450000  # "PE\0\0" read big-endian
NT_SIGNATURE_SIZE: int = 4

# Fixed record sizes
FILE_HEADER_SIZE: int = 20
OPTIONAL_HEADER_SIZE: int = 240
SECTION_HEADER_SIZE: int = 40
EXPORT_DIRECTORY_READ_SIZE: int = 36  # 40-byte record, read through AddressOfNames
IMPORT_DESCRIPTOR_SIZE: int = 20
LOOKUP_ENTRY_SIZE: int = 8
EXPORT_NAME_POINTER_SIZE: int = 4
HINT_SIZE: int = 2

# Field offsets inside the fixed records
FILE_HEADER_NUMBER_OF_SECTIONS: int = 0x02
OPTIONAL_HEADER_DATA_DIRECTORIES: int = 0x70
SECTION_NAME_SIZE: int = 8
SECTION_VIRTUAL_SIZE: int = 0x08
SECTION_VIRTUAL_ADDRESS: int = 0x0C
SECTION_POINTER_TO_RAW_DATA: int = 0x14
EXPORT_NUMBER_OF_NAMES: int = 24
EXPORT_ADDRESS_OF_NAMES: int = 32
IMPORT_LOOKUP_TABLE_RVA: int = 0x00
IMPORT_NAME_RVA: int = 0x0C

NUMBER_OF_DIRECTORY_ENTRIES: int = 16
DATA_DIRECTORY_SIZE: int = 8

# Data directory indices
IMAGE_DIRECTORY_ENTRY_EXPORT: int = 0
IMAGE_DIRECTORY_ENTRY_IMPORT: int = 1

# Lookup entry flag: import by ordinal, no name to recover
IMAGE_ORDINAL_FLAG64: int = 1 << 63


# ---------------------------------------------------------------------------
# Internal parsed structures
# ---------------------------------------------------------------------------

class _FileHeader:
    """Parsed COFF file header; only the section count is used."""
    __slots__ = ("number_of_sections",)

    def __init__(self, view: ByteView) -> None:
        self.number_of_sections: int = view.u16(FILE_HEADER_NUMBER_OF_SECTIONS)


class _DataDirectory:
    """An ``(rva, size)`` pair from the optional header."""
    __slots__ = ("rva", "size")

    def __init__(self, view: ByteView) -> None:
        self.rva: int = view.u32(0)
        self.size: int = view.u32(4)

    @property
    def is_absent(self) -> bool:
        return self.rva == 0 and self.size == 0


class _OptionalHeader:
    """Parsed optional header; only the data directory array is used."""
    __slots__ = ("data_directories",)

    def __init__(self, view: ByteView) -> None:
        self.data_directories: list[_DataDirectory] = [
            _DataDirectory(view.sub(
                OPTIONAL_HEADER_DATA_DIRECTORIES + i * DATA_DIRECTORY_SIZE,
                DATA_DIRECTORY_SIZE,
            ))
            for i in range(NUMBER_OF_DIRECTORY_ENTRIES)
        ]


class _SectionHeader:
    """Parsed section header: the part of it that maps RVAs to offsets."""
    __slots__ = ("name", "virtual_size", "virtual_address", "pointer_to_raw_data")

    def __init__(self, view: ByteView) -> None:
        raw_name = bytes(view.data[view.offset:view.offset + SECTION_NAME_SIZE])
        self.name: str = raw_name.split(b"\x00", 1)[0].decode("ascii", errors="replace")
        self.virtual_size: int = view.u32(SECTION_VIRTUAL_SIZE)
        self.virtual_address: int = view.u32(SECTION_VIRTUAL_ADDRESS)
        self.pointer_to_raw_data: int = view.u32(SECTION_POINTER_TO_RAW_DATA)

    def contains(self, rva: int) -> bool:
        return self.virtual_address <= rva < self.virtual_address + self.virtual_size


class _ImportDescriptor:
    """IMAGE_IMPORT_DESCRIPTOR fields needed to walk one library."""
    __slots__ = ("lookup_table_rva", "name_rva")

    def __init__(self, view: ByteView) -> None:
        self.lookup_table_rva: int = view.u32(IMPORT_LOOKUP_TABLE_RVA)
        self.name_rva: int = view.u32(IMPORT_NAME_RVA)


# ---------------------------------------------------------------------------
# Signature check
# ---------------------------------------------------------------------------

def is_pe(data: Buffer) -> bool:
    """Return ``True`` if *data* carries the ``PE\\0\\0`` signature.

    Reads ``e_lfanew`` at ``0x3C`` and compares the four bytes it points at
    with :data:`NT_SIGNATURE`.  Truncated input, a negative ``e_lfanew`` or
    a pointer past the end of the buffer all answer ``False``; this
    function never raises on malformed input.
    """
    try:
        e_lfanew = read_i32(data, E_LFANEW_OFFSET)
        return read_u32_be(data, e_lfanew) == NT_SIGNATURE
    except OutOfBoundsError:
        return False


# ---------------------------------------------------------------------------
# PE Parser
# ---------------------------------------------------------------------------

class PEParser:
    """Single-pass PE decoder exposing the export and import tables.

    The parser keeps a reference to the caller's buffer and never copies
    it.  Header parsing and both table walks happen inside :meth:`parse`;
    any structural error rejects the whole image.

    Usage::

        parser = PEParser(raw_bytes)
        if parser.parse():
            exports = parser.get_exports()
            imports = parser.get_imports()
    """

    def __init__(self, data: Buffer, logger: PETableLogger | None = None) -> None:
        """Initialise the parser with raw binary data.

        Args:
            data: Complete PE file contents.
            logger: Logger instance.  Defaults to the shared decoder logger.
        """
        self._data: Buffer = data
        self._logger: PETableLogger = logger or _default_logger()
        self._file_header: _FileHeader | None = None
        self._optional_header: _OptionalHeader | None = None
        self._sections: list[_SectionHeader] = []
        self._exports: list[str] = []
        self._imports: list[ImportEntry] = []
        self._parsed: bool = False
        self._error: str = ""

    # ------------------------------------------------------------------ #
    #  Public interface
    # ------------------------------------------------------------------ #

    def parse(self) -> bool:
        """Decode headers and both tables.

        Returns:
            ``True`` on success, ``False`` if the buffer is not a PE image
            or any header or table is malformed.  The reason is available
            from :attr:`error`.
        """
        self._error = ""
        try:
            self.parse_or_raise()
        except NotPEError as exc:
            self._error = str(exc)
            self._logger.debug("Rejected image: %s", exc)
            return False
        return True

    def parse_or_raise(self) -> None:
        """Like :meth:`parse` but raise instead of returning ``False``.

        Raises:
            NotPEError: If the signature check fails.
            PEFormatError: If a header or table is malformed.
        """
        if not is_pe(self._data):
            raise NotPEError("No PE signature at e_lfanew")

        self._reset()
        try:
            self._parse_headers()
            with self._logger.operation("export_table"):
                self._exports = self._build_export_table()
            with self._logger.operation("import_table"):
                self._imports = self._build_import_table()
        except PEFormatError:
            self._reset()
            raise
        self._parsed = True

    @property
    def error(self) -> str:
        """Reason the last :meth:`parse` call rejected the image."""
        return self._error

    @property
    def section_count(self) -> int:
        self._require_parsed()
        assert self._file_header is not None
        return self._file_header.number_of_sections

    def get_sections(self) -> list[SectionInfo]:
        """Return the section table in file order."""
        self._require_parsed()
        return [
            SectionInfo(
                name=sec.name,
                virtual_address=sec.virtual_address,
                virtual_size=sec.virtual_size,
                raw_offset=sec.pointer_to_raw_data,
            )
            for sec in self._sections
        ]

    def get_exports(self) -> list[str]:
        """Return exported names in name-pointer-array order."""
        self._require_parsed()
        return list(self._exports)

    def get_imports(self) -> list[ImportEntry]:
        """Return per-library named imports in descriptor order."""
        self._require_parsed()
        return [entry.model_copy(deep=True) for entry in self._imports]

    def rva_to_offset(self, rva: int) -> int:
        """Convert a Relative Virtual Address to a file offset.

        Scans the section table in order and uses the first section whose
        ``[virtual_address, virtual_address + virtual_size)`` range contains
        *rva*.

        Raises:
            UnmappedRVAError: If no section contains *rva*.
        """
        for sec in self._sections:
            if sec.contains(rva):
                return sec.pointer_to_raw_data + (rva - sec.virtual_address)
        raise UnmappedRVAError(rva)

    # ------------------------------------------------------------------ #
    #  Headers
    # ------------------------------------------------------------------ #

    def _parse_headers(self) -> None:
        """Parse the file header, optional header and section table.

        Records are consumed back to back starting right after the
        signature; the optional header is always taken as 240 bytes.
        """
        e_lfanew = read_i32(self._data, E_LFANEW_OFFSET)
        cursor = Cursor(self._data, e_lfanew + NT_SIGNATURE_SIZE)

        self._file_header = _FileHeader(cursor.take(FILE_HEADER_SIZE))
        self._optional_header = _OptionalHeader(cursor.take(OPTIONAL_HEADER_SIZE))

        for _ in range(self._file_header.number_of_sections):
            self._sections.append(_SectionHeader(cursor.take(SECTION_HEADER_SIZE)))

        self._logger.debug(
            "Parsed headers: e_lfanew=0x%x sections=%d",
            e_lfanew,
            self._file_header.number_of_sections,
        )
        for sec in self._sections:
            self._logger.debug(
                "Section %-8s va=0x%x vsize=0x%x raw=0x%x",
                sec.name, sec.virtual_address, sec.virtual_size,
                sec.pointer_to_raw_data,
            )

    def _directory(self, index: int) -> _DataDirectory:
        assert self._optional_header is not None
        return self._optional_header.data_directories[index]

    # ------------------------------------------------------------------ #
    #  Export directory
    # ------------------------------------------------------------------ #

    def _build_export_table(self) -> list[str]:
        """Walk the export name pointer table."""
        directory = self._directory(IMAGE_DIRECTORY_ENTRY_EXPORT)
        if directory.is_absent:
            self._logger.debug("No export directory")
            return []

        descriptor = ByteView(
            self._data, self.rva_to_offset(directory.rva), EXPORT_DIRECTORY_READ_SIZE,
        )
        number_of_names = descriptor.u32(EXPORT_NUMBER_OF_NAMES)
        names_rva = descriptor.u32(EXPORT_ADDRESS_OF_NAMES)
        self._logger.debug("Export directory: %d name(s)", number_of_names)

        # Ordinal-only export tables may leave AddressOfNames unset
        if number_of_names == 0:
            return []

        pointers = ByteView(
            self._data,
            self.rva_to_offset(names_rva),
            number_of_names * EXPORT_NAME_POINTER_SIZE,
        )
        names: list[str] = []
        for i in range(number_of_names):
            name_rva = pointers.u32(i * EXPORT_NAME_POINTER_SIZE)
            names.append(read_cstring(self._data, self.rva_to_offset(name_rva)))
        return names

    # ------------------------------------------------------------------ #
    #  Import directory
    # ------------------------------------------------------------------ #

    def _build_import_table(self) -> list[ImportEntry]:
        """Walk the import descriptor array up to its all-zero terminator."""
        directory = self._directory(IMAGE_DIRECTORY_ENTRY_IMPORT)
        if directory.is_absent:
            self._logger.debug("No import directory")
            return []

        cursor = Cursor(self._data, self.rva_to_offset(directory.rva))
        entries: list[ImportEntry] = []
        while True:
            record = cursor.take(IMPORT_DESCRIPTOR_SIZE)
            if record.is_zero():
                break
            entries.append(self._build_import_entry(_ImportDescriptor(record)))

        self._logger.debug("Import directory: %d librar(ies)", len(entries))
        return entries

    def _build_import_entry(self, descriptor: _ImportDescriptor) -> ImportEntry:
        """Walk one lookup table, then read the owning library's name.

        Each lookup entry is either an ordinal reference (bit 63 set,
        skipped) or the RVA of a 2-byte hint followed by the name.
        """
        cursor = Cursor(self._data, self.rva_to_offset(descriptor.lookup_table_rva))
        functions: list[str] = []
        while True:
            record = cursor.take(LOOKUP_ENTRY_SIZE)
            if record.is_zero():
                break
            value = record.u64(0)
            if value & IMAGE_ORDINAL_FLAG64:
                continue
            hint_offset = self.rva_to_offset(value & 0xFFFFFFFF)
            functions.append(read_cstring(self._data, hint_offset + HINT_SIZE))

        library = read_cstring(self._data, self.rva_to_offset(descriptor.name_rva))
        self._logger.debug("%s: %d named import(s)", library, len(functions))
        return ImportEntry(library=library, functions=functions)

    # ------------------------------------------------------------------ #
    #  Utility methods
    # ------------------------------------------------------------------ #

    def _reset(self) -> None:
        self._file_header = None
        self._optional_header = None
        self._sections = []
        self._exports = []
        self._imports = []
        self._parsed = False

    def _require_parsed(self) -> None:
        if not self._parsed:
            raise NotPEError("Image has not been decoded")


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------

def decode(data: Buffer, logger: PETableLogger | None = None) -> PEParser | None:
    """Decode *data* in one pass.

    Returns:
        The parsed :class:`PEParser`, or ``None`` if the buffer is rejected.
    """
    parser = PEParser(data, logger=logger)
    return parser if parser.parse() else None


def _default_logger() -> PETableLogger:
    if not hasattr(_default_logger, "_cached"):
        _default_logger._cached = PETableLogger("decoder", log_level="WARNING")  # type: ignore[attr-defined]
    return _default_logger._cached  # type: ignore[attr-defined]
