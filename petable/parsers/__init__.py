"""PE decoding: bounded byte readers and the header / table decoder."""

from petable.parsers.pe_parser import PEParser, decode, is_pe

__all__ = ["PEParser", "decode", "is_pe"]
