"""
PETable Kit
============

Common infrastructure used by the PETable decoder and its CLI:
configuration, console presentation, structured logging and the
exception hierarchy.
"""

from pekit.config import PETableConfig

__all__ = ["PETableConfig"]
