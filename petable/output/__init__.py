"""
PETable Output
===============

Rich-based console display for decode results.
"""

from petable.output.console import PETableConsoleOutput

__all__ = ["PETableConsoleOutput"]
