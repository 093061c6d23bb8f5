"""
PETable Module Entry Point
===========================

Allows running the PETable CLI via: python -m petable
"""

from petable.cli import main

if __name__ == "__main__":
    main()
