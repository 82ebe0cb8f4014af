"""Main entry point for running mathsinterp_pkg as a module.

This allows running the interpreter with:
    python -m mathsinterp_pkg
    python -m mathsinterp_pkg --health-check
    python -m mathsinterp_pkg -e "2+2"

This is equivalent to running:
    python -m mathsinterp_pkg.cli
    python mathsinterp.py
"""

from __future__ import annotations

import sys

from .cli import main_entry

if __name__ == "__main__":
    sys.exit(main_entry())
