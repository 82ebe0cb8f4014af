#!/usr/bin/env python3
"""
mathsinterp - Maths Expression Interpreter

Main entry point for the interpreter application.
This file serves as a thin wrapper that delegates all functionality
to the mathsinterp_pkg package.

Usage:
    python mathsinterp.py                    # Interactive REPL
    python mathsinterp.py -e "2+2"           # Evaluate expression
    python mathsinterp.py --help             # Show help
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entry point for mathsinterp.

    Delegates all functionality to the mathsinterp_pkg.cli module,
    which handles argument parsing, evaluation, and output formatting.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        from mathsinterp_pkg.cli import main_entry

        return main_entry(sys.argv[1:])
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 1
    except ImportError as e:
        print(f"Error: Failed to import mathsinterp_pkg: {e}")
        print("Please ensure all dependencies are installed: pip install -e .")
        return 1


if __name__ == "__main__":
    sys.exit(main())
