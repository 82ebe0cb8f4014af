"""Centralized configuration for the maths interpreter.

This module defines:
- Input validation limits (length, parse depth)
- Cache sizes for tokenization
- Output formatting precision
- Plot sampling defaults and the range inference window
- Reserved function names and built-in constants

Configuration can be overridden via:
- CLI flags (see cli.py)
- Environment variables (prefixed with MATHSINTERP_)
"""

import math
import os
import re

try:
    import importlib.metadata

    VERSION = importlib.metadata.version("mathsinterp")
except Exception:
    # Fallback if package not installed
    VERSION = "1.0.0"

# Input validation limits
MAX_INPUT_LENGTH = int(os.getenv("MATHSINTERP_MAX_INPUT_LENGTH", "10000"))  # characters
MAX_EXPRESSION_DEPTH = int(
    os.getenv("MATHSINTERP_MAX_EXPRESSION_DEPTH", "100")
)  # nested parse levels

# Cache configuration
CACHE_SIZE_PARSE = int(os.getenv("MATHSINTERP_CACHE_SIZE_PARSE", "1024"))

# Output formatting
OUTPUT_PRECISION = int(os.getenv("MATHSINTERP_OUTPUT_PRECISION", "10"))

# Numeric tolerance used when comparing floating point results
NUMERIC_TOLERANCE = float(os.getenv("MATHSINTERP_NUMERIC_TOLERANCE", "1e-12"))

# Plot sampling configuration
DEFAULT_X_MIN = float(os.getenv("MATHSINTERP_DEFAULT_X_MIN", "-10"))
DEFAULT_X_MAX = float(os.getenv("MATHSINTERP_DEFAULT_X_MAX", "10"))
DEFAULT_SAMPLE_COUNT = int(
    os.getenv("MATHSINTERP_DEFAULT_SAMPLE_COUNT", "201")
)  # points used when no step is given
INFERENCE_GRID_POINTS = int(
    os.getenv("MATHSINTERP_INFERENCE_GRID_POINTS", "401")
)  # grid used to look for roots/extrema
MIN_INFERENCE_PAD = float(os.getenv("MATHSINTERP_MIN_INFERENCE_PAD", "5.0"))
MAX_SAMPLE_POINTS = int(os.getenv("MATHSINTERP_MAX_SAMPLE_POINTS", "100000"))

# Function names recognised by the lexer when followed by "("
RESERVED_FUNCTIONS = frozenset(
    {
        "sin",
        "cos",
        "tan",
        "asin",
        "acos",
        "atan",
        "sqrt",
        "ln",
        "log",
        "exp",
        "abs",
    }
)

# Names that resolve to a value when the symbol table has no binding for them
BUILTIN_CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}

VAR_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
