from __future__ import annotations

import argparse
import json
import re
from typing import Any

from .api import Session
from .config import VERSION
from .lexer import count_operator, tokenize
from .logging_config import get_logger, setup_logging
from .parser import format_number, split_statements
from .types import MathsError, TokenKind

logger = get_logger("cli")

_NUMBER = r"-?(?:\d+(?:\.\d*)?|\.\d+)"
PLOT_ARGS_RE = re.compile(rf"^(?P<expr>.+?)(?:\s+(?P<lo>{_NUMBER})\s+(?P<hi>{_NUMBER})(?:\s+(?P<step>{_NUMBER}))?)?$")
TANGENT_ARGS_RE = re.compile(rf"^(?P<expr>.+)\s+at\s+(?P<x0>{_NUMBER})$")


def _health_check() -> int:
    """Run health check to verify dependencies and basic operations.

    Returns:
        Exit code (0 for success, non-zero for failures)
    """
    checks_passed = 0
    checks_failed = 0

    print("Running mathsinterp health check...")
    print("-" * 50)

    try:
        import sympy as sp

        print(f"[OK] SymPy {sp.__version__} imported successfully")
        checks_passed += 1
    except ImportError as e:
        print(f"[FAIL] SymPy import failed: {e}")
        checks_failed += 1

    session = Session()

    res = session.evaluate("2 + 2")
    if res.ok and res.result == 4:
        print("[OK] Basic evaluation works")
        checks_passed += 1
    else:
        print(f"[FAIL] Evaluation check failed: {res}")
        checks_failed += 1

    solved = session.solve("x + 1 = 0")
    if solved.ok and solved.solution == -1:
        print("[OK] Basic solving works")
        checks_passed += 1
    else:
        print(f"[FAIL] Solving check failed: {solved}")
        checks_failed += 1

    derived = session.differentiate("x^2")
    if derived.ok and derived.result == "2*x":
        print("[OK] Differentiation works")
        checks_passed += 1
    else:
        print(f"[FAIL] Differentiation check failed: {derived}")
        checks_failed += 1

    try:
        import numpy

        print(f"[OK] NumPy {numpy.__version__} available")
        checks_passed += 1
    except ImportError:
        print("[FAIL] NumPy not available (sampling and range inference need it)")
        print("  To install: pip install numpy")
        checks_failed += 1

    try:
        import matplotlib

        print(f"[OK] Matplotlib {matplotlib.__version__} available")
        checks_passed += 1
    except ImportError:
        print("[WARN] Matplotlib not available (PNG plots disabled, --ascii still works)")
        print("  To install: pip install matplotlib")

    print("-" * 50)
    print(f"Results: {checks_passed} passed, {checks_failed} failed")

    if checks_failed > 0:
        print("\n[WARN] Some health checks failed. Core functionality may be impaired.")
        return 1

    print("\n[OK] All health checks passed!")
    return 0


def classify_input(text: str) -> str:
    """Decide whether a line is evaluated ("evaluate") or solved ("solve").

    A line is solved when some comma-separated part contains '=' but is not
    a plain assignment ``name = expr``. Input that does not tokenize is left
    to the evaluator, which reports the error.
    """
    try:
        tokens = tokenize(text)
    except MathsError:
        return "evaluate"
    if count_operator(tokens, "=") == 0:
        return "evaluate"
    for part in split_statements(tokens):
        equals = count_operator(part, "=")
        if equals == 0:
            continue
        is_assignment = (
            equals == 1
            and part[0].kind is TokenKind.IDENTIFIER
            and part[1].kind is TokenKind.OPERATOR
            and part[1].value == "="
        )
        if not is_assignment:
            return "solve"
    return "evaluate"


def print_result_pretty(res: dict[str, Any], output_format: str = "human", precision: int | None = None) -> None:
    """Print result in specified format.

    Args:
        res: Result dictionary (from a result object's ``to_dict()``)
        output_format: "json" for JSON output, "human" for human-readable
        precision: Significant digits for numbers in human output
    """
    if output_format == "json":
        print(json.dumps(res, indent=2, ensure_ascii=False))
        return
    if not res.get("ok"):
        print("Error:", res.get("error"))
        return

    def num(value: float) -> str:
        return format_number(value, precision)

    typ = res.get("type", "value")
    if typ == "value":
        assigned = res.get("assigned")
        if assigned:
            print(f"{assigned} = {num(res['result'])}")
        else:
            print(num(res["result"]))
    elif typ == "equation":
        variable = res.get("variable")
        if variable:
            print(f"{variable} = {num(res['solution'])}")
        else:
            print(num(res["solution"]))
    elif typ == "derivative":
        print(f"d/d{res['variable']}: {res['result']}")
    elif typ == "tangent":
        print(f"y = {num(res['slope'])}*x + {num(res['intercept'])}".replace("+ -", "- "))
    elif typ == "samples":
        if res.get("inferred"):
            print(f"Range inferred: [{num(res['x_min'])}, {num(res['x_max'])}]")
        for x, y in res.get("points", []):
            print(f"{num(x)}\t{num(y)}")
    elif typ == "plot":
        if res.get("renderer") == "ascii":
            print(res["output"])
        else:
            print(f"Plot saved to {res['output']}")
        tangent = res.get("tangent")
        if tangent:
            print(f"Tangent: y = {num(tangent[0])}*x + {num(tangent[1])}".replace("+ -", "- "))
    else:
        print(res)


def print_symbols(session: Session, output_format: str = "human", precision: int | None = None) -> None:
    entries = session.get_symbols()
    if output_format == "json":
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return
    if not entries:
        print("No variables defined.")
        return
    for entry in entries:
        print(f"{entry.name} = {format_number(entry.value, precision)}  ({entry.type.value})")


def process_line(session: Session, raw: str, ascii_plots: bool = True) -> Any | None:
    """Run one REPL line and return its result object.

    Returns None when the line was a malformed command (usage is printed).
    A keyword followed by "=" is an ordinary assignment (``plot = 3``).
    """
    logger.debug("input: %r", raw)
    command, _, rest = raw.partition(" ")
    rest = rest.strip()
    lowered = command.lower() if rest and not rest.startswith("=") else ""

    if lowered == "diff":
        return session.differentiate(rest)
    if lowered == "solve":
        return session.solve(rest)
    if lowered == "plot":
        match = PLOT_ARGS_RE.match(rest)
        lo, hi, step = (
            float(value) if value is not None else None
            for value in match.group("lo", "hi", "step")
        )
        return session.plot(match.group("expr"), x_min=lo, x_max=hi, step=step, ascii=ascii_plots)
    if lowered == "tangent":
        match = TANGENT_ARGS_RE.match(rest)
        if match is None:
            print("Usage: tangent <expr> at <x0>")
            return None
        return session.tangent(match.group("expr"), float(match.group("x0")))

    if classify_input(raw) == "solve":
        return session.solve(raw)
    return session.evaluate(raw)


def repl_loop(session: Session | None = None, output_format: str = "human", precision: int | None = None) -> None:
    """Interactive REPL loop with graceful interrupt handling."""
    try:
        import readline  # noqa: F401
    except ImportError:
        # readline not available on Windows - that's fine
        pass

    session = session or Session()
    print(f"mathsinterp {VERSION} - type 'help' for commands, 'quit' to exit.")

    while True:
        try:
            raw = input(">>> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break
        if not raw:
            continue

        lowered = raw.lower()
        if lowered in ("quit", "exit"):
            print("Goodbye.")
            break
        if lowered == "help":
            print_help_text()
            continue
        if lowered == "vars":
            print_symbols(session, output_format, precision)
            continue
        if lowered == "clear":
            session.clear_symbols()
            print("All variables cleared.")
            continue

        res = process_line(session, raw)
        if res is not None:
            print_result_pretty(res.to_dict(), output_format, precision)


def print_help_text() -> None:
    """Print help text for REPL commands."""
    print(
        f"""mathsinterp version {VERSION}

BASIC USAGE (one-line input):
  2+3*4, (2+3)*4, 2^3^2, sqrt(16), sin(pi/2)   evaluate
  x = 5                                        assign (x is then listed by 'vars')
  a = 2, b = a + 3                             chained statements, left to right
  2*x + 4 = 0                                  solve a linear equation

Operators: + - * / ^ and unary minus (-2^2 is (-2)^2 = 4)
Functions: sin cos tan asin acos atan sqrt ln log exp abs (log is base 10)
Constants: pi, e
Identifiers are a letter followed by letters/digits; '2x' is an error, write '2*x'.

COMMANDS:
  vars                               list variables with value and type
  clear                              remove all variables
  diff <expr>                        derivative with respect to x
  solve <equation>                   solve for the single unknown
  plot <expr> [xmin xmax [step]]     ASCII plot (range inferred when omitted)
  tangent <expr> at <x0>             tangent line y = m*x + c at x0
  help                               show this text
  quit, exit                         leave the REPL"""
    )


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for the mathsinterp CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = argparse.ArgumentParser(prog="mathsinterp")
    parser.add_argument(
        "-e",
        "--eval",
        type=str,
        help="Evaluate one expression, assignment or equation and exit",
        dest="eval_expr",
    )
    parser.add_argument("--solve", type=str, help="Solve a linear equation and exit")
    parser.add_argument("--diff", type=str, help="Differentiate an expression and exit")
    parser.add_argument("--plot", type=str, help="Plot an expression and exit")
    parser.add_argument("--var", type=str, default=None, help="Variable for --solve/--diff/--plot")
    parser.add_argument("--x-min", type=float, help="Plot range start (inferred when omitted)")
    parser.add_argument("--x-max", type=float, help="Plot range end (inferred when omitted)")
    parser.add_argument("--step", type=float, help="Plot sampling step")
    parser.add_argument("--tangent-at", type=float, help="Overlay the tangent line at this x")
    parser.add_argument("--ascii", action="store_true", help="Render the plot as ASCII text")
    parser.add_argument("--output", type=str, help="PNG output path for --plot")
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "human"],
        default="human",
        help="Output format: json (machine-readable) or human (human-readable)",
    )
    parser.add_argument(
        "-p", "--precision", type=int, help="Set output precision (significant digits)"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show program version"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Run health check and verify dependencies",
    )
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file)
    output_format = args.format
    precision = args.precision if args.precision and args.precision > 0 else None

    if args.version:
        print(VERSION)
        return 0
    if args.health_check:
        return _health_check()

    session = Session()
    variable = args.var
    res = None
    if args.eval_expr is not None:
        expr = args.eval_expr.strip()
        if classify_input(expr) == "solve":
            res = session.solve(expr, variable)
        else:
            res = session.evaluate(expr)
    elif args.solve is not None:
        res = session.solve(args.solve, variable)
    elif args.diff is not None:
        res = session.differentiate(args.diff, variable or "x")
    elif args.plot is not None:
        res = session.plot(
            args.plot,
            x_min=args.x_min,
            x_max=args.x_max,
            step=args.step,
            tangent_at=args.tangent_at,
            ascii=args.ascii,
            output_path=args.output,
            variable=variable or "x",
        )

    if res is not None:
        print_result_pretty(res.to_dict(), output_format, precision)
        return 0 if res.ok else 1

    repl_loop(session, output_format, precision)
    return 0


if __name__ == "__main__":
    """Allow running the CLI module directly with python -m mathsinterp_pkg.cli"""
    import sys

    sys.exit(main_entry())
