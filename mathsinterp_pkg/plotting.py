"""Sampling of single-variable expressions, tangent lines and plot rendering.

Range inference policy: bounds are used as given only when both are finite
and ``x_min < x_max``. Otherwise both are replaced by an inferred window:
the expression is scanned on a grid over [DEFAULT_X_MIN, DEFAULT_X_MAX];
every sign change of y (a root) and of its discrete slope (an extremum)
is a feature; with no features the default window is used, otherwise the
window spans the features padded by max(half their spread, MIN_INFERENCE_PAD).
A missing, non-finite or non-positive step gives DEFAULT_SAMPLE_COUNT points.
"""

from __future__ import annotations

import math
import tempfile
from collections import ChainMap
from collections.abc import Mapping
from typing import NamedTuple

import numpy as np

try:
    # Set non-GUI backend before importing pyplot to avoid Tkinter issues
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from .calculus import derive
from .config import (
    DEFAULT_SAMPLE_COUNT,
    DEFAULT_X_MAX,
    DEFAULT_X_MIN,
    INFERENCE_GRID_POINTS,
    MAX_SAMPLE_POINTS,
    MIN_INFERENCE_PAD,
)
from .evaluator import evaluate
from .logging_config import get_logger
from .nodes import Node, to_latex, to_string
from .types import EvalError, SamplePoint, ValidationError

logger = get_logger("plotting")


class Domain(NamedTuple):
    x_min: float
    x_max: float
    step: float
    inferred: bool


def _usable(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def _value_at(node: Node, env: Mapping[str, float], variable: str, x: float) -> float:
    """Evaluate ``node`` with ``variable`` bound to ``x`` in a throwaway overlay."""
    return evaluate(node, ChainMap({variable: x}, env))


def _scan(node: Node, env: Mapping[str, float], variable: str, xs: np.ndarray) -> np.ndarray:
    overlay: dict[str, float] = {}
    scope = ChainMap(overlay, env)
    ys = np.full(len(xs), np.nan)
    for i, x in enumerate(xs):
        overlay[variable] = float(x)
        try:
            ys[i] = evaluate(node, scope)
        except EvalError:
            continue
    ys[~np.isfinite(ys)] = np.nan
    return ys


def _sign_changes(values: np.ndarray) -> np.ndarray:
    """Indices i where values[i] and values[i + 1] are finite with opposite signs."""
    signs = np.sign(values)
    left, right = signs[:-1], signs[1:]
    mask = np.isfinite(left) & np.isfinite(right) & (left * right < 0)
    return np.nonzero(mask)[0]


def infer_range(node: Node, env: Mapping[str, float], variable: str = "x") -> tuple[float, float]:
    """Pick a plotting window around the roots and extrema of ``node``."""
    xs = np.linspace(DEFAULT_X_MIN, DEFAULT_X_MAX, INFERENCE_GRID_POINTS)
    ys = _scan(node, env, variable, xs)

    features: list[float] = []
    features.extend(xs[np.nonzero(ys == 0)[0]])
    roots = _sign_changes(ys)
    features.extend((xs[roots] + xs[roots + 1]) / 2)
    extrema = _sign_changes(np.diff(ys))
    features.extend(xs[extrema + 1])

    if not features:
        return DEFAULT_X_MIN, DEFAULT_X_MAX
    lo, hi = float(min(features)), float(max(features))
    pad = max((hi - lo) / 2, MIN_INFERENCE_PAD)
    return lo - pad, hi + pad


def resolve_domain(
    node: Node,
    env: Mapping[str, float],
    x_min: float | None = None,
    x_max: float | None = None,
    step: float | None = None,
    variable: str = "x",
) -> Domain:
    """Apply the range inference policy to the caller's bounds and step."""
    inferred = not (_usable(x_min) and _usable(x_max) and x_min < x_max)
    if inferred:
        x_min, x_max = infer_range(node, env, variable)
        logger.debug("inferred range [%g, %g] for %s", x_min, x_max, to_string(node))
    if not (_usable(step) and step > 0):
        step = (x_max - x_min) / (DEFAULT_SAMPLE_COUNT - 1)
    return Domain(float(x_min), float(x_max), float(step), inferred)


def sample(
    node: Node,
    env: Mapping[str, float],
    x_min: float | None = None,
    x_max: float | None = None,
    step: float | None = None,
    variable: str = "x",
) -> tuple[list[SamplePoint], Domain]:
    """Evaluate ``node`` at ``x_min + i*step`` for every step inside the domain.

    ``env`` is only read: the sampling variable lives in a ChainMap overlay.
    Points whose evaluation fails or is not finite are skipped.

    Raises:
        ValidationError: TOO_MANY_POINTS when the domain holds more than
            MAX_SAMPLE_POINTS samples
    """
    domain = resolve_domain(node, env, x_min, x_max, step, variable)
    count = math.floor((domain.x_max - domain.x_min) / domain.step + 1e-9) + 1
    if count > MAX_SAMPLE_POINTS:
        raise ValidationError(
            f"Too many sample points ({count} > {MAX_SAMPLE_POINTS}); use a larger step",
            "TOO_MANY_POINTS",
        )

    overlay: dict[str, float] = {}
    scope = ChainMap(overlay, env)
    points: list[SamplePoint] = []
    skipped = 0
    for i in range(count):
        x = domain.x_min + i * domain.step
        overlay[variable] = x
        try:
            y = evaluate(node, scope)
        except EvalError:
            skipped += 1
            continue
        if not math.isfinite(y):
            skipped += 1
            continue
        points.append(SamplePoint(x, y))
    logger.debug("sampled %d point(s), skipped %d", len(points), skipped)
    return points, domain


def tangent_line(
    node: Node, x0: float, env: Mapping[str, float], variable: str = "x"
) -> tuple[float, float]:
    """Slope and intercept of the tangent to ``node`` at ``x0``.

    Raises:
        EvalError: When the expression or its derivative is undefined at x0
    """
    y0 = _value_at(node, env, variable, x0)
    slope = _value_at(derive(node, variable), env, variable, x0)
    return slope, y0 - slope * x0


def render_ascii(points: list[SamplePoint], x_min: float, x_max: float, rows: int = 20, cols: int = 60) -> str:
    """Draw sampled points as a character grid with axes."""
    if not points:
        raise EvalError("Cannot plot: no point of the expression is defined in range", "NO_POINTS")
    plot_chars = [[" " for _ in range(cols)] for _ in range(rows)]

    ys = [p.y for p in points]
    y_min, y_max = min(ys), max(ys)
    y_range = y_max - y_min if y_max != y_min else 1
    x_range = x_max - x_min if x_max != x_min else 1

    for x, y in points:
        col = int((x - x_min) / x_range * (cols - 1))
        row = int((y - y_min) / y_range * (rows - 1))
        col = max(0, min(cols - 1, col))
        row = max(0, min(rows - 1, row))
        plot_chars[row][col] = "*"

    x_axis_row = int((0 - y_min) / y_range * (rows - 1)) if y_min <= 0 <= y_max else -1
    y_axis_col = int((0 - x_min) / x_range * (cols - 1)) if x_min <= 0 <= x_max else -1

    lines = []
    for r in reversed(range(rows)):
        line = []
        for c in range(cols):
            if plot_chars[r][c] == "*":
                line.append("*")
            elif r == x_axis_row and c == y_axis_col:
                line.append("+")
            elif r == x_axis_row:
                line.append("-")
            elif c == y_axis_col:
                line.append("|")
            else:
                line.append(" ")
        lines.append("".join(line).rstrip())
    return "\n".join(lines)


def render_png(
    node: Node,
    points: list[SamplePoint],
    output_path: str | None = None,
    tangent: tuple[float, float] | None = None,
    tangent_at: float | None = None,
    variable: str = "x",
) -> str:
    """Save a matplotlib figure of the samples (and tangent) and return the file path."""
    if not HAS_MATPLOTLIB:
        raise ValidationError("matplotlib not installed. Use ascii=True for ASCII plot.", "NO_MATPLOTLIB")
    if not points:
        raise EvalError("Cannot plot: no point of the expression is defined in range", "NO_POINTS")

    xs = np.array([p.x for p in points])
    ys = np.array([p.y for p in points])
    plain = to_string(node)

    fig, ax = plt.subplots(figsize=(10, 6))
    try:
        ax.plot(xs, ys, linewidth=2, color="#2E86AB", label=f"f({variable}) = {plain}")
        if tangent is not None:
            slope, intercept = tangent
            ax.plot(
                xs,
                slope * xs + intercept,
                linewidth=1.5,
                linestyle="--",
                color="#E4572E",
                label=f"tangent at {variable} = {tangent_at:g}",
            )
        ax.set_xlabel(variable, fontsize=12, fontweight="bold")
        ax.set_ylabel(f"f({variable})", fontsize=12, fontweight="bold")
        ax.set_title(f"${to_latex(node)}$", fontsize=14)
        ax.grid(True, alpha=0.3, linestyle="--")
        ax.axhline(y=0, color="k", linewidth=0.8, alpha=0.3)
        ax.axvline(x=0, color="k", linewidth=0.8, alpha=0.3)
        ax.legend(loc="best", fontsize=10)

        if output_path is None:
            with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as temp_file:
                output_path = temp_file.name
        try:
            fig.tight_layout()
            fig.savefig(output_path, dpi=150, bbox_inches="tight")
        except ValueError:
            # mathtext could not lay out the LaTeX title
            ax.set_title(plain, fontsize=14)
            fig.tight_layout()
            fig.savefig(output_path, dpi=150, bbox_inches="tight")
    finally:
        plt.close(fig)
    logger.info("plot saved to %s", output_path)
    return output_path
