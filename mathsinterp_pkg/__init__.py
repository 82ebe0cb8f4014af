"""Maths interpreter package: lexer, parser/evaluator, solver, differentiator, sampler and CLI."""

__all__ = [
    "config",
    "lexer",
    "nodes",
    "parser",
    "evaluator",
    "symbols",
    "solver",
    "calculus",
    "plotting",
    "cli",
    "types",
    "api",
    "logging_config",
]

# Public API exports

__api_exports__ = [
    "Session",
    "evaluate",
    "get_symbols",
    "clear_symbols",
    "solve",
    "differentiate",
    "sample_points",
    "tangent",
    "plot",
    "validate_expression",
]
