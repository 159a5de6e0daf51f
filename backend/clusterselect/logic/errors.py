"""
Errors raised by the expression runtime.
"""

from __future__ import annotations

from typing import Tuple


def location(expression: str, position: int) -> Tuple[int, int]:
    """Return the 1-based (line, column) of an offset in the expression."""
    line = expression.count("\n", 0, position) + 1
    line_start = expression.rfind("\n", 0, position) + 1
    return line, position - line_start + 1


class ExpressionError(ValueError):
    """An expression was rejected before evaluation."""

    def __init__(self, message: str, position: int, expression: str):
        self.message = message
        self.position = position
        self.expression = expression
        line, column = location(expression, position)
        super().__init__(f"<input>:{line}:{column}: {message}")


class CheckError(ExpressionError):
    """An expression references an undeclared variable or function."""


class DeclarationError(ValueError):
    """A variable or function declaration is malformed."""


class EvalError(Exception):
    """Evaluation of a compiled expression failed."""
