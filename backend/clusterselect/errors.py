"""
Errors raised by the cluster selector.

No-match is not an error: an expression that evaluates to anything other
than ``True`` yields a plain ``False``.
"""

from __future__ import annotations

from typing import Optional


class SelectorError(Exception):
    """Base class for cluster selector failures."""


class ConstructionError(SelectorError):
    """The expression environment could not be built."""


class CompileError(SelectorError):
    """An expression failed to parse or referenced something undeclared."""

    def __init__(self, expression: str, cause: Optional[BaseException] = None):
        self.expression = expression
        self.cause = cause
        super().__init__(f"failed to compile CEL expression '{expression}': {cause}")


class EvaluationError(SelectorError):
    """An expression compiled but failed while executing."""

    def __init__(self, expression: str, cause: Optional[BaseException] = None):
        self.expression = expression
        self.cause = cause
        super().__init__(f"CEL evaluation error: {cause}")


class NotFoundError(LookupError):
    """A score set does not exist for the requested cluster."""

    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        super().__init__(
            f'addonplacementscores.cluster.open-cluster-management.io "{name}" '
            f'not found in namespace "{namespace}"'
        )
