"""
Reference checker.

Walks a parsed expression before it is evaluated and rejects references to
undeclared variables and functions, and calls that no declared overload can
accept by style (global or member), arity or statically known argument type.
"""

from __future__ import annotations

from typing import Any, FrozenSet, List, Mapping, Sequence

from .decls import BOOL, DOUBLE, DYN, INT, NULL, STRING, FunctionDecl, Type, list_type, map_type
from .errors import CheckError

_BOOLEAN_OPS = {"and", "or", "!", "==", "!=", "<", "<=", ">", ">=", "in", "has", "all", "exists", "exists_one"}


class Checker:
    """Checks parsed expressions against declared variables and functions."""

    def __init__(
        self,
        variables: Mapping[str, Type],
        functions: Mapping[str, Sequence[FunctionDecl]],
    ):
        self.variables = variables
        self.functions = functions

    def check(self, node: Any, expression: str) -> None:
        """
        Check a parsed expression.

        Raises:
            CheckError: On the first undeclared reference or unmatched call.
        """
        self._visit(node, frozenset(), expression)

    def _visit(self, node: Any, scope: FrozenSet[str], expression: str) -> None:
        if not isinstance(node, dict):
            return

        operator, args = next(iter(node.items()))

        if operator == "var":
            name, position = args
            if name not in scope and name not in self.variables:
                raise CheckError(f"undeclared reference to '{name}'", position, expression)
            return

        if operator == "select":
            self._visit(args[0], scope, expression)
            return

        if operator == "has":
            self._visit(args[0], scope, expression)
            return

        if operator == "call":
            self._check_call(args, scope, expression)
            return

        if operator in ("all", "exists", "exists_one", "filter", "map"):
            self._visit(args[0], scope, expression)
            inner = scope | {args[1]}
            for child in args[2:]:
                self._visit(child, inner, expression)
            return

        if operator == "dict":
            for key, value in args:
                self._visit(key, scope, expression)
                self._visit(value, scope, expression)
            return

        children = args if isinstance(args, list) else [args]
        for child in children:
            self._visit(child, scope, expression)

    def _check_call(self, args: List, scope: FrozenSet[str], expression: str) -> None:
        name, target, call_args, position = args

        if target is not None:
            self._visit(target, scope, expression)
        for arg in call_args:
            self._visit(arg, scope, expression)

        overloads = self.functions.get(name)
        if not overloads:
            raise CheckError(f"undeclared reference to '{name}'", position, expression)

        member = target is not None
        operands = ([target] if member else []) + list(call_args)
        arg_types = [static_type(a) for a in operands]

        for overload in overloads:
            if overload.member != member or overload.arity != len(arg_types):
                continue
            if all(d.accepts(a) for d, a in zip(overload.arg_types, arg_types)):
                return

        rendered = ", ".join(str(t) for t in arg_types)
        if member:
            receiver, _, rest = rendered.partition(", ")
            applied = f"'{receiver}.({rest})'"
        else:
            applied = f"'({rendered})'"
        raise CheckError(
            f"found no matching overload for '{name}' applied to {applied}",
            position,
            expression,
        )


def static_type(node: Any) -> Type:
    """Type of a node when it is known without evaluating; dyn otherwise."""
    if isinstance(node, bool):
        return BOOL
    if isinstance(node, int):
        return INT
    if isinstance(node, float):
        return DOUBLE
    if isinstance(node, str):
        return STRING
    if node is None:
        return NULL
    if isinstance(node, dict):
        operator = next(iter(node))
        if operator in _BOOLEAN_OPS:
            return BOOL
        if operator in ("list", "filter", "map"):
            return list_type()
        if operator == "dict":
            return map_type()
    return DYN
