"""
Expression environment.

An Environment holds the declared variables and function overloads and
compiles expression source into Programs:

    env = Environment(variables={"x": INT}, functions=[...])
    program = env.compile("x > 3")
    program.eval({"x": 4})  # True

Environments are immutable once built and may be shared between threads.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .checker import Checker
from .decls import FunctionDecl, Type
from .errors import DeclarationError
from .evaluator import ExpressionEvaluator
from .functions import STANDARD_FUNCTIONS
from .parser import COMPREHENSIONS, RESERVED, ExpressionParser

_IDENTIFIER_RE = re.compile(r"^[_a-zA-Z][_a-zA-Z0-9]*$")


@dataclass(frozen=True)
class Program:
    """A compiled expression, ready to evaluate against bindings."""

    source: str
    ast: Any
    evaluator: ExpressionEvaluator

    def eval(self, bindings: Mapping[str, Any]) -> Any:
        """
        Evaluate the program.

        Args:
            bindings: Values for the declared variables.

        Returns:
            The expression result.

        Raises:
            EvalError: If evaluation fails.
        """
        return self.evaluator.evaluate(self.ast, bindings)


class Environment:
    """
    Declared variables and functions for compiling expressions.

    The standard functions (size, contains, startsWith, endsWith, matches,
    int, double, string) are always declared; extra functions are added on
    top of them.
    """

    def __init__(
        self,
        variables: Optional[Mapping[str, Type]] = None,
        functions: Optional[Sequence[FunctionDecl]] = None,
    ):
        """
        Build an environment.

        Args:
            variables: Variable name -> declared type.
            functions: Extra function overloads.

        Raises:
            DeclarationError: If a declaration is malformed or conflicts.
        """
        variables = dict(variables or {})
        declared = list(STANDARD_FUNCTIONS) + list(functions or [])

        for name, var_type in variables.items():
            _validate_name(name, "variable")
            if not isinstance(var_type, Type):
                raise DeclarationError(f"variable '{name}' must be declared with a Type, got {var_type!r}")

        self._variables: Mapping[str, Type] = MappingProxyType(variables)
        self._functions: Mapping[str, Tuple[FunctionDecl, ...]] = MappingProxyType(
            _group_overloads(declared)
        )

        self._parser = ExpressionParser()
        self._checker = Checker(self._variables, self._functions)
        self._evaluator = ExpressionEvaluator(self._functions)

    @property
    def variables(self) -> Mapping[str, Type]:
        return self._variables

    @property
    def functions(self) -> Mapping[str, Tuple[FunctionDecl, ...]]:
        return self._functions

    def compile(self, source: str) -> Program:
        """
        Parse and check an expression.

        Args:
            source: Expression source.

        Returns:
            A Program bound to this environment.

        Raises:
            ParseError: If the expression is not syntactically valid.
            CheckError: If it references undeclared variables or functions.
        """
        ast = self._parser.parse(source)
        self._checker.check(ast, source)
        return Program(source=source, ast=ast, evaluator=self._evaluator)


def _validate_name(name: str, kind: str) -> None:
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise DeclarationError(f"invalid {kind} name: {name!r}")
    if name in RESERVED or name in ("true", "false", "null", "in"):
        raise DeclarationError(f"{kind} name is reserved: {name!r}")


def _group_overloads(declared: List[FunctionDecl]) -> Dict[str, Tuple[FunctionDecl, ...]]:
    """Validate overloads and group them by function name."""
    grouped: Dict[str, List[FunctionDecl]] = {}
    seen_ids = set()

    for decl in declared:
        _validate_name(decl.name, "function")
        if decl.name in COMPREHENSIONS or decl.name == "has":
            raise DeclarationError(f"function name collides with a macro: {decl.name!r}")
        if decl.overload_id in seen_ids:
            raise DeclarationError(f"overload id declared twice: {decl.overload_id!r}")
        if not all(isinstance(t, Type) for t in decl.arg_types) or not isinstance(decl.result_type, Type):
            raise DeclarationError(f"overload '{decl.overload_id}' must declare Types")
        if decl.member and not decl.arg_types:
            raise DeclarationError(f"member overload '{decl.overload_id}' needs a receiver type")
        if not callable(decl.binding):
            raise DeclarationError(f"overload '{decl.overload_id}' has no callable binding")

        seen_ids.add(decl.overload_id)
        grouped.setdefault(decl.name, []).append(decl)

    return {name: tuple(overloads) for name, overloads in grouped.items()}
