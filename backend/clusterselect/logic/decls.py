"""
Type and function declarations for the expression environment.

Declarations are plain frozen data so a library's schema can be listed,
audited and tested without compiling anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence, Tuple

from .errors import EvalError


@dataclass(frozen=True)
class Type:
    """A declared value type, e.g. string or map(string, dyn)."""

    name: str
    params: Tuple["Type", ...] = ()

    def matches(self, value: Any) -> bool:
        """Whether a runtime value satisfies this type."""
        if self.name == "dyn":
            return True
        return type_name(value) == self.name

    def accepts(self, other: "Type") -> bool:
        """Whether a value statically typed as other may be passed as this type."""
        if self.name == "dyn" or other.name == "dyn":
            return True
        return self.name == other.name

    def __str__(self) -> str:
        if not self.params:
            return self.name
        return f"{self.name}({', '.join(str(p) for p in self.params)})"


DYN = Type("dyn")
BOOL = Type("bool")
INT = Type("int")
DOUBLE = Type("double")
STRING = Type("string")
NULL = Type("null_type")


def list_type(elem: Type = DYN) -> Type:
    return Type("list", (elem,))


def map_type(key: Type = DYN, value: Type = DYN) -> Type:
    return Type("map", (key, value))


def type_name(value: Any) -> str:
    """Name of the runtime type of a value."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null_type"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


@dataclass(frozen=True)
class FunctionDecl:
    """
    One overload of a function.

    Member overloads are called as receiver.name(args...) and receive the
    receiver as their first argument; arg_types includes the receiver.
    """

    name: str
    overload_id: str
    arg_types: Tuple[Type, ...]
    result_type: Type
    binding: Callable[..., Any]
    member: bool = False

    @property
    def arity(self) -> int:
        return len(self.arg_types)

    def matches(self, args: Sequence[Any]) -> bool:
        """Whether runtime arguments select this overload."""
        if len(args) != self.arity:
            return False
        return all(t.matches(a) for t, a in zip(self.arg_types, args))

    def signature(self) -> str:
        args = ", ".join(str(t) for t in self.arg_types)
        if self.member:
            receiver, _, rest = args.partition(", ")
            return f"{receiver}.{self.name}({rest}) -> {self.result_type}"
        return f"{self.name}({args}) -> {self.result_type}"


def no_matching_overload(name: str, args: Sequence[Any]) -> EvalError:
    """Build the error raised when no overload accepts the arguments."""
    arg_types = ", ".join(type_name(a) for a in args)
    return EvalError(f"no matching overload for '{name}' applied to '({arg_types})'")
