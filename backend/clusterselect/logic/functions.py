"""
Standard functions available in every environment.
"""

from __future__ import annotations

import math
import re
from typing import Any, List

from .decls import BOOL, DOUBLE, INT, STRING, FunctionDecl, list_type, map_type
from .errors import EvalError
from .parser import INT64_MAX, INT64_MIN

_INT_RE = re.compile(r"[+-]?[0-9]+")
_DOUBLE_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


def _size(value: Any) -> int:
    return len(value)


def _contains(s: str, sub: str) -> bool:
    return sub in s


def _starts_with(s: str, prefix: str) -> bool:
    return s.startswith(prefix)


def _ends_with(s: str, suffix: str) -> bool:
    return s.endswith(suffix)


def _matches(s: str, pattern: str) -> bool:
    try:
        return re.search(pattern, s) is not None
    except re.error as e:
        raise EvalError(f"invalid regular expression '{pattern}': {e}") from e


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not INT64_MIN <= value <= INT64_MAX:
            raise EvalError("double is out of range for int conversion")
        return int(value)
    if not _INT_RE.fullmatch(value):
        raise EvalError(f"cannot convert '{value}' to int")
    if len(value.lstrip("+-").lstrip("0")) > 19:
        raise EvalError("integer overflow")
    result = int(value)
    if not INT64_MIN <= result <= INT64_MAX:
        raise EvalError("integer overflow")
    return result


def _to_double(value: Any) -> float:
    if isinstance(value, str):
        if not _DOUBLE_RE.fullmatch(value):
            raise EvalError(f"cannot convert '{value}' to double")
        result = float(value)
        if math.isinf(result) and "inf" not in value.lower():
            raise EvalError(f"cannot convert '{value}' to double: value out of range")
        return result
    return float(value)


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


STANDARD_FUNCTIONS: List[FunctionDecl] = [
    FunctionDecl("size", "size_string", (STRING,), INT, _size),
    FunctionDecl("size", "size_list", (list_type(),), INT, _size),
    FunctionDecl("size", "size_map", (map_type(),), INT, _size),
    FunctionDecl("size", "string_size", (STRING,), INT, _size, member=True),
    FunctionDecl("size", "list_size", (list_type(),), INT, _size, member=True),
    FunctionDecl("size", "map_size", (map_type(),), INT, _size, member=True),
    FunctionDecl("contains", "contains_string", (STRING, STRING), BOOL, _contains, member=True),
    FunctionDecl("startsWith", "starts_with_string", (STRING, STRING), BOOL, _starts_with, member=True),
    FunctionDecl("endsWith", "ends_with_string", (STRING, STRING), BOOL, _ends_with, member=True),
    FunctionDecl("matches", "matches", (STRING, STRING), BOOL, _matches),
    FunctionDecl("matches", "matches_string", (STRING, STRING), BOOL, _matches, member=True),
    FunctionDecl("int", "int64_to_int64", (INT,), INT, _to_int),
    FunctionDecl("int", "double_to_int64", (DOUBLE,), INT, _to_int),
    FunctionDecl("int", "string_to_int64", (STRING,), INT, _to_int),
    FunctionDecl("double", "int64_to_double", (INT,), DOUBLE, _to_double),
    FunctionDecl("double", "double_to_double", (DOUBLE,), DOUBLE, _to_double),
    FunctionDecl("double", "string_to_double", (STRING,), DOUBLE, _to_double),
    FunctionDecl("string", "string_to_string", (STRING,), STRING, _to_string),
    FunctionDecl("string", "int64_to_string", (INT,), STRING, _to_string),
    FunctionDecl("string", "double_to_string", (DOUBLE,), STRING, _to_string),
    FunctionDecl("string", "bool_to_string", (BOOL,), STRING, _to_string),
]
