"""
Version and quantity comparisons used by the managed cluster library.

Both helpers take the name of the calling function as op; names ending in
"GreaterThan" test cmp > 0, everything else tests cmp < 0. Failures raise
EvalError prefixed with op so the caller can tell which function failed.
"""

from __future__ import annotations

from typing import Any

from ..logic import EvalError
from ..quantity import Quantity, QuantityError
from ..version import Version, VersionError

VERSION_GREATER_THAN = "versionIsGreaterThan"
VERSION_LESS_THAN = "versionIsLessThan"
QUANTITY_GREATER_THAN = "quantityIsGreaterThan"
QUANTITY_LESS_THAN = "quantityIsLessThan"


def _result(cmp: int, op: str) -> bool:
    if op.endswith("GreaterThan"):
        return cmp > 0
    return cmp < 0


def _check_operands(first: Any, second: Any, op: str) -> None:
    if first is None or second is None:
        raise EvalError(f"{op}: requires exactly two arguments")
    if not isinstance(first, str) or not isinstance(second, str):
        raise EvalError(f"{op}: both arguments must be strings")


def compare_versions(first: Any, second: Any, op: str) -> bool:
    """
    Compare two semantic version strings.

    Args:
        first: Version on the left, e.g. "v1.30.6".
        second: Version on the right.
        op: VERSION_GREATER_THAN or VERSION_LESS_THAN.

    Raises:
        EvalError: If an operand is missing, not a string or not a version.
    """
    _check_operands(first, second, op)

    try:
        parsed = Version.parse(first)
    except VersionError as e:
        raise EvalError(f"{op}: invalid first version: {e}") from e

    try:
        cmp = parsed.compare(second)
    except VersionError as e:
        raise EvalError(f"{op}: comparison failed: {e}") from e

    return _result(cmp, op)


def compare_quantities(first: Any, second: Any, op: str) -> bool:
    """
    Compare two resource quantity strings by magnitude.

    Args:
        first: Quantity on the left, e.g. "300Mi".
        second: Quantity on the right.
        op: QUANTITY_GREATER_THAN or QUANTITY_LESS_THAN.

    Raises:
        EvalError: If an operand is missing, not a string or not a quantity.
    """
    _check_operands(first, second, op)

    try:
        left = Quantity.parse(first)
    except QuantityError as e:
        raise EvalError(f"{op}: invalid first quantity: {e}") from e

    try:
        right = Quantity.parse(second)
    except QuantityError as e:
        raise EvalError(f"{op}: invalid second quantity: {e}") from e

    return _result(left.cmp(right), op)
