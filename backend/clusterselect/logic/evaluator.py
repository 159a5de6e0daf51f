"""
Expression Evaluator for compiled expressions.

Evaluates parser nodes against an activation (variable name -> value).
"""

from __future__ import annotations

from collections import ChainMap
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from .decls import FunctionDecl, no_matching_overload, type_name
from .errors import EvalError
from .parser import INT64_MAX, INT64_MIN

_NUMERIC = ("int", "double")


def _checked(value: int) -> int:
    if not INT64_MIN <= value <= INT64_MAX:
        raise EvalError("integer overflow")
    return value


def _divide(a: Any, b: Any) -> Any:
    if type_name(a) == "int":
        if b == 0:
            raise EvalError("divide by zero")
        # Truncate toward zero
        quotient = abs(a) // abs(b)
        return _checked(quotient if (a >= 0) == (b >= 0) else -quotient)
    if b == 0:
        return float("nan") if a == 0 else float("inf") if a > 0 else float("-inf")
    return a / b


def _modulo(a: int, b: int) -> int:
    if b == 0:
        raise EvalError("modulus by zero")
    remainder = abs(a) % abs(b)
    return remainder if a >= 0 else -remainder


# operator -> (accepted operand types, implementation)
_ARITHMETIC: Dict[str, Tuple[Tuple[str, ...], Callable[[Any, Any], Any]]] = {
    "+": (("int", "double", "string", "list"), lambda a, b: a + b),
    "-": (_NUMERIC, lambda a, b: a - b),
    "*": (_NUMERIC, lambda a, b: a * b),
    "/": (_NUMERIC, _divide),
    "%": (("int",), _modulo),
}

_ORDERING: Dict[str, Callable[[Any, Any], bool]] = {
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


def values_equal(a: Any, b: Any) -> bool:
    """Equality with heterogeneous values comparing unequal."""
    ta, tb = type_name(a), type_name(b)
    if ta in _NUMERIC and tb in _NUMERIC:
        return a == b
    if ta != tb:
        return False
    if ta == "list":
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if ta == "map":
        if len(a) != len(b):
            return False
        for key, value in a.items():
            if key not in b or not values_equal(value, b[key]):
                return False
        return True
    return a == b


class ExpressionEvaluator:
    """
    Evaluator for parsed expressions.

    Supports the CEL operators, macros and function calls produced by
    ExpressionParser. Functions are resolved through the overload table
    given at construction.
    """

    def __init__(self, functions: Mapping[str, Sequence[FunctionDecl]]):
        self.functions = functions

    def evaluate(self, node: Any, activation: Mapping[str, Any]) -> Any:
        """
        Evaluate a node against an activation.

        Args:
            node: The parsed expression node.
            activation: Variable bindings.

        Returns:
            The evaluation result.

        Raises:
            EvalError: If evaluation fails.
        """
        # Literals
        if not isinstance(node, dict):
            return node

        operator, args = next(iter(node.items()))

        if operator == "var":
            return self._get_var(args[0], activation)

        if operator == "select":
            operand = self.evaluate(args[0], activation)
            return self._select(operand, args[1])

        if operator == "index":
            return self._eval_index(args, activation)

        if operator == "has":
            return self._eval_has(args, activation)

        if operator == "and":
            return self._eval_logical(args, activation, short_circuit=False, name="_&&_")

        if operator == "or":
            return self._eval_logical(args, activation, short_circuit=True, name="_||_")

        if operator == "!":
            value = self.evaluate(args, activation)
            if not isinstance(value, bool):
                raise no_matching_overload("!_", [value])
            return not value

        if operator == "neg":
            return self._eval_negate(args, activation)

        if operator == "?:":
            return self._eval_conditional(args, activation)

        if operator == "==":
            return values_equal(self.evaluate(args[0], activation), self.evaluate(args[1], activation))

        if operator == "!=":
            return not values_equal(self.evaluate(args[0], activation), self.evaluate(args[1], activation))

        if operator in _ORDERING:
            return self._eval_comparison(operator, args, activation)

        if operator in _ARITHMETIC:
            return self._eval_arithmetic(operator, args, activation)

        if operator == "in":
            return self._eval_in(args, activation)

        if operator == "list":
            return [self.evaluate(item, activation) for item in args]

        if operator == "dict":
            return self._eval_dict(args, activation)

        if operator == "call":
            return self._eval_call(args, activation)

        if operator in ("all", "exists", "exists_one", "filter", "map"):
            return self._eval_comprehension(operator, args, activation)

        raise EvalError(f"unsupported expression node: {operator}")

    def _get_var(self, name: str, activation: Mapping[str, Any]) -> Any:
        """Get a variable from the activation."""
        try:
            return activation[name]
        except KeyError:
            raise EvalError(f"no such attribute: {name}") from None

    def _select(self, operand: Any, field: str) -> Any:
        if not isinstance(operand, dict):
            raise EvalError(f"type '{type_name(operand)}' does not support field selection")
        if field not in operand:
            raise EvalError(f"no such key: {field}")
        return operand[field]

    def _eval_index(self, args: List, activation: Mapping[str, Any]) -> Any:
        container = self.evaluate(args[0], activation)
        key = self.evaluate(args[1], activation)

        if isinstance(container, (list, tuple)) and type_name(key) == "int":
            if not 0 <= key < len(container):
                raise EvalError(f"index out of bounds: {key}")
            return container[key]

        if isinstance(container, dict):
            for candidate in container:
                if values_equal(candidate, key):
                    return container[candidate]
            raise EvalError(f"no such key: {key}")

        raise no_matching_overload("_[_]", [container, key])

    def _eval_has(self, args: List, activation: Mapping[str, Any]) -> bool:
        operand = self.evaluate(args[0], activation)
        if not isinstance(operand, dict):
            raise EvalError(f"invalid type for field selection: {type_name(operand)}")
        return args[1] in operand

    def _eval_logical(
        self,
        args: List,
        activation: Mapping[str, Any],
        short_circuit: bool,
        name: str,
    ) -> bool:
        """
        Evaluate && (short_circuit=False) or || (short_circuit=True).

        A side that decides the result wins over an error on the other side,
        so false && <error> is false and true || <error> is true.
        """
        errors = []
        values = []
        for arg in args:
            try:
                value = self.evaluate(arg, activation)
            except EvalError as e:
                errors.append(e)
                continue
            if value is short_circuit:
                return short_circuit
            values.append(value)

        if errors:
            raise errors[0]

        for value in values:
            if not isinstance(value, bool):
                raise no_matching_overload(name, values)
        return not short_circuit

    def _eval_negate(self, arg: Any, activation: Mapping[str, Any]) -> Any:
        value = self.evaluate(arg, activation)
        kind = type_name(value)
        if kind == "int":
            return _checked(-value)
        if kind == "double":
            return -value
        raise no_matching_overload("-_", [value])

    def _eval_conditional(self, args: List, activation: Mapping[str, Any]) -> Any:
        condition = self.evaluate(args[0], activation)
        if not isinstance(condition, bool):
            raise no_matching_overload("_?_:_", [condition])
        return self.evaluate(args[1] if condition else args[2], activation)

    def _eval_comparison(self, operator: str, args: List, activation: Mapping[str, Any]) -> bool:
        """Evaluate an ordering comparison."""
        left = self.evaluate(args[0], activation)
        right = self.evaluate(args[1], activation)
        tl, tr = type_name(left), type_name(right)

        comparable = (tl in _NUMERIC and tr in _NUMERIC) or \
            (tl == tr and tl in ("string", "bool"))
        if not comparable:
            raise no_matching_overload(f"_{operator}_", [left, right])

        return _ORDERING[operator](left, right)

    def _eval_arithmetic(self, operator: str, args: List, activation: Mapping[str, Any]) -> Any:
        left = self.evaluate(args[0], activation)
        right = self.evaluate(args[1], activation)
        tl, tr = type_name(left), type_name(right)

        accepted, op = _ARITHMETIC[operator]
        if tl != tr or tl not in accepted:
            raise no_matching_overload(f"_{operator}_", [left, right])

        if tl == "list":
            return list(left) + list(right)

        result = op(left, right)
        if tl == "int":
            return _checked(result)
        return result

    def _eval_in(self, args: List, activation: Mapping[str, Any]) -> bool:
        """Evaluate 'in' (membership) expression."""
        needle = self.evaluate(args[0], activation)
        haystack = self.evaluate(args[1], activation)

        if isinstance(haystack, (list, tuple, dict)):
            return any(values_equal(needle, item) for item in haystack)

        raise no_matching_overload("@in", [needle, haystack])

    def _eval_dict(self, entries: List, activation: Mapping[str, Any]) -> Dict[Any, Any]:
        result: Dict[Any, Any] = {}
        for key_node, value_node in entries:
            key = self.evaluate(key_node, activation)
            if type_name(key) not in ("string", "int", "bool"):
                raise EvalError(f"unsupported key type: {type_name(key)}")
            if any(values_equal(key, existing) for existing in result):
                raise EvalError(f"Failed with repeated key: {key}")
            result[key] = self.evaluate(value_node, activation)
        return result

    def _eval_call(self, args: List, activation: Mapping[str, Any]) -> Any:
        """Evaluate a function call through the overload table."""
        name, target, call_args, _ = args
        member = target is not None

        values = [self.evaluate(a, activation) for a in call_args]
        if member:
            values.insert(0, self.evaluate(target, activation))

        for overload in self.functions.get(name, ()):
            if overload.member == member and overload.matches(values):
                try:
                    return overload.binding(*values)
                except EvalError:
                    raise
                except Exception as e:
                    raise EvalError(f"{name}: {e}") from e

        raise no_matching_overload(name, values)

    def _eval_comprehension(self, macro: str, args: List, activation: Mapping[str, Any]) -> Any:
        """Evaluate all/exists/exists_one/filter/map over a list or map keys."""
        iter_range = self.evaluate(args[0], activation)
        var_name = args[1]

        if isinstance(iter_range, dict):
            items = list(iter_range.keys())
        elif isinstance(iter_range, (list, tuple)):
            items = list(iter_range)
        else:
            raise EvalError(f"expression of type '{type_name(iter_range)}' cannot be range of a comprehension")

        def scoped(item: Any) -> Mapping[str, Any]:
            return ChainMap({var_name: item}, activation)

        if macro == "map":
            transform, predicate = args[2], args[3]
            result = []
            for item in items:
                if predicate is not None and not self._predicate(predicate, scoped(item), macro):
                    continue
                result.append(self.evaluate(transform, scoped(item)))
            return result

        predicate = args[2]

        if macro == "filter":
            return [item for item in items if self._predicate(predicate, scoped(item), macro)]

        if macro == "exists_one":
            count = sum(1 for item in items if self._predicate(predicate, scoped(item), macro))
            return count == 1

        # all / exists: a deciding element wins over errors on other elements
        decisive = macro == "exists"
        error = None
        for item in items:
            try:
                if self._predicate(predicate, scoped(item), macro) is decisive:
                    return decisive
            except EvalError as e:
                error = error or e
        if error is not None:
            raise error
        return not decisive

    def _predicate(self, node: Any, activation: Mapping[str, Any], macro: str) -> bool:
        value = self.evaluate(node, activation)
        if not isinstance(value, bool):
            raise EvalError(f"{macro}() predicate result is not a bool: {type_name(value)}")
        return value
