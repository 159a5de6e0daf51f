"""
Tests for the expression environment, checker and evaluator.
"""

import pytest

from backend.clusterselect.logic import (
    DYN,
    INT,
    STRING,
    CheckError,
    DeclarationError,
    Environment,
    EvalError,
    FunctionDecl,
    list_type,
    map_type,
)


def get_environment():
    """Return an environment with a few typed variables."""
    return Environment(variables={
        "x": INT,
        "s": STRING,
        "l": list_type(INT),
        "m": map_type(STRING, DYN),
    })


def evaluate(expression, **bindings):
    """Compile and evaluate an expression in a fresh environment."""
    defaults = {"x": 4, "s": "abc", "l": [1, 2, 3], "m": {"a": 1, "nested": {"b": "c"}}}
    defaults.update(bindings)
    return get_environment().compile(expression).eval(defaults)


class TestArithmetic:
    """Tests for arithmetic operators."""

    def test_int_operations(self):
        """Test integer arithmetic."""
        assert evaluate("x * 2 + 1") == 9
        assert evaluate("x - 10") == -6

    def test_int_division_truncates(self):
        """Test integer division and modulus truncate toward zero."""
        assert evaluate("7 / 2") == 3
        assert evaluate("-7 / 2") == -3
        assert evaluate("-7 % 3") == -1

    def test_divide_by_zero(self):
        """Test integer division by zero fails."""
        with pytest.raises(EvalError, match="divide by zero"):
            evaluate("x / 0")

    def test_overflow(self):
        """Test int64 overflow fails."""
        with pytest.raises(EvalError, match="integer overflow"):
            evaluate("9223372036854775807 + 1")

    def test_mixed_types(self):
        """Test int and double do not mix in arithmetic."""
        with pytest.raises(EvalError, match="no matching overload"):
            evaluate("1 + 1.5")

    def test_concatenation(self):
        """Test string and list concatenation."""
        assert evaluate("s + 'd'") == "abcd"
        assert evaluate("l + [4]") == [1, 2, 3, 4]


class TestComparison:
    """Tests for equality and ordering."""

    def test_numeric_equality(self):
        """Test int and double compare numerically."""
        assert evaluate("1 == 1.0") is True

    def test_heterogeneous_equality(self):
        """Test unrelated types are never equal."""
        assert evaluate("true == 1") is False
        assert evaluate("'1' == 1") is False
        assert evaluate("'1' != 1") is True

    def test_ordering(self):
        """Test ordering of numbers and strings."""
        assert evaluate("x > 3") is True
        assert evaluate("'a' < 'b'") is True

    def test_ordering_mismatch(self):
        """Test ordering unrelated types fails."""
        with pytest.raises(EvalError, match="no matching overload"):
            evaluate("1 < 'a'")

    def test_membership(self):
        """Test in on lists and maps."""
        assert evaluate("2 in l") is True
        assert evaluate("'a' in m") is True
        assert evaluate("'z' in m") is False


class TestLogic:
    """Tests for logical operators."""

    def test_and_absorbs_error(self):
        """Test false && error is false, in either order."""
        assert evaluate("false && m.missing == 1") is False
        assert evaluate("m.missing == 1 && false") is False

    def test_or_absorbs_error(self):
        """Test true || error is true, in either order."""
        assert evaluate("true || m.missing == 1") is True
        assert evaluate("m.missing == 1 || true") is True

    def test_and_propagates_error(self):
        """Test true && error is an error."""
        with pytest.raises(EvalError, match="no such key: missing"):
            evaluate("true && m.missing == 1")

    def test_not(self):
        """Test logical negation requires a bool."""
        assert evaluate("!(x > 10)") is True
        with pytest.raises(EvalError):
            evaluate("!x")

    def test_conditional(self):
        """Test the ternary operator."""
        assert evaluate("x > 1 ? 'big' : 'small'") == "big"
        assert evaluate("x > 10 ? 'big' : 'small'") == "small"


class TestAccess:
    """Tests for field selection and indexing."""

    def test_nested_select(self):
        """Test selecting through nested maps."""
        assert evaluate("m.nested.b") == "c"

    def test_missing_key(self):
        """Test missing map keys fail."""
        with pytest.raises(EvalError, match="no such key: missing"):
            evaluate("m.missing")
        with pytest.raises(EvalError, match="no such key: b"):
            evaluate("m['b']")

    def test_index_out_of_bounds(self):
        """Test out of range list indexes fail."""
        assert evaluate("l[0]") == 1
        with pytest.raises(EvalError, match="index out of bounds: 5"):
            evaluate("l[5]")

    def test_has(self):
        """Test has() checks key presence without failing."""
        assert evaluate("has(m.a)") is True
        assert evaluate("has(m.missing)") is False

    def test_unbound_variable(self):
        """Test a declared but unbound variable fails at evaluation."""
        program = get_environment().compile("x > 1")
        with pytest.raises(EvalError, match="no such attribute: x"):
            program.eval({})


class TestMacros:
    """Tests for comprehension macros."""

    def test_all_and_exists(self):
        """Test all() and exists() over a list."""
        assert evaluate("l.all(i, i > 0)") is True
        assert evaluate("l.exists(i, i == 2)") is True
        assert evaluate("l.exists(i, i == 9)") is False

    def test_exists_one(self):
        """Test exists_one() requires exactly one match."""
        assert evaluate("l.exists_one(i, i == 2)") is True
        assert evaluate("l.exists_one(i, i > 1)") is False

    def test_filter_and_map(self):
        """Test filter() and map()."""
        assert evaluate("l.filter(i, i % 2 == 1)") == [1, 3]
        assert evaluate("l.map(i, i * 2)") == [2, 4, 6]
        assert evaluate("l.map(i, i > 1, i * 10)") == [20, 30]

    def test_map_keys(self):
        """Test comprehensions over maps iterate keys."""
        assert evaluate("m.all(k, k.size() > 0)") is True

    def test_deciding_element_wins_over_error(self):
        """Test errors are absorbed when another element decides the result."""
        assert evaluate("[0, 1].exists(i, 1 / i == 1)") is True
        assert evaluate("[0, 1].all(i, 1 / i == 2)") is False
        with pytest.raises(EvalError, match="divide by zero"):
            evaluate("[0, 1].all(i, 1 / i == 1)")

    def test_non_bool_predicate(self):
        """Test predicates must produce bools."""
        with pytest.raises(EvalError):
            evaluate("l.all(i, i)")


class TestStandardFunctions:
    """Tests for the standard function library."""

    def test_size(self):
        """Test size() in global and member form."""
        assert evaluate("size(l)") == 3
        assert evaluate("s.size()") == 3
        assert evaluate("size('ab')") == 2

    def test_string_functions(self):
        """Test contains, startsWith, endsWith and matches."""
        assert evaluate("s.contains('b')") is True
        assert evaluate("s.startsWith('ab')") is True
        assert evaluate("s.endsWith('bc')") is True
        assert evaluate("s.matches('^a.c$')") is True
        assert evaluate("matches(s, 'z')") is False

    def test_invalid_regex(self):
        """Test an invalid pattern fails instead of not matching."""
        with pytest.raises(EvalError, match="invalid regular expression"):
            evaluate("s.matches('(')")

    def test_conversions(self):
        """Test int(), double() and string()."""
        assert evaluate("int('42') == 42") is True
        assert evaluate("double(1) == 1.0") is True
        assert evaluate("string(1) == '1'") is True
        assert evaluate("string(true)") == "true"

    def test_bad_conversion(self):
        """Test unconvertible strings fail."""
        with pytest.raises(EvalError):
            evaluate("int('x')")

    @pytest.mark.parametrize("expression", [
        "int('1_000')",
        "int(' 1')",
        "int('1\\n')",
        "int('١')",
        "double('1_0.5')",
        "double(' 1.5')",
        "double('1e400')",
    ])
    def test_strict_conversion(self, expression):
        """Test conversions accept plain decimal text only."""
        with pytest.raises(EvalError, match="cannot convert"):
            evaluate(expression)

    def test_conversion_forms(self):
        """Test signed, exponent and special forms that do convert."""
        assert evaluate("int('-42') == -42") is True
        assert evaluate("int('+7') == 7") is True
        assert evaluate("double('1e3') == 1000.0") is True
        assert evaluate("double('-.5') == -0.5") is True
        assert evaluate("double('Infinity') > 1.0") is True

    def test_conversion_overflow(self):
        """Test integer text beyond int64 overflows."""
        with pytest.raises(EvalError, match="integer overflow"):
            evaluate("int('9223372036854775808')")
        with pytest.raises(EvalError, match="integer overflow"):
            evaluate("int('" + "9" * 5000 + "')")

    def test_int64_min_literal(self):
        """Test the smallest int64 literal compiles and evaluates."""
        assert evaluate("-9223372036854775808 < x") is True
        with pytest.raises(EvalError, match="integer overflow"):
            evaluate("-9223372036854775808 - 1")

    def test_runtime_overload_mismatch(self):
        """Test a dyn value of the wrong type fails dispatch."""
        with pytest.raises(EvalError, match="no matching overload for 'startsWith'"):
            evaluate("m.a.startsWith('x')")


class TestChecker:
    """Tests for compile-time reference checking."""

    def test_undeclared_variable(self):
        """Test undeclared identifiers are rejected with their position."""
        with pytest.raises(CheckError) as exc_info:
            get_environment().compile("x > y")
        assert str(exc_info.value) == "<input>:1:5: undeclared reference to 'y'"

    def test_undeclared_function(self):
        """Test undeclared functions are rejected."""
        with pytest.raises(CheckError, match="undeclared reference to 'nope'"):
            get_environment().compile("s.nope()")

    def test_comprehension_scope(self):
        """Test iteration variables are only visible inside the macro."""
        get_environment().compile("l.exists(i, i > 0)")
        with pytest.raises(CheckError, match="undeclared reference to 'j'"):
            get_environment().compile("l.exists(i, j > 0)")
        with pytest.raises(CheckError, match="undeclared reference to 'i'"):
            get_environment().compile("l.exists(i, true) && i > 0")

    def test_wrong_call_style(self):
        """Test member-only functions cannot be called globally."""
        with pytest.raises(CheckError, match="found no matching overload for 'contains'"):
            get_environment().compile("contains('a', 'b')")

    def test_static_argument_type(self):
        """Test literal arguments of the wrong type are rejected."""
        with pytest.raises(CheckError, match="found no matching overload for 'size'"):
            get_environment().compile("size(1)")


class TestEnvironment:
    """Tests for environment construction."""

    def test_custom_function(self):
        """Test a custom global function."""
        env = Environment(
            variables={"x": INT},
            functions=[FunctionDecl("twice", "twice_int", (INT,), INT, lambda v: v * 2)],
        )
        assert env.compile("twice(x) == 8").eval({"x": 4}) is True

    def test_failing_binding(self):
        """Test any exception from a binding becomes an EvalError."""
        def explode(v):
            raise RuntimeError("backend unavailable")

        env = Environment(
            variables={"x": INT},
            functions=[FunctionDecl("explode", "explode_int", (INT,), INT, explode)],
        )
        with pytest.raises(EvalError, match="explode: backend unavailable") as exc_info:
            env.compile("explode(x) == 1").eval({"x": 4})
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_program_reuse(self):
        """Test one program evaluates against many bindings."""
        program = get_environment().compile("x > 3")
        assert program.eval({"x": 4}) is True
        assert program.eval({"x": 2}) is False

    def test_declarations_are_read_only(self):
        """Test declarations cannot be modified after construction."""
        env = get_environment()
        with pytest.raises(TypeError):
            env.variables["y"] = INT

    def test_duplicate_overload_id(self):
        """Test overload ids must be unique."""
        with pytest.raises(DeclarationError, match="declared twice"):
            Environment(functions=[FunctionDecl("size", "size_string", (STRING,), INT, len)])

    def test_reserved_variable(self):
        """Test reserved words cannot be declared."""
        with pytest.raises(DeclarationError):
            Environment(variables={"in": INT})

    def test_untyped_variable(self):
        """Test variables need a Type."""
        with pytest.raises(DeclarationError):
            Environment(variables={"x": "int"})

    def test_member_without_receiver(self):
        """Test member overloads need a receiver type."""
        with pytest.raises(DeclarationError, match="receiver"):
            Environment(functions=[FunctionDecl("f", "f_none", (), INT, lambda: 1, member=True)])

    def test_macro_name(self):
        """Test functions cannot shadow macros."""
        with pytest.raises(DeclarationError, match="macro"):
            Environment(functions=[FunctionDecl("exists", "exists_x", (INT,), INT, abs)])
