"""
Expression Parser for cluster selector expressions.

Parses the CEL dialect used by cluster selectors into JSON Logic style
nodes: every node is a dict with a single operator key, literals are plain
Python values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .errors import ExpressionError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ParseError(ExpressionError):
    """Represents a parsing error."""


@dataclass
class Token:
    kind: str  # int | float | string | ident | op | eof
    value: Any
    position: int


RESERVED = {
    "as", "break", "const", "continue", "else", "for", "function", "if",
    "import", "let", "loop", "package", "namespace", "return", "var",
    "void", "while",
}

# Longest first so "==" wins over "="
OPERATORS = [
    "==", "!=", "<=", ">=", "&&", "||",
    "<", ">", "+", "-", "*", "/", "%", "!", "?", ":",
    ".", ",", "(", ")", "[", "]", "{", "}",
]

RELATIONS = {"==", "!=", "<", "<=", ">", ">=", "in"}

COMPREHENSIONS = {"all", "exists", "exists_one", "filter", "map"}

_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F]+[uU]?"
    r"|[0-9]*\.[0-9]+(?:[eE][+-]?[0-9]+)?"
    r"|[0-9]+[eE][+-]?[0-9]+"
    r"|[0-9]+[uU]?"
)
_IDENT_RE = re.compile(r"[_a-zA-Z][_a-zA-Z0-9]*")
_DIGITS = "0123456789"

_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t",
    "v": "\v", "\\": "\\", "'": "'", '"': '"', "`": "`", "?": "?",
}


def tokenize(expression: str) -> List[Token]:
    """Split an expression into tokens."""
    tokens: List[Token] = []
    i = 0
    length = len(expression)

    while i < length:
        char = expression[i]

        if char.isspace():
            i += 1
            continue

        # Comments run to the end of the line
        if expression.startswith("//", i):
            end = expression.find("\n", i)
            i = length if end == -1 else end
            continue

        if char in "'\"" or (char in "rR" and i + 1 < length and expression[i + 1] in "'\""):
            value, i_next = _read_string(expression, i)
            tokens.append(Token("string", value, i))
            i = i_next
            continue

        if char in "bB" and i + 1 < length and expression[i + 1] in "'\"":
            raise ParseError("bytes literals are not supported", i, expression)

        if char in _DIGITS or (char == "." and i + 1 < length and expression[i + 1] in _DIGITS):
            match = _NUMBER_RE.match(expression, i)
            text = match.group(0)
            tokens.append(_number_token(text, i, expression))
            i = match.end()
            continue

        match = _IDENT_RE.match(expression, i)
        if match:
            tokens.append(Token("ident", match.group(0), i))
            i = match.end()
            continue

        for op in OPERATORS:
            if expression.startswith(op, i):
                tokens.append(Token("op", op, i))
                i += len(op)
                break
        else:
            raise ParseError(f"token recognition error at: '{char}'", i, expression)

    tokens.append(Token("eof", None, length))
    return tokens


def _number_token(text: str, position: int, expression: str) -> Token:
    if text[-1] in "uU":
        raise ParseError("unsigned integer literals are not supported", position, expression)

    if text[:2] in ("0x", "0X"):
        return Token("int", int(text, 16), position)

    if "." in text or "e" in text or "E" in text:
        return Token("float", float(text), position)

    return Token("int", int(text), position)


def _read_string(expression: str, start: int) -> Tuple[str, int]:
    """Read a string literal beginning at start, returning (value, end)."""
    i = start
    raw = False
    if expression[i] in "rR":
        raw = True
        i += 1

    quote = expression[i]
    if expression.startswith(quote * 3, i):
        delimiter = quote * 3
    else:
        delimiter = quote
    i += len(delimiter)

    chars: List[str] = []
    length = len(expression)

    while i < length:
        if expression.startswith(delimiter, i):
            return "".join(chars), i + len(delimiter)

        char = expression[i]
        if char == "\n" and len(delimiter) == 1:
            break

        if char == "\\" and not raw:
            decoded, i = _read_escape(expression, i)
            chars.append(decoded)
            continue

        chars.append(char)
        i += 1

    raise ParseError("unterminated string literal", start, expression)


def _read_escape(expression: str, i: int) -> Tuple[str, int]:
    if i + 1 >= len(expression):
        raise ParseError("invalid escape sequence", i, expression)

    code = expression[i + 1]
    if code in _ESCAPES:
        return _ESCAPES[code], i + 2

    widths = {"x": 2, "X": 2, "u": 4, "U": 8}
    if code in widths:
        digits = expression[i + 2:i + 2 + widths[code]]
        if len(digits) != widths[code] or not re.fullmatch(r"[0-9a-fA-F]+", digits):
            raise ParseError(f"invalid \\{code} escape sequence", i, expression)
        return chr(int(digits, 16)), i + 2 + widths[code]

    if code in "0123":
        digits = expression[i + 1:i + 4]
        if not re.fullmatch(r"[0-7]{3}", digits):
            raise ParseError("invalid octal escape sequence", i, expression)
        return chr(int(digits, 8)), i + 4

    raise ParseError(f"invalid escape sequence '\\{code}'", i, expression)


class _TokenStream:
    """Cursor over the tokens of one expression."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != "eof":
            self.index += 1
        return token

    def at(self, value: str) -> bool:
        token = self.current
        return token.kind == "op" and token.value == value

    def accept(self, value: str) -> bool:
        if self.at(value):
            self.advance()
            return True
        return False

    def expect(self, value: str) -> Token:
        if not self.at(value):
            raise self.error(f"expected '{value}'")
        return self.advance()

    def error(self, message: str, token: Optional[Token] = None) -> ParseError:
        token = token or self.current
        if token.kind == "eof":
            message = f"{message} but reached end of input"
        else:
            message = f"{message}, found '{_token_text(token)}'"
        return ParseError(message, token.position, self.expression)


def _token_text(token: Token) -> str:
    if token.kind == "string":
        return repr(token.value)
    return str(token.value)


class ExpressionParser:
    """
    Parser for cluster selector expressions.

    Converts expressions like:
        managedCluster.metadata.labels["cloud"] == "Amazon"
        managedCluster.status.clusterClaims.exists(c, c.name == "region")

    Into JSON Logic style nodes:
        {"==": [{"index": [{"select": [..., "labels", 24]}, "cloud"]}, "Amazon"]}
        {"exists": [{"select": [..., "clusterClaims", 22]}, "c", {"==": [...]}]}

    Node shapes:
        {"var": [name, offset]}
        {"select": [operand, field, offset]}
        {"index": [operand, key]}
        {"call": [function, target_or_None, [args], offset]}
        {"has": [operand, field]}
        {"all" | "exists" | "exists_one" | "filter": [range, var, predicate]}
        {"map": [range, var, transform, predicate_or_None]}
        {"list": [items]}
        {"dict": [[key, value], ...]}
        {"?:": [condition, then, else]}
        {"and" | "or": [left, right]}
        {"!" | "neg": operand}
        {"==" | "!=" | "<" | "<=" | ">" | ">=" | "in" | "+" | "-" | "*" | "/" | "%": [left, right]}
    """

    def parse(self, expression: str) -> Any:
        """
        Parse an expression into a node tree.

        Args:
            expression: The expression to parse.

        Returns:
            The root node.

        Raises:
            ParseError: If the expression is not syntactically valid.
        """
        if not isinstance(expression, str):
            raise ParseError(f"expected string expression, got {type(expression).__name__}", 0, "")

        if not expression.strip():
            raise ParseError("empty expression", 0, expression)

        tokens = _TokenStream(expression)
        node = self._parse_expression(tokens)
        if tokens.current.kind != "eof":
            raise tokens.error("unexpected token")
        return node

    def _parse_expression(self, tokens: _TokenStream) -> Any:
        """Parse a full expression, including the ternary operator."""
        condition = self._parse_or(tokens)
        if tokens.accept("?"):
            then = self._parse_or(tokens)
            tokens.expect(":")
            otherwise = self._parse_expression(tokens)
            return {"?:": [condition, then, otherwise]}
        return condition

    def _parse_or(self, tokens: _TokenStream) -> Any:
        node = self._parse_and(tokens)
        while tokens.accept("||"):
            node = {"or": [node, self._parse_and(tokens)]}
        return node

    def _parse_and(self, tokens: _TokenStream) -> Any:
        node = self._parse_relation(tokens)
        while tokens.accept("&&"):
            node = {"and": [node, self._parse_relation(tokens)]}
        return node

    def _parse_relation(self, tokens: _TokenStream) -> Any:
        node = self._parse_addition(tokens)
        while True:
            token = tokens.current
            is_relation = (token.kind == "op" and token.value in RELATIONS) or \
                (token.kind == "ident" and token.value == "in")
            if not is_relation:
                return node
            tokens.advance()
            node = {token.value: [node, self._parse_addition(tokens)]}

    def _parse_addition(self, tokens: _TokenStream) -> Any:
        node = self._parse_multiplication(tokens)
        while tokens.at("+") or tokens.at("-"):
            op = tokens.advance().value
            node = {op: [node, self._parse_multiplication(tokens)]}
        return node

    def _parse_multiplication(self, tokens: _TokenStream) -> Any:
        node = self._parse_unary(tokens)
        while tokens.at("*") or tokens.at("/") or tokens.at("%"):
            op = tokens.advance().value
            node = {op: [node, self._parse_unary(tokens)]}
        return node

    def _parse_unary(self, tokens: _TokenStream, negated: bool = False) -> Any:
        if tokens.accept("!"):
            return {"!": self._parse_unary(tokens)}

        if tokens.at("-"):
            token = tokens.advance()
            operand = self._parse_unary(tokens, negated=True)
            # Fold negative numeric literals
            if isinstance(operand, (int, float)) and not isinstance(operand, bool):
                return self._check_int(-operand, token, tokens)
            return {"neg": operand}

        return self._parse_member(tokens, negated)

    def _parse_member(self, tokens: _TokenStream, negated: bool = False) -> Any:
        node = self._parse_primary(tokens, negated)

        while True:
            if tokens.accept("."):
                token = tokens.advance()
                if token.kind != "ident":
                    raise tokens.error("expected field or function name", token)
                if tokens.accept("("):
                    args = self._parse_args(tokens, ")")
                    node = self._member_call(token, node, args, tokens)
                else:
                    node = {"select": [node, token.value, token.position]}
            elif tokens.accept("["):
                key = self._parse_expression(tokens)
                tokens.expect("]")
                node = {"index": [node, key]}
            else:
                return node

    def _parse_primary(self, tokens: _TokenStream, negated: bool = False) -> Any:
        token = tokens.advance()

        if token.kind == "int":
            # 2**63 only fits once the enclosing minus is folded in
            if negated and token.value == -INT64_MIN and not (tokens.at(".") or tokens.at("[")):
                return token.value
            return self._check_int(token.value, token, tokens)
        if token.kind in ("float", "string"):
            return token.value

        if token.kind == "ident":
            name = token.value
            if name == "true":
                return True
            if name == "false":
                return False
            if name == "null":
                return None
            if name in RESERVED or name == "in":
                raise ParseError(f"reserved identifier: {name}", token.position, tokens.expression)
            if tokens.accept("("):
                args = self._parse_args(tokens, ")")
                return self._global_call(token, args, tokens)
            return {"var": [name, token.position]}

        if token.kind == "op":
            if token.value == "(":
                node = self._parse_expression(tokens)
                tokens.expect(")")
                return node
            if token.value == "[":
                return {"list": self._parse_args(tokens, "]")}
            if token.value == "{":
                return {"dict": self._parse_entries(tokens)}
            if token.value == ".":
                # Leading dot selects from the root scope
                ident = tokens.advance()
                if ident.kind != "ident":
                    raise tokens.error("expected identifier", ident)
                return {"var": [ident.value, ident.position]}

        raise tokens.error("unexpected token", token)

    def _parse_args(self, tokens: _TokenStream, closing: str) -> List[Any]:
        """Parse comma separated expressions up to the closing bracket."""
        args = []
        if tokens.accept(closing):
            return args

        while True:
            args.append(self._parse_expression(tokens))
            if tokens.accept(closing):
                return args
            tokens.expect(",")
            # Trailing comma
            if tokens.accept(closing):
                return args

    def _parse_entries(self, tokens: _TokenStream) -> List[List[Any]]:
        """Parse map literal entries up to the closing brace."""
        entries = []
        if tokens.accept("}"):
            return entries

        while True:
            key = self._parse_expression(tokens)
            tokens.expect(":")
            entries.append([key, self._parse_expression(tokens)])
            if tokens.accept("}"):
                return entries
            tokens.expect(",")
            if tokens.accept("}"):
                return entries

    def _global_call(self, token: Token, args: List[Any], tokens: _TokenStream) -> Dict[str, Any]:
        """Build a global function call, expanding the has() macro."""
        if token.value == "has" and len(args) == 1:
            arg = args[0]
            if not (isinstance(arg, dict) and "select" in arg):
                raise ParseError("invalid argument to has() macro", token.position, tokens.expression)
            operand, field, _ = arg["select"]
            return {"has": [operand, field]}

        return {"call": [token.value, None, args, token.position]}

    def _member_call(
        self,
        token: Token,
        target: Any,
        args: List[Any],
        tokens: _TokenStream,
    ) -> Dict[str, Any]:
        """Build a member function call, expanding comprehension macros."""
        name = token.value
        is_macro = name in COMPREHENSIONS and (
            len(args) == 2 or (name == "map" and len(args) == 3)
        )
        if not is_macro:
            return {"call": [name, target, args, token.position]}

        variable = args[0]
        if not (isinstance(variable, dict) and "var" in variable):
            raise ParseError(
                f"argument must be a simple name in {name}() macro",
                token.position,
                tokens.expression,
            )
        var_name = variable["var"][0]

        if name == "map":
            if len(args) == 3:
                return {"map": [target, var_name, args[2], args[1]]}
            return {"map": [target, var_name, args[1], None]}

        return {name: [target, var_name, args[1]]}

    def _check_int(self, value: Any, token: Token, tokens: _TokenStream) -> Any:
        if isinstance(value, int) and not INT64_MIN <= value <= INT64_MAX:
            raise ParseError("integer literal out of range", token.position, tokens.expression)
        return value

    def validate(self, expression: str) -> Tuple[bool, Optional[str]]:
        """
        Validate an expression without evaluating it.

        Returns:
            Tuple of (is_valid, error_message).
        """
        try:
            self.parse(expression)
            return True, None
        except ValueError as e:
            return False, str(e)
