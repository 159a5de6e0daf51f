"""
Resource quantities.

Parses the Kubernetes resource quantity grammar:

    <quantity>        ::= <signedNumber><suffix>
    <suffix>          ::= <binarySI> | <decimalExponent> | <decimalSI>
    <binarySI>        ::= Ki | Mi | Gi | Ti | Pi | Ei
    <decimalSI>       ::= n | u | m | "" | k | M | G | T | P | E
    <decimalExponent> ::= "e" <signedNumber> | "E" <signedNumber>

Amounts are kept as exact decimals, so mixed binary and decimal quantities
compare by their true magnitude ("1000Mi" < "1Gi").
"""

from __future__ import annotations

import re
from decimal import ROUND_UP, Context, Decimal, DecimalException, localcontext
from enum import Enum
from typing import Any, Dict, Optional


class QuantityError(ValueError):
    """Raised when a string is not a valid quantity."""


class QuantityFormat(str, Enum):
    """Format a quantity was written in; drives its canonical form."""

    DECIMAL_EXPONENT = "DecimalExponent"
    BINARY_SI = "BinarySI"
    DECIMAL_SI = "DecimalSI"


# Suffix -> power of two
BINARY_SUFFIXES: Dict[str, int] = {
    "Ki": 10,
    "Mi": 20,
    "Gi": 30,
    "Ti": 40,
    "Pi": 50,
    "Ei": 60,
}

# Suffix -> power of ten
DECIMAL_SUFFIXES: Dict[str, int] = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}

_SUFFIX_BY_EXPONENT = {exp: suffix for suffix, exp in DECIMAL_SUFFIXES.items()}

_QUANTITY_RE = re.compile(r"([+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+))([eE][+-]?[0-9]+|[A-Za-z]*)")

_FORMAT_ERROR = (
    "quantities must match the regular expression "
    "'^([+-]?[0-9.]+)([eEinumkKMGTP]*[-+]?[0-9]*)$'"
)
_SUFFIX_ERROR = "unable to parse quantity's suffix"
_RANGE_ERROR = "quantity is too large or too small"

# Largest decimal exponent a parsed amount may have, in either direction.
_MAX_EXPONENT = 1000

# Wide enough for Ei-scaled amounts expressed in nano units.
_CONTEXT = Context(prec=100)


class Quantity:
    """
    An exact resource quantity.

    Supports:
    - parse: build from the string grammar above
    - value / milli_value: integer views, rounded away from zero
    - cmp: three-way comparison by magnitude
    - str(): canonical form ("1.5Gi" -> "1536Mi", "1000" -> "1k")
    """

    __slots__ = ("_amount", "_format")

    def __init__(self, amount: Decimal, fmt: QuantityFormat = QuantityFormat.DECIMAL_SI):
        self._amount = amount
        self._format = fmt

    @classmethod
    def parse(cls, text: str) -> "Quantity":
        """
        Parse a quantity string.

        Args:
            text: Quantity such as "3", "300Mi", "1.5Gi", "100m" or "1e3".

        Returns:
            The parsed Quantity.

        Raises:
            QuantityError: If the text does not follow the grammar or its
                magnitude is out of range.
        """
        if not isinstance(text, str):
            raise QuantityError(f"expected string quantity, got {type(text).__name__}")

        match = _QUANTITY_RE.fullmatch(text)
        if not match:
            raise QuantityError(_FORMAT_ERROR)

        number, suffix = match.groups()

        try:
            with localcontext(_CONTEXT):
                mantissa = Decimal(number)
                if suffix in BINARY_SUFFIXES:
                    amount = mantissa * (2 ** BINARY_SUFFIXES[suffix])
                    fmt = QuantityFormat.BINARY_SI
                elif suffix in DECIMAL_SUFFIXES:
                    amount = mantissa.scaleb(DECIMAL_SUFFIXES[suffix])
                    fmt = QuantityFormat.DECIMAL_SI
                elif suffix[:1] in ("e", "E") and len(suffix) > 1:
                    if len(suffix[1:].lstrip("+-").lstrip("0")) > 9:
                        raise QuantityError(f"{_RANGE_ERROR}: {text!r}")
                    amount = mantissa.scaleb(int(suffix[1:]))
                    fmt = QuantityFormat.DECIMAL_EXPONENT
                else:
                    raise QuantityError(_SUFFIX_ERROR)
        except DecimalException as e:
            raise QuantityError(f"{_RANGE_ERROR}: {text!r}") from e

        if amount and abs(amount.adjusted()) > _MAX_EXPONENT:
            raise QuantityError(f"{_RANGE_ERROR}: {text!r}")

        return cls(amount, fmt)

    @property
    def amount(self) -> Decimal:
        return self._amount

    @property
    def format(self) -> QuantityFormat:
        return self._format

    def value(self) -> int:
        """Integer value of the quantity, rounded away from zero."""
        return int(self._amount.to_integral_value(rounding=ROUND_UP))

    def milli_value(self) -> int:
        """Value multiplied by 1000, rounded away from zero."""
        with localcontext(_CONTEXT):
            return int((self._amount * 1000).to_integral_value(rounding=ROUND_UP))

    def cmp(self, other: "Quantity") -> int:
        """Return -1, 0 or 1 comparing this quantity to another."""
        if self._amount < other._amount:
            return -1
        if self._amount > other._amount:
            return 1
        return 0

    def is_integer(self) -> bool:
        return self.milli_value() % 1000 == 0

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._amount == other._amount

    def __lt__(self, other: "Quantity") -> bool:
        return self.cmp(other) < 0

    def __gt__(self, other: "Quantity") -> bool:
        return self.cmp(other) > 0

    def __hash__(self) -> int:
        return hash(self._amount)

    def __str__(self) -> str:
        if self._amount == 0:
            return "0"

        if self._format is QuantityFormat.BINARY_SI:
            binary = self._format_binary()
            if binary is not None:
                return binary

        return self._format_decimal(self._format is QuantityFormat.DECIMAL_EXPONENT)

    def __repr__(self) -> str:
        return f"Quantity('{self}')"

    def _format_binary(self) -> Optional[str]:
        """Largest binary suffix that divides the amount, if any."""
        amount = self._amount
        if amount != amount.to_integral_value() or abs(amount) < 1024:
            return None

        count = int(amount)
        for suffix, power in reversed(list(BINARY_SUFFIXES.items())):
            if count % (1 << power) == 0:
                return f"{count // (1 << power)}{suffix}"
        return None

    def _format_decimal(self, exponent_form: bool) -> str:
        # Anything finer than nano units is rounded up to the next nano.
        with localcontext(_CONTEXT):
            nanos = int(self._amount.scaleb(9).to_integral_value(rounding=ROUND_UP))

        exponent = -9
        while nanos % 1000 == 0 and exponent < 18:
            nanos //= 1000
            exponent += 3

        if exponent_form:
            return str(nanos) if exponent == 0 else f"{nanos}e{exponent}"
        return f"{nanos}{_SUFFIX_BY_EXPONENT[exponent]}"


def parse_quantity(text: str) -> Quantity:
    """Shorthand for Quantity.parse."""
    return Quantity.parse(text)
