"""
Expression runtime for cluster selectors.

Provides parsing, reference checking and evaluation of CEL expressions.
"""

from .decls import BOOL, DOUBLE, DYN, INT, STRING, FunctionDecl, Type, list_type, map_type
from .environment import Environment, Program
from .errors import CheckError, DeclarationError, EvalError, ExpressionError
from .evaluator import ExpressionEvaluator
from .parser import ExpressionParser, ParseError

__all__ = [
    "Environment",
    "Program",
    "ExpressionParser",
    "ExpressionEvaluator",
    "FunctionDecl",
    "Type",
    "BOOL",
    "DOUBLE",
    "DYN",
    "INT",
    "STRING",
    "list_type",
    "map_type",
    "ExpressionError",
    "ParseError",
    "CheckError",
    "DeclarationError",
    "EvalError",
]
