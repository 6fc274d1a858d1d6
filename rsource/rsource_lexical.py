"""
Lexical tables for R source: reserved words, the identifier grammar,
operator classes and precedence, and reserved attribute names.

Everything here is a pure function of its arguments.
"""

import re
from typing import Optional, Tuple

# Words that cannot be used as bare names.
# cf. https://stat.ethz.ch/R-manual/R-devel/library/base/html/Reserved.html
KEYWORDS = frozenset({
    "if", "else", "repeat", "while", "function", "for", "in", "next", "break",
    "TRUE", "FALSE", "NULL", "Inf", "NaN", "NA", "NA_integer_", "NA_real_",
    "NA_complex_", "NA_character_", "...",
})

# A syntactically valid name consists of letters, numbers and the dot or underline
# characters and starts with a letter or the dot not followed by a number.
# cf. https://stat.ethz.ch/R-manual/R-devel/library/base/html/make.names.html
VALID_NAME = re.compile(r"^([a-zA-Z][a-zA-Z0-9._]*|[.]([a-zA-Z._][a-zA-Z0-9._]*)?)$")

# `..1`, `..2`, ... refer to elements of `...`
_DOT_DOT_N = re.compile(r"^\.\.[0-9]+$")


def is_valid_name(name: str) -> bool:
    return name not in KEYWORDS and VALID_NAME.match(name) is not None


def escape_name(name: str) -> str:
    """Backtick-quotes a name unless it can be written bare. The empty name stays empty."""
    if not name or is_valid_name(name):
        return name
    inner = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{inner}`"


def escape_symbol(name: str) -> str:
    """Like escape_name, but leaves `...` and `..N` bare since they are valid in expressions."""
    if name == "..." or _DOT_DOT_N.match(name):
        return name
    return escape_name(name)


# =================================================================
# Operators
# =================================================================

INFIX_OPERATORS = frozenset({
    "<-", "=", "<<-", "+", "-", "*", "/", "^", "==", "!=", "<", "<=", ">=", ">",
    "&", "|", "!", "&&", "||", "~", "|>",
})

INFIX_OPERATORS_NO_SPACE = frozenset({":", "::", ":::", "$", "@"})

UNARY_OPERATORS = frozenset({"-", "+", "!", "~", "?"})

SUBSET_CLOSERS = {"[": "]", "[[": "]]"}


def is_user_infix(fun: str) -> bool:
    """True for `%op%` operators such as `%in%` or `%>%`."""
    return len(fun) >= 2 and fun[0] == "%" and fun[-1] == "%"


def is_infix(fun: str) -> bool:
    return fun in INFIX_OPERATORS or fun in INFIX_OPERATORS_NO_SPACE or is_user_infix(fun)


def is_infix_no_space(fun: str) -> bool:
    return fun in INFIX_OPERATORS_NO_SPACE


def is_binary(fun: str) -> bool:
    """Infix operators that can sit between two operands; `!` is prefix only."""
    return is_infix(fun) and fun != "!"


# Binding strength, loosest first, after R's ?Syntax.
LOWEST_PRECEDENCE = 0
POSTFIX_PRECEDENCE = 16
ATOM_PRECEDENCE = 100

_BINARY_PRECEDENCE = {
    "=": (2, "right"),
    "<-": (3, "right"), "<<-": (3, "right"),
    "~": (5, "left"),
    "||": (6, "left"), "|": (6, "left"),
    "&&": (7, "left"), "&": (7, "left"),
    "==": (9, "none"), "!=": (9, "none"), "<": (9, "none"),
    ">": (9, "none"), "<=": (9, "none"), ">=": (9, "none"),
    "+": (10, "left"), "-": (10, "left"),
    "*": (11, "left"), "/": (11, "left"),
    "|>": (12, "left"),
    ":": (13, "left"),
    "^": (15, "right"),
    # `$` and `@` chain left to right with `[` and `[[`
    "$": (POSTFIX_PRECEDENCE, "left"), "@": (POSTFIX_PRECEDENCE, "left"),
    "::": (18, "left"), ":::": (18, "left"),
}

_UNARY_PRECEDENCE = {
    "?": 1,
    "~": 5,
    "!": 8,
    "-": 14, "+": 14,
}


def binary_precedence(fun: str) -> Tuple[int, str]:
    """Returns (precedence, associativity) for an infix operator."""
    if is_user_infix(fun):
        return 12, "left"
    return _BINARY_PRECEDENCE[fun]


def unary_precedence(fun: str) -> int:
    return _UNARY_PRECEDENCE[fun]


# =================================================================
# Attributes
# =================================================================

# Attributes that `structure()` accepts under a reserved name.
SPECIAL_ATTRIBUTE_NAMES = {
    "dim": ".Dim",
    "dimnames": ".Dimnames",
    "tsp": ".Tsp",
    "names": ".Names",
    "levels": ".Label",
}

# Never emitted: names are rendered by the value itself; source references are not semantic.
SUPPRESSED_ATTRIBUTES = frozenset({"names", "srcref", "srcfile", "wholeSrcref"})

# Set by the closure extractor; stripped before rendering.
EXTRACTED_CLOSURE_MARKER = "genthat_extracted_closure"


def attribute_name(name: str) -> str:
    special: Optional[str] = SPECIAL_ATTRIBUTE_NAMES.get(name)
    if special is not None:
        return special
    return escape_name(name)
