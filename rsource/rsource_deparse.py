"""
Default literal renderer: prints atomic vectors and closures as R source,
the way R's `deparse()` does for the option bits we care about.

The renderer never prints attributes other than element names; the
serializer layers everything else on top with `structure(...)`.
"""

import enum
import math
from typing import List, Optional

from rsource.rsource_datatypes import AtomicVector, Closure, RValue
from rsource.rsource_errors import UnsupportedValueKind
from rsource.rsource_lexical import escape_name


class DeparseOption(enum.IntFlag):
    """Option bits, numbered as in R's Defn.h."""
    KEEP_INTEGER = 1
    KEEP_NA = 64
    HEX_NUMERIC = 256
    DIGITS17 = 512


DEFAULT_OPTIONS = DeparseOption.KEEP_INTEGER | DeparseOption.KEEP_NA | DeparseOption.DIGITS17

_EMPTY_VECTORS = {
    'logical': "logical(0)",
    'integer': "integer(0)",
    'double': "numeric(0)",
    'complex': "complex(0)",
    'character': "character(0)",
}

_TYPED_NA = {
    'logical': "NA",
    'integer': "NA_integer_",
    'double': "NA_real_",
    'complex': "NA_complex_",
    'character': "NA_character_",
}

_STRING_ESCAPES = {
    '"': '\\"',
    '\\': '\\\\',
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
    '\a': '\\a',
    '\b': '\\b',
    '\f': '\\f',
    '\v': '\\v',
}


def quote_string(text: str) -> str:
    """Double-quotes a string with R escapes."""
    out = []
    for ch in text:
        escaped = _STRING_ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ord(ch) < 0x20 or ord(ch) == 0x7f:
            out.append(f"\\{ord(ch):03o}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def format_double(value: float, options: DeparseOption = DEFAULT_OPTIONS) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Inf" if value > 0 else "-Inf"
    if options & DeparseOption.HEX_NUMERIC and not value.is_integer():
        return value.hex()
    text = repr(value) if options & DeparseOption.DIGITS17 else f"{value:.15g}"
    if text.endswith(".0"):
        text = text[:-2]
    return text


def _format_complex(value: complex, options: DeparseOption) -> str:
    re_part, im_part = value.real, value.imag
    if not (math.isfinite(re_part) and math.isfinite(im_part)):
        return f"complex(real={format_double(re_part, options)}, imaginary={format_double(im_part, options)})"
    sign = "-" if math.copysign(1.0, im_part) < 0 else "+"
    return f"{format_double(re_part, options)}{sign}{format_double(abs(im_part), options)}i"


def _format_scalar(kind: str, value, options: DeparseOption) -> str:
    if kind == 'logical':
        return "TRUE" if value else "FALSE"
    if kind == 'integer':
        return f"{int(value)}L" if options & DeparseOption.KEEP_INTEGER else str(int(value))
    if kind == 'double':
        return format_double(float(value), options)
    if kind == 'complex':
        return _format_complex(complex(value), options)
    return quote_string(value)


def _wrap_call(head: str, items: List[str], width_cutoff: int) -> List[str]:
    """Lays out `head(item, item, ...)`, starting a new line once one passes the cutoff."""
    lines: List[str] = []
    current = head + "("
    for i, item in enumerate(items):
        piece = item + (", " if i + 1 < len(items) else ")")
        if len(current) + len(piece) > width_cutoff and not current.endswith("("):
            lines.append(current.rstrip())
            current = ""
        current += piece
    lines.append(current)
    return lines


def _deparse_vector(vector: AtomicVector, options: DeparseOption, width_cutoff: int) -> List[str]:
    kind = vector.kind
    if not vector.values:
        return [_EMPTY_VECTORS[kind]]

    # A bare NA is logical; keep the type unless another element pins it.
    pinned = any(v is not None for v in vector.values)
    if options & DeparseOption.KEEP_NA and not pinned:
        na_text = _TYPED_NA[kind]
    else:
        na_text = "NA"

    names: Optional[List[str]] = vector.names
    items = []
    for i, value in enumerate(vector.values):
        text = na_text if value is None else _format_scalar(kind, value, options)
        name = escape_name(names[i]) if names else ""
        items.append(f"{name} = {text}" if name else text)

    if len(items) == 1 and not (names and names[0]):
        return items
    return _wrap_call("c", items, width_cutoff)


def _deparse_closure(closure: Closure, width_cutoff: int) -> List[str]:
    from rsource.rsource_config import SerializerConfig
    from rsource.rsource_serializer import Serializer
    serializer = Serializer(SerializerConfig(width_cutoff=width_cutoff))
    return serializer.format_function(closure).split("\n")


def render_literal(value: RValue, options: DeparseOption = DEFAULT_OPTIONS, width_cutoff: int = 60) -> List[str]:
    """Renders an atomic vector or a closure as lines of R source."""
    if isinstance(value, AtomicVector):
        return _deparse_vector(value, options, width_cutoff)
    if isinstance(value, Closure):
        return _deparse_closure(value, width_cutoff)
    raise UnsupportedValueKind(type(value).__name__)
