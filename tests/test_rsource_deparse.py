import pytest
from rsource.rsource_deparse import (
    render_literal, format_double, quote_string, DeparseOption, DEFAULT_OPTIONS,
)
from rsource.rsource_errors import UnsupportedValueKind
from rsource.rsource_datatypes import (
    Closure, RList, sym, call, formals, logical, integer, double, complex_, character,
)

# Test cases: (id, value, expected_lines)
LITERAL_TEST_CASES = [
    ("true", logical(True), ["TRUE"]),
    ("false", logical(False), ["FALSE"]),
    ("integer", integer(5), ["5L"]),
    ("negative_integer", integer(-3), ["-3L"]),
    ("double", double(1.5), ["1.5"]),
    ("integral_double", double(2.0), ["2"]),
    ("small_double", double(1e-20), ["1e-20"]),
    ("tenth", double(0.1), ["0.1"]),
    ("third_full_precision", double(1 / 3), ["0.3333333333333333"]),
    ("special_doubles", double(float("nan"), float("inf"), float("-inf")), ["c(NaN, Inf, -Inf)"]),
    ("string", character("a"), ['"a"']),
    ("vector", integer(1, 2, 3), ["c(1L, 2L, 3L)"]),
    ("complex", complex_(1 - 2j), ["1-2i"]),
    ("complex_non_finite", complex_(complex(float("inf"), 1)), ["complex(real=Inf, imaginary=1)"]),
    # NA keeps its type only when nothing else pins it
    ("logical_na", logical(None), ["NA"]),
    ("integer_na", integer(None), ["NA_integer_"]),
    ("double_na", double(None), ["NA_real_"]),
    ("complex_na", complex_(None), ["NA_complex_"]),
    ("character_na", character(None, None), ["c(NA_character_, NA_character_)"]),
    ("pinned_na", integer(1, None), ["c(1L, NA)"]),
    # Empty vectors
    ("empty_logical", logical(), ["logical(0)"]),
    ("empty_integer", integer(), ["integer(0)"]),
    ("empty_double", double(), ["numeric(0)"]),
    ("empty_complex", complex_(), ["complex(0)"]),
    ("empty_character", character(), ["character(0)"]),
    # Names
    ("named_scalar", character("x", names=["a"]), ['c(a = "x")']),
    ("named_vector", double(1, 2, names=["a", "my b"]), ["c(a = 1, `my b` = 2)"]),
    ("partially_named", double(1, 2, names=["a", ""]), ["c(a = 1, 2)"]),
]


@pytest.mark.parametrize(
    "test_id, value, expected",
    LITERAL_TEST_CASES,
    ids=[t[0] for t in LITERAL_TEST_CASES]
)
def test_render_literal(test_id, value, expected):
    assert render_literal(value) == expected


def test_integer_suffix_needs_keep_integer():
    assert render_literal(integer(5), DeparseOption.KEEP_NA) == ["5"]

def test_na_is_untyped_without_keep_na():
    assert render_literal(integer(None), DeparseOption.KEEP_INTEGER) == ["NA"]

def test_double_digits():
    assert format_double(1 / 3, DeparseOption(0)) == "0.333333333333333"
    assert format_double(1 / 3, DEFAULT_OPTIONS) == "0.3333333333333333"

def test_hex_numeric():
    options = DEFAULT_OPTIONS | DeparseOption.HEX_NUMERIC
    assert format_double(0.5, options) == (0.5).hex()
    # whole numbers stay decimal
    assert format_double(2.0, options) == "2"

def test_quote_string_escapes():
    assert quote_string('a"b') == '"a\\"b"'
    assert quote_string("a\\b") == '"a\\\\b"'
    assert quote_string("line\nnext\ttab") == '"line\\nnext\\ttab"'
    assert quote_string("\x01") == '"\\001"'
    assert quote_string("héllo") == '"héllo"'

def test_long_vector_is_wrapped():
    lines = render_literal(integer(*range(1, 11)), DEFAULT_OPTIONS, 20)
    assert len(lines) > 1
    assert lines[0].startswith("c(")
    assert lines[-1].endswith(")")
    assert all(len(line) <= 20 for line in lines)

def test_render_closure():
    f = Closure(formals("x"), call("{", sym("x")))
    assert render_literal(f) == ["function(x) {", "\tx", "}"]

def test_render_unsupported_value():
    with pytest.raises(UnsupportedValueKind) as exc_info:
        render_literal(RList())
    assert exc_info.value.tag == "RList"
