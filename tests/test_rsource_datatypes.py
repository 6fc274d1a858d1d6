import pytest
from rsource.rsource_datatypes import (
    NULL, MISSING_ARG, RNull, AtomicVector, Symbol, RList, PairList, CallExpression,
    Closure, Environment, GLOBAL_ENV, BASE_ENV, EMPTY_ENV,
    sym, call, formals, integer, double, character, logical, as_rvalue,
)

# --- Conversion ---

@pytest.mark.parametrize("obj, kind, values", [
    (True, "logical", [True]),
    (1, "double", [1.0]),
    (1.5, "double", [1.5]),
    (1 + 2j, "complex", [1 + 2j]),
    ("a", "character", ["a"]),
])
def test_as_rvalue_scalars(obj, kind, values):
    value = as_rvalue(obj)
    assert isinstance(value, AtomicVector)
    assert value.kind == kind
    assert value.values == values

def test_as_rvalue_none_and_passthrough():
    assert as_rvalue(None) is NULL
    s = sym("x")
    assert as_rvalue(s) is s

def test_as_rvalue_rejects_other_objects():
    with pytest.raises(TypeError):
        as_rvalue(object())

# --- Vectors and attributes ---

def test_unknown_atomic_kind():
    with pytest.raises(ValueError):
        AtomicVector("raw", [1])

def test_vector_names():
    v = double(1, 2, names=["a", None])
    assert v.names == ["a", ""]
    assert v.name_at(0) == "a"
    assert v.attributes["names"] == character("a", "")

def test_names_length_mismatch():
    with pytest.raises(ValueError):
        double(1, 2, names=["a"])

def test_set_attribute():
    v = integer(1)
    v.set_attribute("class", "foo")
    assert v.attributes["class"] == character("foo")
    v.set_attribute("class", None)
    assert "class" not in v.attributes
    v.set_attribute("dim", integer(1))
    v.set_attribute("dim", NULL)
    assert v.attributes == {}

def test_null_and_symbols_take_no_attributes():
    with pytest.raises(TypeError):
        NULL.set_attribute("a", 1)
    with pytest.raises(TypeError):
        sym("x").set_attribute("a", 1)

def test_null_singleton():
    assert RNull() == NULL
    assert repr(NULL) == "NULL"

def test_missing_arg():
    assert MISSING_ARG.is_missing
    assert not sym("x").is_missing
    assert sym("x") == Symbol("x")

# --- Lists and pairlists ---

def test_list_of():
    lst = RList.of(1, a=2)
    assert lst.names == ["", "a"]
    assert lst.items() == [("", double(1)), ("a", double(2))]
    assert RList.of(1, 2).names is None

def test_list_mutation_keeps_names_aligned():
    lst = RList.of(a=1, b=2, c=3)
    del lst[1]
    assert lst.names == ["a", "c"]
    lst.insert(0, 9)
    assert lst.names == ["", "a", "c"]
    assert lst[0] == double(9)

def test_pairlist_items():
    pl = PairList([("x", 1), sym("y")])
    assert pl.names == ["x", None]
    assert pl.values == [double(1), sym("y")]
    with pytest.raises(ValueError):
        PairList([("x", 1, 2)])

def test_formals():
    pl = formals("x", y=2)
    assert pl.items == [("x", MISSING_ARG), ("y", double(2))]

def test_call_builder():
    c = call("f", 1, ("a", 2), b=3)
    assert isinstance(c, CallExpression)
    assert c.function == sym("f")
    assert c.function_name == "f"
    assert c.args.names == [None, "a", "b"]

def test_call_with_call_head():
    c = CallExpression(call("f"), [1])
    assert c.function_name is None

# --- Closures and environments ---

def test_closure_default_environment():
    f = Closure(formals("x"), sym("x"))
    assert f.environment is GLOBAL_ENV

def test_closure_with_environment():
    env = Environment()
    f = Closure(formals(), 1, attributes={"class": "fn"})
    g = f.with_environment(env)
    assert g.environment is env
    assert f.environment is GLOBAL_ENV
    assert g.attributes == f.attributes
    g.set_attribute("class", None)
    assert "class" in f.attributes

def test_environment_identity():
    a = Environment({"x": 1})
    b = Environment({"x": 1})
    assert a == a
    assert a != b
    assert len({a, b}) == 2

def test_environment_bindings():
    env = Environment()
    env["x"] = 1
    assert env["x"] == double(1)
    assert "x" in env
    del env["x"]
    assert "x" not in env
    with pytest.raises(TypeError):
        env[1] = 1

def test_environment_lookup_follows_parents():
    parent = Environment({"a": 1, "b": 2})
    child = Environment({"b": 20}, parent=parent)
    assert child.get("a") == double(1)
    assert child.get("b") == double(20)
    assert child.get("c") is None
    assert child.find_owner("a") is parent
    assert "a" not in child.keys()

def test_environment_lookup_survives_cycles():
    a = Environment()
    b = Environment(parent=a)
    a.parent = b
    assert a.get("missing", "default") == "default"

def test_root_chain():
    assert GLOBAL_ENV.parent is BASE_ENV
    assert BASE_ENV.parent is EMPTY_ENV
    assert EMPTY_ENV.parent is None
    assert GLOBAL_ENV.is_root
    assert not Environment().is_root

def test_repr_of_values():
    assert repr(logical(True)) == "TRUE"
    assert repr(sym("x")) == "Symbol<'x'>"
