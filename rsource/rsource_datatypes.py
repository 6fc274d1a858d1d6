
"""
Defines the R runtime value model that the serializer walks.

Every node is an `RValue` and carries an ordered `attributes` mapping
(R's side-band metadata). Environments are the only reference-typed
values: they compare and hash by identity and may form cycles through
their parents or their bindings.
"""

import enum
import collections.abc
from typing import List, Dict, Any, Optional, Tuple, Iterable, Union

# =================================================================
# Base Class
# =================================================================

class RValue:
    """Base class for all R runtime values."""
    def __init__(self, attributes: Optional[Dict[str, Any]] = None):
        self.attributes: Dict[str, 'RValue'] = {
            name: as_rvalue(value) for name, value in (attributes or {}).items()
        }

    def set_attribute(self, name: str, value: Any):
        """Sets an attribute; passing None or NULL removes it, like `attr(x, name) <- NULL`."""
        if value is None or value is NULL:
            self.attributes.pop(name, None)
        else:
            self.attributes[name] = as_rvalue(value)

    def __repr__(self) -> str:
        from rsource.rsource_errors import SerializationError
        from rsource.rsource_serializer import Serializer
        try:
            return Serializer().serialize(self, False)
        except SerializationError:
            return f"<{type(self).__name__}>"


def _names_attribute(names: Iterable[Optional[str]], length: int) -> 'AtomicVector':
    names = list(names)
    if len(names) != length:
        raise ValueError(f"names has length {len(names)} but the value has length {length}")
    return AtomicVector('character', [n if n is not None else "" for n in names])


class _NamedMixin:
    """Exposes the `names` attribute of a vector-like value as a list of strings."""

    @property
    def names(self) -> Optional[List[str]]:
        attr = self.attributes.get('names')
        if attr is None:
            return None
        return ["" if n is None else n for n in attr.values]

    @names.setter
    def names(self, names: Optional[Iterable[Optional[str]]]):
        if names is None:
            self.attributes.pop('names', None)
        else:
            self.attributes['names'] = _names_attribute(names, len(self))

    def name_at(self, index: int) -> str:
        names = self.names
        return names[index] if names is not None else ""


# =================================================================
# Core Value Types
# =================================================================

class RNull(RValue):
    """The R `NULL` value. Use the `NULL` singleton."""
    def __init__(self):
        super().__init__()

    def set_attribute(self, name, value):
        raise TypeError("attempt to set an attribute on NULL")

    def __eq__(self, other):
        return isinstance(other, RNull)

    def __hash__(self):
        return hash(RNull)

    def __repr__(self):
        return "NULL"


NULL = RNull()


ATOMIC_KINDS = ('logical', 'integer', 'double', 'complex', 'character')


class AtomicVector(_NamedMixin, RValue):
    """A homogeneous vector of R scalars.

    `None` elements are NA. The names of the elements live in the `names`
    attribute, the way R stores them.
    """
    def __init__(self, kind: str, values: Iterable[Any],
                 names: Optional[Iterable[Optional[str]]] = None,
                 attributes: Optional[Dict[str, RValue]] = None):
        if kind not in ATOMIC_KINDS:
            raise ValueError(f"Unknown atomic vector kind: {kind!r}")
        super().__init__(attributes)
        self.kind = kind
        self.values = list(values)
        if names is not None:
            self.names = names

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index):
        return self.values[index]

    def __eq__(self, other):
        return (
            isinstance(other, AtomicVector) and
            self.kind == other.kind and
            self.values == other.values and
            self.attributes == other.attributes
        )

    __hash__ = None


def logical(*values: Optional[bool], **kw) -> AtomicVector:
    return AtomicVector('logical', values, **kw)


def integer(*values: Optional[int], **kw) -> AtomicVector:
    return AtomicVector('integer', values, **kw)


def double(*values: Optional[float], **kw) -> AtomicVector:
    return AtomicVector('double', values, **kw)


def complex_(*values: Optional[complex], **kw) -> AtomicVector:
    return AtomicVector('complex', values, **kw)


def character(*values: Optional[str], **kw) -> AtomicVector:
    return AtomicVector('character', values, **kw)


class Symbol(RValue):
    """An R symbol (a name). The empty symbol is the missing-argument marker."""
    def __init__(self, name: str):
        super().__init__()
        if not isinstance(name, str):
            raise TypeError(f"Symbol name must be a str, not {type(name)}")
        self.name = name

    @property
    def is_missing(self) -> bool:
        return self.name == ""

    def set_attribute(self, name, value):
        raise TypeError("cannot set attribute on a symbol")

    def __eq__(self, other):
        return isinstance(other, Symbol) and self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Symbol<{self.name!r}>"


MISSING_ARG = Symbol("")


def sym(name: str) -> Symbol:
    return Symbol(name)


class RList(_NamedMixin, RValue, collections.abc.MutableSequence):
    """A generic R vector, as built by `list(...)`."""
    def __init__(self, elements: Iterable[RValue] = (),
                 names: Optional[Iterable[Optional[str]]] = None,
                 attributes: Optional[Dict[str, RValue]] = None):
        super().__init__(attributes)
        self.elements: List[RValue] = [as_rvalue(e) for e in elements]
        if names is not None:
            self.names = names

    @classmethod
    def of(cls, *args, **kwargs) -> 'RList':
        """Builds a list from positional (unnamed) then keyword (named) elements."""
        names = [""] * len(args) + list(kwargs.keys())
        elements = list(args) + list(kwargs.values())
        return cls(elements, names=names if kwargs else None)

    def __getitem__(self, index):
        return self.elements[index]

    def __setitem__(self, index, value):
        self.elements[index] = as_rvalue(value)

    def __delitem__(self, index):
        names = self.names
        del self.elements[index]
        if names is not None:
            del names[index]
            self.names = names

    def __len__(self) -> int:
        return len(self.elements)

    def insert(self, index, value):
        names = self.names
        self.elements.insert(index, as_rvalue(value))
        if names is not None:
            names.insert(index, "")
            self.names = names

    def items(self) -> List[Tuple[str, RValue]]:
        """Returns (name, element) pairs; unnamed elements have an empty name."""
        names = self.names or [""] * len(self.elements)
        return list(zip(names, self.elements))

    def __eq__(self, other):
        return (
            isinstance(other, RList) and
            self.elements == other.elements and
            self.attributes == other.attributes
        )

    __hash__ = None


ArgName = Optional[str]


class PairList(RValue, collections.abc.MutableSequence):
    """An R pairlist: an ordered association of (name, value) pairs.

    Used for argument lists of calls and for the formals of closures.
    An item may be given as a bare value, which makes it unnamed.
    """
    def __init__(self, items: Iterable[Any] = ()):
        super().__init__()
        self.items: List[Tuple[ArgName, RValue]] = [_normalize_pair(item) for item in items]

    def __getitem__(self, index):
        return self.items[index]

    def __setitem__(self, index, item):
        self.items[index] = _normalize_pair(item)

    def __delitem__(self, index):
        del self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    def insert(self, index, item):
        self.items.insert(index, _normalize_pair(item))

    @property
    def names(self) -> List[ArgName]:
        return [name for name, _ in self.items]

    @property
    def values(self) -> List[RValue]:
        return [value for _, value in self.items]

    def __eq__(self, other):
        return isinstance(other, PairList) and self.items == other.items

    __hash__ = None


def _normalize_pair(item: Any) -> Tuple[ArgName, RValue]:
    if isinstance(item, tuple):
        if len(item) != 2:
            raise ValueError(f"Pair must be (name, value), got {item!r}")
        name, value = item
        # The name is checked by the serializer; keep it verbatim here.
        return name, as_rvalue(value)
    return None, as_rvalue(item)


def formals(*names: str, **defaults: Any) -> PairList:
    """Builds a formals pairlist: bare names have no default (`function(x)`)."""
    items = [(n, MISSING_ARG) for n in names]
    items.extend((n, v) for n, v in defaults.items())
    return PairList(items)


class CallExpression(RValue):
    """An R call (language object): a head applied to an argument pairlist.

    The head is usually a Symbol naming the function or operator, but can
    be any value, e.g. another call as in `f(x)(y)`.
    """
    def __init__(self, function: Any, args: Union[PairList, Iterable[Any]] = ()):
        super().__init__()
        if isinstance(function, str):
            function = Symbol(function)
        self.function = as_rvalue(function)
        self.args: PairList = args if isinstance(args, PairList) else PairList(args)

    @property
    def function_name(self) -> Optional[str]:
        """The head's name when the head is a symbol, else None."""
        return self.function.name if isinstance(self.function, Symbol) else None

    def __eq__(self, other):
        return (
            isinstance(other, CallExpression) and
            self.function == other.function and
            self.args == other.args
        )

    __hash__ = None


def call(function: Union[str, RValue], *args: Any, **kwargs: Any) -> CallExpression:
    """Builds a call. Positional tuples are (name, value) pairs; keywords are named arguments."""
    items = list(args) + list(kwargs.items())
    return CallExpression(function, PairList(items))


class Closure(RValue):
    """An R function: formals, a body expression and its enclosing environment.

    Without an explicit environment the closure is enclosed by GLOBAL_ENV.
    """
    def __init__(self, formals: Union[PairList, Iterable[Any]], body: Any,
                 environment: Optional['Environment'] = None,
                 attributes: Optional[Dict[str, RValue]] = None):
        super().__init__(attributes)
        self.formals: PairList = formals if isinstance(formals, PairList) else PairList(formals)
        self.body = as_rvalue(body)
        self.environment = environment if environment is not None else GLOBAL_ENV

    def with_environment(self, environment: 'Environment') -> 'Closure':
        """Returns a copy of this closure enclosed by another environment."""
        return Closure(self.formals, self.body, environment, attributes=self.attributes)

    def __eq__(self, other):
        if not isinstance(other, Closure):
            return NotImplemented
        # NOTE: environment comparison is intentionally omitted.
        return self.formals == other.formals and self.body == other.body

    __hash__ = None


# =================================================================
# Environments
# =================================================================

class Environment(RValue):
    """An R environment: a mutable frame of bindings plus an enclosing parent.

    Environments have reference semantics: equality and hashing are by
    identity, and the same environment may be reachable from many places.
    """
    is_root = False

    def __init__(self, bindings: Optional[Dict[str, Any]] = None,
                 parent: Optional['Environment'] = None,
                 attributes: Optional[Dict[str, RValue]] = None):
        super().__init__(attributes)
        self.bindings: Dict[str, RValue] = {}
        self.parent = parent
        for key, value in (bindings or {}).items():
            self[key] = value

    def __setitem__(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Environment key must be a str, not {type(key)}")
        self.bindings[key] = as_rvalue(value)

    def __getitem__(self, key: str) -> RValue:
        return self.bindings[key]

    def __delitem__(self, key: str):
        del self.bindings[key]

    def __contains__(self, key: str) -> bool:
        return key in self.bindings

    def keys(self) -> collections.abc.KeysView:
        """Returns a view of the names bound in this frame only."""
        return self.bindings.keys()

    def find_owner(self, key: str) -> Optional['Environment']:
        """Finds the environment on the enclosure chain (self → parent → ...) that binds key."""
        env = self
        seen = set()
        while env is not None and id(env) not in seen:
            if key in env.bindings:
                return env
            seen.add(id(env))
            env = env.parent
        return None

    def get(self, key: str, default: Any = None) -> Any:
        owner = self.find_owner(key)
        if owner is not None:
            return owner.bindings[key]
        return default

    def __eq__(self, other):
        return self is other

    def __hash__(self):
        return id(self)

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent is not None else ""
        return f"<Environment bindings=[{keys}]{parent_id}>"


class _RootEnvironment(Environment):
    """Internal helper class for the interpreter's fixed top-level environments."""
    is_root = True

    def __init__(self, label: str, parent: Optional[Environment] = None):
        super().__init__(parent=parent)
        self._label = label

    def __repr__(self):
        return f"<Environment {self._label}>"


class PackageEnvironment(Environment):
    """An attached package on the search path, e.g. `package:stats`."""
    is_root = True

    def __init__(self, package: str, parent: Optional[Environment] = None):
        super().__init__(parent=parent)
        self.package = package

    def __repr__(self):
        return f"<Environment package:{self.package}>"


class NamespaceEnvironment(Environment):
    """The namespace of a loaded package, as returned by `getNamespace()`."""
    is_root = True

    def __init__(self, package: str, parent: Optional[Environment] = None):
        super().__init__(parent=parent)
        self.package = package

    def __repr__(self):
        return f"<Environment namespace:{self.package}>"


# Singleton instances for the well-known roots
EMPTY_ENV = _RootEnvironment("R_EmptyEnv")
BASE_ENV = _RootEnvironment("base", parent=EMPTY_ENV)
GLOBAL_ENV = _RootEnvironment("R_GlobalEnv", parent=BASE_ENV)
BASE_NAMESPACE = _RootEnvironment("namespace:base", parent=GLOBAL_ENV)


# =================================================================
# Unsupported Kinds
# =================================================================

class UnsupportedKind(enum.Enum):
    """Value kinds the serializer refuses to render, tagged with R's SEXP type names."""
    SPECIALSXP = "SPECIALSXP"
    BUILTINSXP = "BUILTINSXP"
    EXTPTRSXP = "EXTPTRSXP"
    BCODESXP = "BCODESXP"
    WEAKREFSXP = "WEAKREFSXP"
    DOTSXP = "DOTSXP"
    CHARSXP = "CHARSXP"
    EXPRSXP = "EXPRSXP"
    RAWSXP = "RAWSXP"
    PROMSXP = "PROMSXP"
    S4SXP = "S4SXP"
    UNKNOWN = "unknown"


class UnsupportedValue(RValue):
    """A value of a kind with no textual rendering (builtins, pointers, promises, ...)."""
    def __init__(self, kind: UnsupportedKind, payload: Any = None):
        super().__init__()
        self.kind = kind
        self.payload = payload

    def __repr__(self) -> str:
        return f"<UnsupportedValue {self.kind.value}>"


# =================================================================
# Conversion
# =================================================================

def as_rvalue(obj: Any) -> RValue:
    """Wraps a Python scalar as a length-one R vector.

    Python ints map to doubles, as the literal `1` does in R source; use
    `integer(...)` for `1L`.
    """
    if isinstance(obj, RValue):
        return obj
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return AtomicVector('logical', [obj])
    if isinstance(obj, (int, float)):
        return AtomicVector('double', [float(obj)])
    if isinstance(obj, complex):
        return AtomicVector('complex', [obj])
    if isinstance(obj, str):
        return AtomicVector('character', [obj])
    raise TypeError(f"Cannot convert {type(obj).__name__} to an R value")
