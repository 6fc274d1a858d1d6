"""
A serializer turning R runtime values into R source text that rebuilds them.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Set, Tuple

from rsource.rsource_config import DEFAULT_CONFIG, SerializerConfig
from rsource.rsource_datatypes import (
    RValue, RNull, AtomicVector, Symbol, RList, PairList, CallExpression,
    Closure, Environment, UnsupportedValue, as_rvalue,
)
from rsource.rsource_deparse import DEFAULT_OPTIONS, render_literal as default_render_literal
from rsource.rsource_closures import (
    environment_name_as_code, extract_closure as default_extract_closure,
)
from rsource.rsource_errors import (
    SerializationError, UnsupportedValueKind, CycleDetected,
    MalformedArgumentName, MalformedExpression, NestingTooDeep,
)
from rsource.rsource_lexical import (
    escape_name, escape_symbol, attribute_name, is_binary, is_infix_no_space,
    binary_precedence, unary_precedence, UNARY_OPERATORS, SUBSET_CLOSERS,
    SUPPRESSED_ATTRIBUTES, EXTRACTED_CLOSURE_MARKER,
    LOWEST_PRECEDENCE, POSTFIX_PRECEDENCE, ATOM_PRECEDENCE,
)

logger = logging.getLogger(__name__)

RenderLiteral = Callable[..., List[str]]
ExtractClosure = Callable[[Closure], Tuple[Closure, Environment]]
ResolveRoot = Callable[[Environment], Optional[str]]

# Forms whose last operand runs to the end of the expression.
_OPEN_ENDED = frozenset({"function", "if", "for", "while", "repeat"})

_NULLARY_FORMS = frozenset({"{", "break", "next"})


def _is_equals_assignment(value) -> bool:
    return isinstance(value, CallExpression) and value.function_name == "=" and len(value.args) == 2


class _SerializationState:
    """Bookkeeping of one top-level serialize() call."""
    __slots__ = ("active", "depth", "extracted")

    def __init__(self):
        # ids of the environments on the current rendering path
        self.active: Set[int] = set()
        self.depth = 0
        # closure id -> (closure, extraction result); the closure keeps its id alive
        self.extracted: Dict[int, Tuple[Closure, Tuple[Closure, Environment]]] = {}


class Serializer:
    """Formats R values into valid, round-trippable R source strings.

    The literal renderer, the closure extractor and the root-environment
    resolver are plain callables and can be swapped out. The instance keeps
    no per-call state and may be shared.
    """

    def __init__(self, config: Optional[SerializerConfig] = None,
                 render_literal: Optional[RenderLiteral] = None,
                 extract_closure: Optional[ExtractClosure] = None,
                 resolve_root: Optional[ResolveRoot] = None):
        self.config = config or DEFAULT_CONFIG
        self._render_literal = render_literal or default_render_literal
        self._extract_closure = extract_closure or default_extract_closure
        self._resolve_root = resolve_root or environment_name_as_code
        self._handlers = self._create_handlers()
        self._call_formatters = self._create_call_formatters()

    def serialize(self, value: Any, quote: bool = False) -> str:
        """Public entry point to format a value.

        With `quote`, symbols and calls are wrapped in `quote(...)` so the
        text evaluates to the language object instead of evaluating it.
        """
        state = _SerializationState()
        try:
            return self._serialize(as_rvalue(value), quote, state)
        except RecursionError as e:
            raise NestingTooDeep(self.config.max_depth) from e

    def format_function(self, closure: Closure) -> str:
        """Formats a closure's formals and body as `function(...) body`."""
        return self._format_function_parts(closure.formals, closure.body, _SerializationState())

    def _serialize(self, value: RValue, quote: bool, state: _SerializationState) -> str:
        state.depth += 1
        try:
            if state.depth > self.config.max_depth:
                raise NestingTooDeep(self.config.max_depth)
            handler = self._get_handler(value)
            return handler(value, quote, state)
        finally:
            state.depth -= 1

    def _get_handler(self, value):
        """Dispatcher to find the correct formatting method."""
        handler = self._handlers.get(type(value))
        if handler is not None:
            return handler
        # Subclasses, e.g. the well-known environments
        for value_type, handler in self._handlers.items():
            if isinstance(value, value_type):
                return handler
        return self._serialize_unknown

    def _create_handlers(self):
        return {
            RNull: self._serialize_null,
            AtomicVector: self._serialize_atomic,
            Symbol: self._serialize_symbol,
            RList: self._serialize_list,
            PairList: self._serialize_pairlist,
            Environment: self._serialize_environment,
            CallExpression: self._serialize_call,
            Closure: self._serialize_closure,
            UnsupportedValue: self._serialize_unsupported,
        }

    # -----------------------------------------------------------------
    # Values
    # -----------------------------------------------------------------

    def _serialize_null(self, value, quote, state):
        return "NULL"

    def _serialize_atomic(self, value, quote, state):
        lines = self._render_literal(value, DEFAULT_OPTIONS, self.config.width_cutoff)
        return self._wrap_in_attributes(value, "\n".join(lines), state)

    def _serialize_symbol(self, value, quote, state):
        if value.is_missing:
            return "quote(expr=)" if quote else ""
        text = escape_symbol(value.name)
        return f"quote({text})" if quote else text

    def _serialize_list(self, value, quote, state):
        args = []
        for name, element in value.items():
            text = self._serialize(element, True, state)
            name = escape_name(name)
            args.append(f"{name}={text}" if name else text)
        return self._wrap_in_attributes(value, f"list({', '.join(args)})", state)

    def _serialize_pairlist(self, value, quote, state):
        args = self._format_arguments(value, state)
        return f"alist({args})"

    def _serialize_unsupported(self, value, quote, state):
        raise UnsupportedValueKind(value.kind.value)

    def _serialize_unknown(self, value, quote, state):
        raise UnsupportedValueKind(type(value).__name__)

    def _wrap_in_attributes(self, value: RValue, text: str, state: _SerializationState) -> str:
        elems = []
        for name, attr in value.attributes.items():
            if name in SUPPRESSED_ATTRIBUTES:
                continue
            elems.append(f"{attribute_name(name)}={self._serialize(attr, True, state)}")
        if not elems:
            return text
        return f"structure({text}, {', '.join(elems)})"

    # -----------------------------------------------------------------
    # Environments and closures
    # -----------------------------------------------------------------

    def _serialize_environment(self, env, quote, state):
        root = self._resolve_root(env)
        if root is not None:
            return root

        if id(env) in state.active:
            logger.debug("Environment %#x reached again while being serialized", id(env))
            raise CycleDetected(env)

        state.active.add(id(env))
        logger.debug("Serializing environment %#x (%d bindings)", id(env), len(env.bindings))
        try:
            names = sorted(env.keys()) if self.config.sort_bindings else list(env.keys())
            elems = [f"{escape_name(name)}={self._serialize(env[name], True, state)}" for name in names]
            parent_arg = self._format_parent(env, state)
            text = f"list2env(list({', '.join(elems)}){parent_arg})"
            return self._wrap_in_attributes(env, text, state)
        finally:
            state.active.discard(id(env))

    def _format_parent(self, env: Environment, state: _SerializationState) -> str:
        parent = env.parent
        if parent is None:
            return ""
        root = self._resolve_root(parent)
        if root is not None:
            return f", parent={root}"
        if id(parent) in state.active:
            if self.config.omit_active_parent:
                logger.warning("Omitting parent of environment %#x: %#x is already being serialized",
                               id(env), id(parent))
                return ""
            raise CycleDetected(parent)
        return f", parent={self._serialize(parent, False, state)}"

    def _extract(self, closure: Closure, state: _SerializationState) -> Tuple[Closure, Environment]:
        cached = state.extracted.get(id(closure))
        if cached is not None:
            return cached[1]
        result = self._extract_closure(closure)
        state.extracted[id(closure)] = (closure, result)
        return result

    def _serialize_closure(self, closure, quote, state):
        extracted, env = self._extract(closure, state)
        # Drop the extractor's marker so it does not leak into the output.
        attributes = {k: v for k, v in extracted.attributes.items() if k != EXTRACTED_CLOSURE_MARKER}
        extracted = Closure(extracted.formals, extracted.body, extracted.environment, attributes=attributes)

        env_code = self._resolve_root(env) if isinstance(env, Environment) else None
        if env_code is None:
            env_code = self._serialize(as_rvalue(env), False, state)
        else:
            logger.debug("Closure %#x is enclosed by %s", id(closure), env_code)

        fun_code = "\n".join(self._render_literal(extracted, DEFAULT_OPTIONS, self.config.width_cutoff))
        fun_code = self._wrap_in_attributes(extracted, fun_code, state)
        return f"genthat::with_env({fun_code}, env={env_code})"

    # -----------------------------------------------------------------
    # Calls
    # -----------------------------------------------------------------

    def _create_call_formatters(self):
        return {
            "[": self._format_subset,
            "[[": self._format_subset,
            "function": self._format_function,
            "{": self._format_block,
            "(": self._format_group,
            "if": self._format_if,
            "for": self._format_for,
            "while": self._format_while,
            "repeat": self._format_repeat,
            "break": self._format_jump,
            "next": self._format_jump,
        }

    def _serialize_call(self, call, quote, state):
        if not quote:
            self._check_code_attributes(call)
            return self._format_call(call, state)
        # quote() takes a single argument named `expr`
        if _is_equals_assignment(call):
            text = self._format_plain_call("=", call.args, state)
        else:
            text = self._format_call(call, state)
        return self._wrap_in_attributes(call, f"quote({text})", state)

    def _check_code_attributes(self, call: CallExpression):
        """Calls written as code have no place to carry attributes."""
        names = [name for name in call.attributes if name not in SUPPRESSED_ATTRIBUTES]
        if names:
            raise MalformedExpression(
                f"call to {call.function_name or 'an anonymous function'} has attributes "
                f"({', '.join(names)}) that cannot be written in code position"
            )

    def _format_expression(self, value: RValue, state: _SerializationState) -> str:
        """Formats value where an argument is expected, so `a = b` cannot pass for a named argument."""
        if _is_equals_assignment(value):
            self._check_code_attributes(value)
            return self._format_plain_call("=", value.args, state)
        return self._serialize(value, False, state)

    def _format_plain_call(self, fun: str, args: PairList, state: _SerializationState) -> str:
        return f"{escape_symbol(fun)}({self._format_arguments(args, state)})"

    def _format_call(self, call: CallExpression, state: _SerializationState) -> str:
        fun = call.function_name
        args = call.args

        if fun is None:
            head = self._serialize(call.function, False, state)
            if self._precedence(call.function, head) < POSTFIX_PRECEDENCE or self._ends_open(call.function):
                head = f"({head})"
            return f"{head}({self._format_arguments(args, state)})"

        if is_binary(fun) and len(args) == 2:
            return self._format_infix(fun, args, state)
        if fun in UNARY_OPERATORS and len(args) == 1:
            return self._format_unary(fun, args, state)

        formatter = self._call_formatters.get(fun)
        if formatter is not None and (args or fun in _NULLARY_FORMS):
            return formatter(fun, args, state)

        # Plain calls, and operators used with an unusual arity: `+`(1, 2, 3)
        return self._format_plain_call(fun, args, state)

    def _format_infix(self, fun, args, state):
        (_, lhs), (_, rhs) = args.items
        precedence, assoc = binary_precedence(fun)
        left = self._format_operand(lhs, precedence, assoc, "left", state)
        right = self._format_operand(rhs, precedence, assoc, "right", state)
        space = "" if is_infix_no_space(fun) else " "
        return f"{left}{space}{fun}{space}{right}"

    def _format_unary(self, fun, args, state):
        operand = self._format_operand(args.values[0], unary_precedence(fun), "right", "right", state)
        return f"{fun}{operand}"

    def _format_subset(self, fun, args, state):
        collection = self._format_operand(args.values[0], POSTFIX_PRECEDENCE, "left", "left", state)
        subset = self._format_arguments(PairList(args.items[1:]), state)
        return f"{collection}{fun}{subset}{SUBSET_CLOSERS[fun]}"

    def _format_function(self, fun, args, state):
        if len(args) < 2:
            raise MalformedExpression(f"function needs formals and a body, got {len(args)} arguments")
        return self._format_function_parts(args.values[0], args.values[1], state)

    def _format_function_parts(self, formals, body, state):
        if isinstance(formals, RNull):
            formals = PairList()
        if not isinstance(formals, PairList):
            raise MalformedExpression(f"function formals must be a pairlist, not {type(formals).__name__}")
        params = self._format_arguments(formals, state, bare_missing=True)
        return f"function({params}) {self._serialize(body, False, state)}"

    def _format_block(self, fun, args, state):
        if not args:
            return "{\n}"
        indent = self.config.indent
        lines = []
        for statement in args.values:
            text = self._serialize(statement, False, state)
            lines.extend(indent + line for line in text.split("\n"))
        return "{\n" + "\n".join(lines) + "\n}"

    def _format_group(self, fun, args, state):
        if len(args) == 1 and args.names[0] is None:
            # `(a = b)` is the usual way to write an `=` assignment as a value
            return f"({self._serialize(args.values[0], False, state)})"
        return self._format_plain_call(fun, args, state)

    def _format_if(self, fun, args, state):
        if len(args) not in (2, 3):
            raise MalformedExpression(f"if needs 2 or 3 arguments, got {len(args)}")
        values = args.values
        cond = self._format_expression(values[0], state)
        then = self._serialize(values[1], False, state)
        if len(values) == 2:
            return f"if ({cond}) {then}"
        # a trailing else-less `if` in the then-branch would capture our `else`
        if self._ends_open(values[1]):
            then = f"({then})"
        return f"if ({cond}) {then} else {self._serialize(values[2], False, state)}"

    def _format_for(self, fun, args, state):
        if len(args) != 3 or not isinstance(args.values[0], Symbol):
            raise MalformedExpression("for needs a loop variable, a sequence and a body")
        var_value, seq_value, body_value = args.values
        var = self._serialize(var_value, False, state)
        seq = self._format_expression(seq_value, state)
        return f"for ({var} in {seq}) {self._serialize(body_value, False, state)}"

    def _format_while(self, fun, args, state):
        if len(args) != 2:
            raise MalformedExpression(f"while needs 2 arguments, got {len(args)}")
        cond = self._format_expression(args.values[0], state)
        return f"while ({cond}) {self._serialize(args.values[1], False, state)}"

    def _format_repeat(self, fun, args, state):
        if len(args) != 1:
            raise MalformedExpression(f"repeat needs 1 argument, got {len(args)}")
        return f"repeat {self._serialize(args.values[0], False, state)}"

    def _format_jump(self, fun, args, state):
        if args:
            raise MalformedExpression(f"{fun} takes no arguments")
        return fun

    def _format_arguments(self, args: PairList, state: _SerializationState, sep: str = ", ",
                          bare_missing: bool = False) -> str:
        return sep.join(self._format_argument(name, value, state, bare_missing) for name, value in args.items)

    def _format_argument(self, name, value, state, bare_missing=False) -> str:
        if name is None:
            name_text = ""
        elif isinstance(name, str):
            name_text = escape_symbol(name)
        elif isinstance(name, Symbol):
            name_text = escape_symbol(name.name)
        else:
            raise MalformedArgumentName(name)

        text = self._format_expression(value, state)
        if name_text and text:
            return f"{name_text}={text}"
        if name_text:
            # formals without a default are bare; a missing call argument keeps its `=`
            return name_text if bare_missing else f"{name_text}="
        return text

    # -----------------------------------------------------------------
    # Precedence
    # -----------------------------------------------------------------

    def _format_operand(self, value, precedence, assoc, side, state) -> str:
        text = self._serialize(value, False, state)
        return f"({text})" if self._needs_parens(value, text, precedence, assoc, side) else text

    def _needs_parens(self, value, text, precedence, assoc, side) -> bool:
        # anything written after an open-ended tail becomes part of its body
        if side == "left" and self._ends_open(value):
            return True
        own = self._precedence(value, text)
        if own >= ATOM_PRECEDENCE:
            return False
        if side == "right" and isinstance(value, CallExpression) and value.function_name in _OPEN_ENDED:
            return False
        if side == "left":
            return own < precedence or (own == precedence and assoc != "left")
        return own < precedence or (own == precedence and assoc != "right")

    def _ends_open(self, value: RValue) -> bool:
        """True when the text of value ends in the body of `function`, `if` or a loop.

        Follows the right-hand operands of operators down to the last
        unparenthesised one.
        """
        while isinstance(value, CallExpression):
            fun = value.function_name
            operands = value.args.values
            if fun is None:
                return False
            if fun in _OPEN_ENDED and operands:
                return True
            if is_binary(fun) and len(operands) == 2:
                precedence, assoc = binary_precedence(fun)
            elif fun in UNARY_OPERATORS and len(operands) == 1:
                precedence, assoc = unary_precedence(fun), "right"
            else:
                return False
            value = operands[-1]
            if not isinstance(value, CallExpression) or self._needs_parens(value, "", precedence, assoc, "right"):
                return False
        return False

    def _precedence(self, value: RValue, text: str) -> int:
        """How tightly the rendered text of value binds, on the scale of rsource_lexical."""
        if isinstance(value, AtomicVector):
            if text.startswith(("c(", "structure(", "complex(")):
                return ATOM_PRECEDENCE
            if value.kind == 'complex' and ("+" in text or "-" in text[1:]):
                return binary_precedence("+")[0]
            if text.startswith("-"):
                return unary_precedence("-")
            return ATOM_PRECEDENCE
        if not isinstance(value, CallExpression):
            return ATOM_PRECEDENCE
        fun = value.function_name
        if fun is None:
            return ATOM_PRECEDENCE
        nargs = len(value.args)
        if is_binary(fun) and nargs == 2:
            return binary_precedence(fun)[0]
        if fun in UNARY_OPERATORS and nargs == 1:
            return unary_precedence(fun)
        if fun in SUBSET_CLOSERS and nargs >= 1:
            return POSTFIX_PRECEDENCE
        if fun in _OPEN_ENDED and nargs >= 1:
            return LOWEST_PRECEDENCE
        return ATOM_PRECEDENCE


# =================================================================
# Public API
# =================================================================

def serialize_value(value: Any, config: Optional[SerializerConfig] = None) -> str:
    """Serializes value to R source text. Raises a SerializationError subclass on failure."""
    return Serializer(config).serialize(value, False)


@dataclass
class SerializationResult:
    """The structured outcome of try_serialize()."""
    status: Literal['success', 'error']
    value: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def format_error(self) -> str:
        """Formats the error with its kind, or "" on success."""
        if self.status != 'error':
            return ""
        return f"{self.error_kind}: {self.error_message or 'Unknown error'}"


def try_serialize(value: Any, config: Optional[SerializerConfig] = None) -> SerializationResult:
    """Like serialize_value, but reports failures as a result instead of raising."""
    try:
        text = serialize_value(value, config)
    except SerializationError as e:
        return SerializationResult('error', error_kind=e.kind, error_message=str(e))
    return SerializationResult('success', value=text)
