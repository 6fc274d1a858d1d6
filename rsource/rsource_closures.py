"""
Environment naming and closure extraction.

`environment_name_as_code` gives the well-known environments (empty, global,
base, attached packages and namespaces) a fixed textual form so they are
never rebuilt binding by binding. `extract_closure` replaces a closure's
enclosing environment by a minimal one holding only what the body uses.
"""

import logging
from typing import List, Optional, Set, Tuple

from rsource.rsource_datatypes import (
    RValue, Symbol, CallExpression, PairList, RList, Closure,
    Environment, PackageEnvironment, NamespaceEnvironment,
    EMPTY_ENV, GLOBAL_ENV, BASE_ENV, BASE_NAMESPACE, logical,
)
from rsource.rsource_deparse import quote_string
from rsource.rsource_lexical import EXTRACTED_CLOSURE_MARKER

logger = logging.getLogger(__name__)


def environment_name(env: Environment) -> str:
    """The package name behind a package or namespace environment, else ""."""
    if isinstance(env, PackageEnvironment):
        return f"package:{env.package}"
    if isinstance(env, NamespaceEnvironment):
        return env.package
    return ""


def environment_name_as_code(env: Environment) -> Optional[str]:
    """R code evaluating to a well-known environment, or None if env has no canonical name."""
    if env is EMPTY_ENV:
        return "emptyenv()"
    if env is GLOBAL_ENV:
        return "globalenv()"
    if env is BASE_ENV or env is BASE_NAMESPACE:
        return "baseenv()"
    if isinstance(env, PackageEnvironment):
        return f"as.environment({quote_string(environment_name(env))})"
    if isinstance(env, NamespaceEnvironment):
        return f"getNamespace({quote_string(environment_name(env))})"
    return None


# =================================================================
# Closure Extraction
# =================================================================

def free_variables(closure: Closure) -> List[str]:
    """Names a closure's body and default arguments refer to, minus its formals.

    Order of first appearance is kept. Member names on the right of `$`
    and `@` are not variable references and are skipped.
    """
    found: List[str] = []
    seen: Set[str] = set(n for n in closure.formals.names if isinstance(n, str))

    def visit(node: RValue):
        if isinstance(node, Symbol):
            if node.name and node.name not in seen:
                seen.add(node.name)
                found.append(node.name)
        elif isinstance(node, CallExpression):
            visit(node.function)
            values = node.args.values
            if node.function_name in ("$", "@") and len(values) == 2:
                values = values[:1]
            for value in values:
                visit(value)
        elif isinstance(node, PairList):
            for value in node.values:
                visit(value)
        elif isinstance(node, RList):
            for value in node.elements:
                visit(value)

    for default in closure.formals.values:
        visit(default)
    visit(closure.body)
    return found


def _enclosure_chain(env: Optional[Environment]):
    seen = set()
    while env is not None and id(env) not in seen:
        seen.add(id(env))
        yield env
        env = env.parent


def extract_closure(closure: Closure) -> Tuple[Closure, Environment]:
    """Returns an equivalent closure enclosed by a minimal, portable environment.

    Every free variable bound in a user environment on the enclosure chain
    is copied into a fresh environment whose parent is the first well-known
    environment of the chain. The result carries the extraction marker
    attribute. Closures already enclosed by a well-known environment are
    returned unchanged.
    """
    env = closure.environment
    if env is None or env.is_root:
        return closure, env

    root = next((e for e in _enclosure_chain(env) if e.is_root), None)
    captured = Environment(parent=root)
    for name in free_variables(closure):
        for frame in _enclosure_chain(env):
            if frame.is_root:
                break
            if name in frame:
                captured[name] = frame[name]
                break

    logger.debug("Extracted closure %#x: captured [%s], parent %r",
                 id(closure), ", ".join(captured.keys()), root)
    extracted = closure.with_environment(captured)
    extracted.set_attribute(EXTRACTED_CLOSURE_MARKER, logical(True))
    return extracted, captured
