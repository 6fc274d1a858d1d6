"""
Error taxonomy for the serializer.

Every error carries a machine-readable `kind` next to its message so that
callers (and `try_serialize`) can report failures without parsing text.
"""

from typing import Any, Optional


class SerializationError(Exception):
    """Base class for every failure raised while serializing a value."""
    kind = "serialization_error"

    def __init__(self, details: str):
        super().__init__(f"Serialization error: {details}")
        self.details = details


class UnsupportedValueKind(SerializationError):
    kind = "unsupported_kind"

    def __init__(self, tag: str):
        super().__init__(f"SEXP type {tag} not supported!")
        self.tag = tag


class CycleDetected(SerializationError):
    kind = "cycle_detected"

    def __init__(self, environment: Optional[Any] = None):
        super().__init__("Serialized data structure contains cycle!")
        self.environment = environment


class MalformedArgumentName(SerializationError):
    kind = "malformed_argument_name"

    def __init__(self, name: Any):
        super().__init__(f"Unexpected type in function arguments: {type(name).__name__}")
        self.name = name


class MalformedExpression(SerializationError):
    kind = "malformed_expression"


class NestingTooDeep(SerializationError):
    kind = "nesting_too_deep"

    def __init__(self, limit: int):
        super().__init__(f"Value is nested deeper than {limit} levels")
        self.limit = limit
