from rsource.rsource_serializer import Serializer, SerializationResult, serialize_value, try_serialize
from rsource.rsource_config import SerializerConfig
from rsource.rsource_errors import (
    SerializationError, UnsupportedValueKind, CycleDetected,
    MalformedArgumentName, MalformedExpression, NestingTooDeep,
)

__all__ = [
    "Serializer",
    "SerializationResult",
    "SerializerConfig",
    "serialize_value",
    "try_serialize",
    "SerializationError",
    "UnsupportedValueKind",
    "CycleDetected",
    "MalformedArgumentName",
    "MalformedExpression",
    "NestingTooDeep",
]
