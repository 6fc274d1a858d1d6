"""
Serializer configuration, with loading from YAML documents.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


@dataclass(frozen=True)
class SerializerConfig:
    """Knobs of the serializer. The defaults produce the canonical output."""
    # Maximum structural depth before giving up with NestingTooDeep.
    max_depth: int = 200
    # Emit environment bindings sorted by name instead of insertion order.
    sort_bindings: bool = True
    # Drop the `parent=` of an environment whose parent is being rendered
    # instead of raising CycleDetected.
    omit_active_parent: bool = False
    # Indentation of statements inside `{ ... }`.
    indent: str = "\t"
    # Line width after which the literal renderer wraps `c(...)`.
    width_cutoff: int = 60

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.width_cutoff < 20:
            raise ValueError(f"width_cutoff must be at least 20, got {self.width_cutoff}")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'SerializerConfig':
        """Builds a config from a plain mapping, rejecting unknown keys and mistyped values."""
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError(f"Config must be a mapping, not {type(data).__name__}")
        fields = {f.name: f for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - set(fields))
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(map(str, unknown))}")
        kwargs = {}
        for key, value in data.items():
            expected = type(getattr(cls, key))
            # bool is an int subclass; don't let `max_depth: true` through
            if type(value) is not expected:
                raise ValueError(f"Config key {key!r} expects {expected.__name__}, got {type(value).__name__}")
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, source: str | Path) -> 'SerializerConfig':
        """Loads a config from YAML text or a path to a YAML file.

        The settings may sit at the top level or under an `rsource:` key.
        """
        if isinstance(source, Path):
            text = source.read_text(encoding="utf-8")
        else:
            text = source
        data = yaml.safe_load(text)
        if isinstance(data, Mapping) and isinstance(data.get("rsource"), Mapping):
            data = data["rsource"]
        return cls.from_mapping(data)


DEFAULT_CONFIG = SerializerConfig()
