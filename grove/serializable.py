"""
Serializable mixin for dataclasses.

Provides to_dict()/from_dict() using dataclasses.fields() introspection.
Handles nested Serializable objects, tuples and lists of them, Enums,
and sets (written as sorted lists, read back as frozensets).

Deserialization is lenient: missing fields that have defaults are
skipped, so state written by an older grove still loads.
"""

import dataclasses
from enum import Enum
from typing import get_args, get_origin, get_type_hints


class Serializable:
    """Mixin that adds to_dict() and from_dict() to dataclasses.

    Usage:
        @dataclass(frozen=True)
        class Commit(Serializable):
            id: str
            message: str

        d = Commit("c1", "fix").to_dict()   # {"id": "c1", "message": "fix"}
        obj = Commit.from_dict(d)

    Set `_skip_none = True` on the class to omit None-valued fields from to_dict().
    """

    _skip_none: bool = False

    def to_dict(self) -> dict:
        result = {}
        for f in dataclasses.fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if self._skip_none and value is None:
                continue
            result[f.name] = _serialize(value)
        return result

    @classmethod
    def from_dict(cls, d: dict):
        hints = get_type_hints(cls)
        kwargs = {}
        for f in dataclasses.fields(cls):  # type: ignore[arg-type]
            if f.name not in d:
                # Missing optional fields fall back to defaults; missing
                # required ones make the constructor raise.
                continue
            kwargs[f.name] = _deserialize(d[f.name], hints.get(f.name))
        return cls(**kwargs)


def _serialize(value):
    """Recursively serialize a value."""
    if isinstance(value, Serializable):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(_serialize(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def _deserialize(value, field_type):
    """Deserialize a value according to its type hint."""
    if value is None:
        return None

    actual_type = _unwrap_optional(field_type)
    origin = get_origin(actual_type)

    if isinstance(actual_type, type) and issubclass(actual_type, Serializable):
        if isinstance(value, dict):
            return actual_type.from_dict(value)
        return value

    if isinstance(actual_type, type) and issubclass(actual_type, Enum):
        return actual_type(value)

    if origin in (frozenset, set):
        return frozenset(value)

    if origin in (list, tuple) and isinstance(value, list):
        inner = _get_sequence_inner_type(actual_type)
        if inner and isinstance(inner, type) and issubclass(inner, Serializable):
            items = [inner.from_dict(v) if isinstance(v, dict) else v for v in value]
        else:
            items = list(value)
        return tuple(items) if origin is tuple else items

    return value


def _unwrap_optional(tp):
    """Unwrap X | None to X."""
    origin = get_origin(tp)
    if origin is type(int | str):  # types.UnionType for X | Y syntax
        args = get_args(tp)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return non_none[0]
    return tp


def _get_sequence_inner_type(tp):
    """Extract T from list[T] or tuple[T, ...]."""
    args = get_args(tp)
    if args:
        return args[0]
    return None
