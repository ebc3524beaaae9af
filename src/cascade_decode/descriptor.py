"""
cascade-decode — target descriptors

File: src/cascade_decode/descriptor.py

Purpose
- Closed tagged union describing the shape a decode call must produce.
- Single dispatch point (``classify``) selecting the primitive or composite path.

Functional requirements
- Descriptors are immutable and derived once per call from a Python type.
- Every descriptor classifies to exactly one ``TargetClass``; anything that
  is not a bare scalar is composite.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import types
import typing
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final, NewType, TypeAlias, Union

from cascade_decode.errors import UnsupportedTargetError

UInt = NewType("UInt", int)
"""Marker type selecting the unsigned integer kind (``describe(UInt)``)."""

JSON_KEY_METADATA: Final[str] = "json"


class Kind(StrEnum):
    """Scalar kinds understood by the primitive coercer."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"


class TargetClass(StrEnum):
    """Dispatch classes selected from a descriptor."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    COMPOSITE = "composite"


@dataclass(frozen=True, slots=True)
class Primitive:
    kind: Kind


@dataclass(frozen=True, slots=True)
class StructField:
    """One dataclass attribute and the JSON key it is read from."""

    name: str
    key: str
    descriptor: TargetDescriptor
    has_default: bool = False


@dataclass(frozen=True, slots=True)
class Struct:
    cls: type
    fields: tuple[StructField, ...]


@dataclass(frozen=True, slots=True)
class Slice:
    elem: TargetDescriptor
    container: type = list


@dataclass(frozen=True, slots=True)
class Map:
    value: TargetDescriptor


@dataclass(frozen=True, slots=True)
class Pointer:
    inner: TargetDescriptor


@dataclass(frozen=True, slots=True)
class Dynamic:
    """Any JSON value, kept as the generic decoded tree."""


TargetDescriptor: TypeAlias = Primitive | Struct | Slice | Map | Pointer | Dynamic

_DESCRIPTOR_TYPES: Final[tuple[type, ...]] = (Primitive, Struct, Slice, Map, Pointer, Dynamic)

_SCALARS: Final[dict[object, Kind]] = {
    str: Kind.STRING,
    bool: Kind.BOOL,
    int: Kind.INT,
    float: Kind.FLOAT,
}
_SEQUENCE_ORIGINS: Final[tuple[object, ...]] = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Iterable,
)
_MAPPING_ORIGINS: Final[tuple[object, ...]] = (
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)


def describe(target: object) -> TargetDescriptor:
    """Build a descriptor for ``target``; descriptors are returned unchanged."""

    if isinstance(target, _DESCRIPTOR_TYPES):
        return typing.cast("TargetDescriptor", target)
    return _describe(target, ())


def classify(descriptor: TargetDescriptor) -> TargetClass:
    """Select the decode path for ``descriptor``."""

    match descriptor:
        case Primitive(kind):
            return TargetClass(kind.value)
        case _:
            return TargetClass.COMPOSITE


def resolve_pointer(descriptor: TargetDescriptor) -> TargetDescriptor:
    """Strip every ``Pointer`` layer."""

    while isinstance(descriptor, Pointer):
        descriptor = descriptor.inner
    return descriptor


def type_name(descriptor: TargetDescriptor) -> str:
    """Human-readable rendering used in error messages."""

    match descriptor:
        case Primitive(kind):
            return kind.value
        case Struct(cls, _):
            return cls.__name__
        case Slice(elem, container):
            suffix = ", ..." if container is tuple else ""
            return f"{container.__name__}[{type_name(elem)}{suffix}]"
        case Map(value):
            return f"dict[str, {type_name(value)}]"
        case Pointer(inner):
            return f"{type_name(inner)} | None"
        case Dynamic():
            return "any"
    raise AssertionError(f"unreachable descriptor {descriptor!r}")


def _describe(target: object, stack: tuple[type, ...]) -> TargetDescriptor:
    if target is UInt:
        return Primitive(Kind.UINT)
    if target is Any or target is object:
        return Dynamic()
    if isinstance(target, type) and target in _SCALARS:
        return Primitive(_SCALARS[target])

    origin = typing.get_origin(target)
    args = typing.get_args(target)

    if origin is typing.Annotated:
        return _describe(args[0], stack)
    if origin is Union or origin is types.UnionType:
        return _describe_union(target, args, stack)
    if target is list or target is tuple:
        return Slice(Dynamic(), container=typing.cast("type", target))
    if target is dict:
        return Map(Dynamic())
    if origin in _SEQUENCE_ORIGINS:
        elem = _describe(args[0], stack) if args else Dynamic()
        return Slice(elem)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return Slice(_describe(args[0], stack), container=tuple)
        raise UnsupportedTargetError(
            f"fixed-length tuple {target!r} is not supported; use tuple[T, ...]"
        )
    if origin in _MAPPING_ORIGINS:
        if args and args[0] is not str:
            raise UnsupportedTargetError(f"mapping keys must be str, got {args[0]!r}")
        value = _describe(args[1], stack) if args else Dynamic()
        return Map(value)
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        return _describe_dataclass(target, stack)

    raise UnsupportedTargetError(f"cannot decode into {target!r}")


def _describe_union(
    target: object, args: tuple[object, ...], stack: tuple[type, ...]
) -> TargetDescriptor:
    members = [item for item in args if item is not type(None)]
    if len(members) == 1 and len(members) < len(args):
        return Pointer(_describe(members[0], stack))
    raise UnsupportedTargetError(f"only Optional[T] unions are supported, got {target!r}")


def _describe_dataclass(cls: type, stack: tuple[type, ...]) -> Struct:
    if cls in stack:
        raise UnsupportedTargetError(f"recursive dataclass {cls.__name__} is not supported")

    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exc:
        raise UnsupportedTargetError(
            f"cannot resolve annotations of {cls.__name__}: {exc}"
        ) from exc

    nested = (*stack, cls)
    fields: list[StructField] = []
    for item in dataclasses.fields(cls):
        if not item.init:
            continue
        key = item.metadata.get(JSON_KEY_METADATA, item.name)
        if not isinstance(key, str) or not key:
            raise UnsupportedTargetError(
                f"{cls.__name__}.{item.name}: json key metadata must be a non-empty string"
            )
        has_default = (
            item.default is not dataclasses.MISSING
            or item.default_factory is not dataclasses.MISSING
        )
        fields.append(
            StructField(
                name=item.name,
                key=key,
                descriptor=_describe(hints[item.name], nested),
                has_default=has_default,
            )
        )
    return Struct(cls=cls, fields=tuple(fields))


__all__ = [
    "JSON_KEY_METADATA",
    "Dynamic",
    "Kind",
    "Map",
    "Pointer",
    "Primitive",
    "Slice",
    "Struct",
    "StructField",
    "TargetClass",
    "TargetDescriptor",
    "UInt",
    "classify",
    "describe",
    "resolve_pointer",
    "type_name",
]
