"""Shape reconciliation between decoded JSON and the requested target."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

from cascade_decode.descriptor import Map, Slice, Struct, TargetDescriptor, resolve_pointer
from cascade_decode.errors import ReconcileError, StructuralDecodeError
from cascade_decode.materialize import json_kind, parse_json

if TYPE_CHECKING:
    from cascade_decode.envelope import JSONValue

TreeDecoder: TypeAlias = Callable[["JSONValue", TargetDescriptor], Any]


def reconcile(
    tree: JSONValue,
    repaired_text: str,
    descriptor: TargetDescriptor,
    decode_tree: TreeDecoder,
) -> Any:
    """Try the array/object heuristics for a candidate that failed every other strategy.

    1. Object expected, non-empty array found: decode the first element.
    2. Array expected, single object found: decode ``[`` + candidate + ``]``.

    ``decode_tree`` performs the raw-then-unwrapped decode of one tree.
    Raises ``ReconcileError`` when neither heuristic applies or both fail.
    """

    target = resolve_pointer(descriptor)

    if isinstance(target, (Struct, Map)) and isinstance(tree, list) and tree:
        try:
            return decode_tree(tree[0], descriptor)
        except StructuralDecodeError as exc:
            raise ReconcileError(
                f"first array element does not fit: {exc.reason}", path=exc.path
            ) from exc

    if isinstance(target, Slice) and isinstance(tree, Mapping):
        try:
            return decode_tree(parse_json(f"[{repaired_text}]"), descriptor)
        except StructuralDecodeError as exc:
            raise ReconcileError(
                f"object wrapped as single element does not fit: {exc.reason}", path=exc.path
            ) from exc

    raise ReconcileError(f"no reconciliation applies to JSON {json_kind(tree)}")


__all__ = ["TreeDecoder", "reconcile"]
