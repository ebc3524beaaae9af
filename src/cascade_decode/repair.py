"""
cascade-decode — syntax repair collaborator

File: src/cascade_decode/repair.py

Purpose
- Narrow adapter over the external ``json_repair`` library.

Functional requirements
- Fix syntax only: unquoted keys, single quotes, trailing commas, truncated
  closers, comments, code fences, ``None``/``True``/``False`` spellings.
- Report every failure as ``RepairError`` so the orchestrator can move on to
  the next candidate.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from json_repair import repair_json

from cascade_decode.errors import RepairError


@runtime_checkable
class Repairer(Protocol):
    """Turn near-JSON text into valid JSON text or raise ``RepairError``."""

    def __call__(self, text: str) -> str: ...


def repair_json_text(text: str) -> str:
    """Default repairer backed by ``json_repair.repair_json``."""

    try:
        repaired = repair_json(text, ensure_ascii=False)
    except Exception as exc:  # noqa: BLE001 - third-party repair is a black box.
        raise RepairError(text, f"{type(exc).__name__}: {exc}") from exc

    if not isinstance(repaired, str):
        raise RepairError(text, f"repairer returned {type(repaired).__name__}, expected str")
    if not repaired.strip():
        raise RepairError(text, "no JSON value could be recovered")
    return repaired


__all__ = ["Repairer", "repair_json_text"]
