"""
cascade-decode — decode orchestrator

File: src/cascade_decode/orchestrator.py

Purpose
- Drive the fallback cascade that turns raw model output into a typed value:
  direct decode, candidate extraction, syntax repair, envelope unwrapping and
  array/object reconciliation, first success wins.

Functional requirements
- The cascade is an explicit state machine: one handler per ``DecodeState``,
  one transition function, one ``_DecodeRun`` per call.
- Sub-strategy failures only advance the machine. ``decode`` raises
  ``PrimitiveParseError``, ``DecodeFailedError`` or ``DecodeCancelledError``;
  ``try_decode`` returns them inside a ``DecodeOutcome``.
- Every attempt is recorded for diagnostics; control flow only uses the last
  decode and repair errors.
- No state survives a call; concurrent calls share nothing mutable.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from functools import partial
from typing import TYPE_CHECKING, Any, Final, Generic, TypeVar, overload

import structlog

from cascade_decode.candidates import Candidate, extract_candidates
from cascade_decode.coerce import coerce_primitive
from cascade_decode.config.schema import DecoderConfig
from cascade_decode.descriptor import (
    Primitive,
    TargetClass,
    TargetDescriptor,
    classify,
    describe,
    type_name,
)
from cascade_decode.envelope import contains_envelope, unwrap_envelopes
from cascade_decode.errors import (
    DecodeCancelledError,
    DecodeError,
    DecodeFailedError,
    PrimitiveParseError,
    RepairError,
    StructuralDecodeError,
)
from cascade_decode.materialize import materialize, parse_json
from cascade_decode.observability.logging import preview
from cascade_decode.reconcile import reconcile
from cascade_decode.repair import Repairer, repair_json_text

if TYPE_CHECKING:
    from cascade_decode.envelope import JSONValue
    from cascade_decode.utils.concurrency import CancellationToken

T = TypeVar("T")

_DEFAULT_CONFIG: Final[DecoderConfig] = DecoderConfig()


class DecodeState(StrEnum):
    """States of the decode cascade."""

    CLASSIFY_TARGET = "classify_target"
    PRIMITIVE_PATH = "primitive_path"
    DIRECT_DECODE = "direct_decode"
    EXTRACT_CANDIDATES = "extract_candidates"
    NEXT_CANDIDATE = "next_candidate"
    REPAIR = "repair"
    DECODE_REPAIRED = "decode_repaired"
    UNWRAP_ENVELOPE = "unwrap_envelope"
    DECODE_UNWRAPPED = "decode_unwrapped"
    RECONCILE = "reconcile"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES: Final[frozenset[DecodeState]] = frozenset(
    {DecodeState.SUCCEEDED, DecodeState.FAILED}
)


@dataclass(frozen=True, slots=True)
class DecodeAttempt:
    """One strategy applied to one piece of text."""

    strategy: DecodeState
    text: str
    succeeded: bool
    value: Any = None
    error: Exception | None = None
    candidate_index: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "strategy": self.strategy.value,
            "succeeded": self.succeeded,
            "candidate_index": self.candidate_index,
            "error": None if self.error is None else str(self.error),
        }


@dataclass(frozen=True, slots=True)
class DecodeOutcome(Generic[T]):
    """Result of ``try_decode``: a value or the error ``decode`` would raise."""

    value: T | None
    error: DecodeError | None
    states: tuple[DecodeState, ...]
    attempts: tuple[DecodeAttempt, ...]

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the recorded error."""

        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass(slots=True)
class _DecodeRun:
    """Mutable per-call state; never shared across calls."""

    content: str
    descriptor: TargetDescriptor
    repairer: Repairer
    config: DecoderConfig
    cancel_token: CancellationToken | None
    logger: Any
    state: DecodeState = DecodeState.CLASSIFY_TARGET
    states: list[DecodeState] = field(default_factory=list)
    attempts: list[DecodeAttempt] = field(default_factory=list)
    candidates: list[Candidate] = field(default_factory=list)
    candidate_index: int = -1
    repaired: str = ""
    tree: JSONValue = None
    unwrapped: JSONValue = None
    value: Any = None
    error: DecodeError | None = None
    last_decode_error: Exception | None = None
    last_repair_error: RepairError | None = None

    @property
    def candidate(self) -> Candidate:
        return self.candidates[self.candidate_index]

    def record(
        self,
        strategy: DecodeState,
        text: str,
        *,
        value: Any = None,
        error: Exception | None = None,
    ) -> None:
        index = self.candidate_index if self.candidate_index >= 0 else None
        self.attempts.append(
            DecodeAttempt(
                strategy=strategy,
                text=text,
                succeeded=error is None,
                value=value,
                error=error,
                candidate_index=index,
            )
        )
        if error is not None:
            self.logger.debug(
                "decode_strategy_failed",
                strategy=strategy.value,
                candidate_index=index,
                target=type_name(self.descriptor),
                error=str(error),
            )

    def succeed(self, strategy: DecodeState, text: str, value: Any) -> DecodeState:
        self.value = value
        self.record(strategy, text, value=value)
        return DecodeState.SUCCEEDED

    def fail(self, error: DecodeError) -> DecodeState:
        self.error = error
        return DecodeState.FAILED


def _classify_target(run: _DecodeRun) -> DecodeState:
    limit = run.config.max_content_chars
    if limit and len(run.content) > limit:
        return run.fail(
            DecodeFailedError(
                run.content,
                last_decode_error=StructuralDecodeError(
                    f"content length {len(run.content)} exceeds max_content_chars {limit}"
                ),
                last_repair_error=None,
            )
        )
    if classify(run.descriptor) is TargetClass.COMPOSITE:
        return DecodeState.DIRECT_DECODE
    return DecodeState.PRIMITIVE_PATH


def _primitive_path(run: _DecodeRun) -> DecodeState:
    assert isinstance(run.descriptor, Primitive)
    try:
        value = coerce_primitive(
            run.content, run.descriptor.kind, unwrap=run.config.enable_envelope_unwrap
        )
    except PrimitiveParseError as exc:
        run.record(DecodeState.PRIMITIVE_PATH, run.content, error=exc)
        return run.fail(exc)
    return run.succeed(DecodeState.PRIMITIVE_PATH, run.content, value)


def _direct_decode(run: _DecodeRun) -> DecodeState:
    try:
        value = materialize(parse_json(run.content), run.descriptor)
    except StructuralDecodeError as exc:
        run.last_decode_error = exc
        run.record(DecodeState.DIRECT_DECODE, run.content, error=exc)
        return DecodeState.EXTRACT_CANDIDATES
    return run.succeed(DecodeState.DIRECT_DECODE, run.content, value)


def _extract_candidates(run: _DecodeRun) -> DecodeState:
    run.candidates = extract_candidates(run.content, limit=run.config.max_candidates)
    if not run.candidates:
        run.candidates = [
            Candidate(
                start=0,
                end=len(run.content) - 1,
                opener=run.content[:1],
                text=run.content,
            )
        ]
    return DecodeState.NEXT_CANDIDATE


def _next_candidate(run: _DecodeRun) -> DecodeState:
    if run.cancel_token is not None:
        try:
            run.cancel_token.raise_if_cancelled()
        except DecodeCancelledError as exc:
            return run.fail(exc)

    run.candidate_index += 1
    if run.candidate_index >= len(run.candidates):
        return run.fail(
            DecodeFailedError(
                run.content,
                last_decode_error=run.last_decode_error,
                last_repair_error=run.last_repair_error,
                attempts=run.attempts,
            )
        )

    run.tree = None
    run.unwrapped = None
    if run.config.enable_repair:
        return DecodeState.REPAIR
    run.repaired = run.candidate.text
    return DecodeState.DECODE_REPAIRED


def _repair(run: _DecodeRun) -> DecodeState:
    text = run.candidate.text
    try:
        run.repaired = run.repairer(text)
    except RepairError as exc:
        run.last_repair_error = exc
        run.record(DecodeState.REPAIR, text, error=exc)
        return DecodeState.NEXT_CANDIDATE
    run.record(DecodeState.REPAIR, text, value=run.repaired)
    return DecodeState.DECODE_REPAIRED


def _decode_repaired(run: _DecodeRun) -> DecodeState:
    try:
        run.tree = parse_json(run.repaired)
    except StructuralDecodeError as exc:
        # nothing to unwrap or reconcile without a tree
        run.last_decode_error = exc
        run.record(DecodeState.DECODE_REPAIRED, run.repaired, error=exc)
        return DecodeState.NEXT_CANDIDATE

    try:
        value = materialize(run.tree, run.descriptor)
    except StructuralDecodeError as exc:
        run.last_decode_error = exc
        run.record(DecodeState.DECODE_REPAIRED, run.repaired, error=exc)
        if run.config.enable_envelope_unwrap:
            return DecodeState.UNWRAP_ENVELOPE
        return _after_unwrap(run)
    return run.succeed(DecodeState.DECODE_REPAIRED, run.repaired, value)


def _unwrap_envelope(run: _DecodeRun) -> DecodeState:
    if not contains_envelope(run.tree):
        # decoding again would fail the same way
        return _after_unwrap(run)
    run.unwrapped = unwrap_envelopes(run.tree)
    return DecodeState.DECODE_UNWRAPPED


def _decode_unwrapped(run: _DecodeRun) -> DecodeState:
    try:
        value = materialize(run.unwrapped, run.descriptor)
    except StructuralDecodeError as exc:
        run.last_decode_error = exc
        run.record(DecodeState.DECODE_UNWRAPPED, run.repaired, error=exc)
        return _after_unwrap(run)
    return run.succeed(DecodeState.DECODE_UNWRAPPED, run.repaired, value)


def _reconcile(run: _DecodeRun) -> DecodeState:
    try:
        value = reconcile(run.tree, run.repaired, run.descriptor, partial(_decode_tree, run))
    except StructuralDecodeError as exc:
        run.last_decode_error = exc
        run.record(DecodeState.RECONCILE, run.repaired, error=exc)
        return DecodeState.NEXT_CANDIDATE
    return run.succeed(DecodeState.RECONCILE, run.repaired, value)


def _after_unwrap(run: _DecodeRun) -> DecodeState:
    if run.config.enable_reconcile:
        return DecodeState.RECONCILE
    return DecodeState.NEXT_CANDIDATE


def _decode_tree(run: _DecodeRun, tree: JSONValue, descriptor: TargetDescriptor) -> Any:
    """Decode ``tree`` as is, then with envelopes stripped."""

    try:
        return materialize(tree, descriptor)
    except StructuralDecodeError:
        if not run.config.enable_envelope_unwrap or not contains_envelope(tree):
            raise
        return materialize(unwrap_envelopes(tree), descriptor)


_HANDLERS: Final[dict[DecodeState, Callable[[_DecodeRun], DecodeState]]] = {
    DecodeState.CLASSIFY_TARGET: _classify_target,
    DecodeState.PRIMITIVE_PATH: _primitive_path,
    DecodeState.DIRECT_DECODE: _direct_decode,
    DecodeState.EXTRACT_CANDIDATES: _extract_candidates,
    DecodeState.NEXT_CANDIDATE: _next_candidate,
    DecodeState.REPAIR: _repair,
    DecodeState.DECODE_REPAIRED: _decode_repaired,
    DecodeState.UNWRAP_ENVELOPE: _unwrap_envelope,
    DecodeState.DECODE_UNWRAPPED: _decode_unwrapped,
    DecodeState.RECONCILE: _reconcile,
}


def _advance(run: _DecodeRun) -> DecodeState:
    """Run the handler for the current state and return the next state."""

    handler = _HANDLERS.get(run.state)
    if handler is None:
        raise RuntimeError(f"no transition out of terminal state {run.state.value}")
    return handler(run)


def _run(run: _DecodeRun) -> _DecodeRun:
    run.states.append(run.state)
    while run.state not in TERMINAL_STATES:
        run.state = _advance(run)
        run.states.append(run.state)
    _log_outcome(run)
    return run


def _log_outcome(run: _DecodeRun) -> None:
    fields: dict[str, object] = {
        "target": type_name(run.descriptor),
        "attempts": len(run.attempts),
        "candidates": len(run.candidates),
        "content_chars": len(run.content),
    }

    if run.state is DecodeState.SUCCEEDED:
        run.logger.debug(
            "decode_succeeded",
            strategy=run.attempts[-1].strategy.value if run.attempts else None,
            **fields,
        )
    elif isinstance(run.error, DecodeCancelledError):
        run.logger.info("decode_cancelled", reason=str(run.error), **fields)
    else:
        settings = run.config.logging
        run.logger.info(
            "decode_failed",
            error_type=type(run.error).__name__,
            error=str(run.error),
            content_preview=preview(
                run.content, settings.preview_chars, redact=settings.redact_secrets
            ),
            **fields,
        )


def _start(
    content: str,
    target: object,
    *,
    repairer: Repairer | None,
    config: DecoderConfig | None,
    cancel_token: CancellationToken | None,
    logger: Any | None,
) -> _DecodeRun:
    run = _DecodeRun(
        content=content,
        descriptor=describe(target),
        repairer=repairer if repairer is not None else repair_json_text,
        config=config if config is not None else _DEFAULT_CONFIG,
        cancel_token=cancel_token,
        logger=logger if logger is not None else structlog.get_logger(__name__),
    )
    return _run(run)


@overload
def decode(
    content: str,
    target: type[T],
    *,
    repairer: Repairer | None = None,
    config: DecoderConfig | None = None,
    cancel_token: CancellationToken | None = None,
    logger: Any | None = None,
) -> T: ...


@overload
def decode(
    content: str,
    target: object,
    *,
    repairer: Repairer | None = None,
    config: DecoderConfig | None = None,
    cancel_token: CancellationToken | None = None,
    logger: Any | None = None,
) -> Any: ...


def decode(
    content: str,
    target: object,
    *,
    repairer: Repairer | None = None,
    config: DecoderConfig | None = None,
    cancel_token: CancellationToken | None = None,
    logger: Any | None = None,
) -> Any:
    """Decode model output ``content`` into a value of ``target``.

    ``target`` is a Python type (``int``, a dataclass, ``list[Item]``, ...) or a
    prebuilt ``TargetDescriptor``. Raises ``UnsupportedTargetError`` for types
    that cannot be described, ``PrimitiveParseError`` for scalar targets,
    ``DecodeFailedError`` once every strategy is exhausted and
    ``DecodeCancelledError`` when ``cancel_token`` is set between candidates.
    """

    run = _start(
        content,
        target,
        repairer=repairer,
        config=config,
        cancel_token=cancel_token,
        logger=logger,
    )
    if run.error is not None:
        raise run.error
    return run.value


def try_decode(
    content: str,
    target: object,
    *,
    repairer: Repairer | None = None,
    config: DecoderConfig | None = None,
    cancel_token: CancellationToken | None = None,
    logger: Any | None = None,
) -> DecodeOutcome[Any]:
    """Like ``decode`` but returns the error and the visited states instead of raising."""

    run = _start(
        content,
        target,
        repairer=repairer,
        config=config,
        cancel_token=cancel_token,
        logger=logger,
    )
    return DecodeOutcome(
        value=run.value if run.error is None else None,
        error=run.error,
        states=tuple(run.states),
        attempts=tuple(run.attempts),
    )


@dataclass(frozen=True, slots=True)
class Decoder(Generic[T]):
    """Reusable decoder bound to one target; the descriptor is built once."""

    target: TargetDescriptor
    repairer: Repairer = repair_json_text
    config: DecoderConfig = field(default_factory=DecoderConfig)
    logger: Any | None = None

    @classmethod
    def for_type(
        cls,
        target: type[T] | object,
        *,
        repairer: Repairer | None = None,
        config: DecoderConfig | None = None,
        logger: Any | None = None,
    ) -> Decoder[T]:
        return cls(
            target=describe(target),
            repairer=repairer if repairer is not None else repair_json_text,
            config=config if config is not None else DecoderConfig(),
            logger=logger,
        )

    def decode(self, content: str, *, cancel_token: CancellationToken | None = None) -> T:
        return decode(
            content,
            self.target,
            repairer=self.repairer,
            config=self.config,
            cancel_token=cancel_token,
            logger=self.logger,
        )

    def try_decode(
        self, content: str, *, cancel_token: CancellationToken | None = None
    ) -> DecodeOutcome[T]:
        return try_decode(
            content,
            self.target,
            repairer=self.repairer,
            config=self.config,
            cancel_token=cancel_token,
            logger=self.logger,
        )


__all__ = [
    "TERMINAL_STATES",
    "DecodeAttempt",
    "DecodeOutcome",
    "DecodeState",
    "Decoder",
    "decode",
    "try_decode",
]
