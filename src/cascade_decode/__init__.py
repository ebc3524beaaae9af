"""
cascade-decode — package root

File: src/cascade_decode/__init__.py

Purpose
- Public API of the cascading recovery decoder: turn raw language-model
  output into typed Python values despite broken JSON, surrounding prose,
  schema-shaped wrappers or array/object mix-ups.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

from cascade_decode.candidates import Candidate, extract_candidates
from cascade_decode.coerce import coerce_primitive
from cascade_decode.config import DecoderConfig, LoggingSettings, load_config
from cascade_decode.descriptor import (
    Dynamic,
    Kind,
    Map,
    Pointer,
    Primitive,
    Slice,
    Struct,
    StructField,
    TargetClass,
    TargetDescriptor,
    UInt,
    classify,
    describe,
)
from cascade_decode.envelope import is_envelope, unwrap_envelope_text, unwrap_envelopes
from cascade_decode.errors import (
    DecodeCancelledError,
    DecodeError,
    DecodeFailedError,
    PrimitiveParseError,
    ReconcileError,
    RepairError,
    StructuralDecodeError,
    UnsupportedTargetError,
)
from cascade_decode.orchestrator import (
    DecodeAttempt,
    DecodeOutcome,
    Decoder,
    DecodeState,
    decode,
    try_decode,
)
from cascade_decode.repair import Repairer, repair_json_text
from cascade_decode.utils.concurrency import CancellationToken

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "Candidate",
    "DecodeAttempt",
    "DecodeCancelledError",
    "DecodeError",
    "DecodeFailedError",
    "DecodeOutcome",
    "DecodeState",
    "Decoder",
    "DecoderConfig",
    "Dynamic",
    "Kind",
    "LoggingSettings",
    "Map",
    "Pointer",
    "Primitive",
    "PrimitiveParseError",
    "ReconcileError",
    "RepairError",
    "Repairer",
    "Slice",
    "Struct",
    "StructField",
    "StructuralDecodeError",
    "TargetClass",
    "TargetDescriptor",
    "UInt",
    "UnsupportedTargetError",
    "__version__",
    "classify",
    "coerce_primitive",
    "decode",
    "describe",
    "extract_candidates",
    "is_envelope",
    "load_config",
    "repair_json_text",
    "try_decode",
    "unwrap_envelope_text",
    "unwrap_envelopes",
]
