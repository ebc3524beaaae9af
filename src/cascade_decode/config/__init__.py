"""
cascade-decode config package public API.

File: src/cascade_decode/config/__init__.py

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``cascade_decode.toml`` + ``CASCADE_DECODE_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from cascade_decode.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    load_config_mapping,
)
from cascade_decode.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    DecoderConfig,
    LoggingSettings,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DecoderConfig",
    "LoggingSettings",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "load_config_mapping",
    "merge_config",
    "validate_config",
]
