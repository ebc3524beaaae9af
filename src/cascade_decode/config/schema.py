"""
cascade-decode — configuration schema

File: src/cascade_decode/config/schema.py

Purpose
- Built-in defaults, strict validation and the typed ``DecoderConfig`` view.

Functional requirements
- Unknown keys and wrongly typed values are reported together as structured
  issues with dotted paths.
- ``DecoderConfig`` is immutable and safe to share across concurrent decode calls.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, Literal, TypedDict

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")


class DecoderSection(TypedDict):
    max_candidates: int
    enable_repair: bool
    enable_envelope_unwrap: bool
    enable_reconcile: bool
    max_content_chars: int


class LoggingSection(TypedDict):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    format: Literal["json", "text"]
    redact_secrets: bool
    preview_chars: int


class CascadeDecodeConfig(TypedDict):
    decoder: DecoderSection
    logging: LoggingSection


DEFAULT_CONFIG: Final[CascadeDecodeConfig] = {
    "decoder": {
        "max_candidates": 64,
        "enable_repair": True,
        "enable_envelope_unwrap": True,
        "enable_reconcile": True,
        "max_content_chars": 0,
    },
    "logging": {
        "level": "WARNING",
        "format": "json",
        "redact_secrets": True,
        "preview_chars": 240,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    """Logging options consumed by ``configure_logging``."""

    level: str = "WARNING"
    format: str = "json"
    redact_secrets: bool = True
    preview_chars: int = 240

    def __post_init__(self) -> None:
        level = self.level.strip().upper() if isinstance(self.level, str) else self.level
        if level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(LOG_LEVELS)}")
        object.__setattr__(self, "level", level)
        if self.format not in LOG_FORMATS:
            raise ValueError(f"logging.format must be one of {', '.join(LOG_FORMATS)}")
        if isinstance(self.preview_chars, bool) or not isinstance(self.preview_chars, int):
            raise ValueError("logging.preview_chars must be an integer")
        if self.preview_chars < 0:
            raise ValueError("logging.preview_chars must be >= 0")


@dataclass(frozen=True, slots=True)
class DecoderConfig:
    """Options steering the decode cascade."""

    max_candidates: int = 64
    enable_repair: bool = True
    enable_envelope_unwrap: bool = True
    enable_reconcile: bool = True
    max_content_chars: int = 0
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def __post_init__(self) -> None:
        if isinstance(self.max_candidates, bool) or not isinstance(self.max_candidates, int):
            raise ValueError("decoder.max_candidates must be an integer")
        if self.max_candidates < 1:
            raise ValueError("decoder.max_candidates must be >= 1")
        if isinstance(self.max_content_chars, bool) or not isinstance(
            self.max_content_chars, int
        ):
            raise ValueError("decoder.max_content_chars must be an integer")
        if self.max_content_chars < 0:
            raise ValueError("decoder.max_content_chars must be >= 0")

    @classmethod
    def from_mapping(cls, config: Mapping[str, object]) -> DecoderConfig:
        """Build from a validated config mapping (see ``assert_valid_config``)."""

        validated = assert_valid_config(merge_config(default_config(), config))
        decoder = validated["decoder"]
        logging_section = validated["logging"]
        return cls(
            max_candidates=decoder["max_candidates"],
            enable_repair=decoder["enable_repair"],
            enable_envelope_unwrap=decoder["enable_envelope_unwrap"],
            enable_reconcile=decoder["enable_reconcile"],
            max_content_chars=decoder["max_content_chars"],
            logging=LoggingSettings(**logging_section),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "decoder": {
                "max_candidates": self.max_candidates,
                "enable_repair": self.enable_repair,
                "enable_envelope_unwrap": self.enable_envelope_unwrap,
                "enable_reconcile": self.enable_reconcile,
                "max_content_chars": self.max_content_chars,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "redact_secrets": self.logging.redact_secrets,
                "preview_chars": self.logging.preview_chars,
            },
        }


def default_config() -> CascadeDecodeConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a full config mapping and return structured issues."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    _reject_unknown_keys(root, {"decoder", "logging"}, "", issues)
    _require_keys(root, {"decoder", "logging"}, "", issues)

    normalized: dict[str, Any] = {}
    if "decoder" in root:
        section = _as_object(root["decoder"], "decoder", issues)
        if section is not None:
            normalized["decoder"] = _validate_decoder(section, "decoder", issues)
    if "logging" in root:
        section = _as_object(root["logging"], "logging", issues)
        if section is not None:
            normalized["logging"] = _validate_logging(section, "logging", issues)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_decoder(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {
        "max_candidates",
        "enable_repair",
        "enable_envelope_unwrap",
        "enable_reconcile",
        "max_content_chars",
    }
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "max_candidates" in payload:
        parsed = _as_int(payload["max_candidates"], _join(path, "max_candidates"), issues, minimum=1)
        if parsed is not None:
            out["max_candidates"] = parsed
    if "max_content_chars" in payload:
        parsed = _as_int(
            payload["max_content_chars"], _join(path, "max_content_chars"), issues, minimum=0
        )
        if parsed is not None:
            out["max_content_chars"] = parsed
    for key in ("enable_repair", "enable_envelope_unwrap", "enable_reconcile"):
        if key in payload:
            flag = _as_bool(payload[key], _join(path, key), issues)
            if flag is not None:
                out[key] = flag
    return out


def _validate_logging(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"level", "format", "redact_secrets", "preview_chars"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "level" in payload:
        raw_level = payload["level"]
        level = raw_level.strip().upper() if isinstance(raw_level, str) else raw_level
        parsed_level = _as_enum(level, _join(path, "level"), issues, allowed_values=LOG_LEVELS)
        if parsed_level is not None:
            out["level"] = parsed_level
    if "format" in payload:
        parsed_format = _as_enum(
            payload["format"], _join(path, "format"), issues, allowed_values=LOG_FORMATS
        )
        if parsed_format is not None:
            out["format"] = parsed_format
    if "redact_secrets" in payload:
        parsed_redact = _as_bool(payload["redact_secrets"], _join(path, "redact_secrets"), issues)
        if parsed_redact is not None:
            out["redact_secrets"] = parsed_redact
    if "preview_chars" in payload:
        parsed_preview = _as_int(
            payload["preview_chars"], _join(path, "preview_chars"), issues, minimum=0
        )
        if parsed_preview is not None:
            out["preview_chars"] = parsed_preview
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    if value not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {value!r}; expected one of: {expected}")
        return None
    return value


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(value[key]) for key in sorted(value)}


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "CascadeDecodeConfig",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DecoderConfig",
    "LoggingSettings",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
