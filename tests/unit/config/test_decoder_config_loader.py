"""
cascade-decode — unit tests for the decoder config loader

File: tests/unit/config/test_decoder_config_loader.py

Purpose
- Validate config loading from defaults, TOML/YAML files, env overrides and
  explicit overrides.

What this test file should cover
- Precedence: overrides > env > file > defaults.
- Deterministic env var mapping and type coercion.
- Load errors for missing, malformed and non-object files.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from cascade_decode.config import (
    DEFAULT_CONFIG_FILE,
    ConfigLoadError,
    ConfigValidationError,
    DecoderConfig,
    LoggingSettings,
    dump_effective_config,
    load_config,
    load_config_mapping,
)


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults_without_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert load_config(environ={}) == DecoderConfig()


def test_implicit_file_in_working_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    _write_config(tmp_path / DEFAULT_CONFIG_FILE, "[decoder]\nmax_candidates = 5\n")

    assert load_config(environ={}).max_candidates == 5


def test_loader_precedence_default_file_env_overrides(tmp_path: Path) -> None:
    config_path = tmp_path / "cascade_decode.toml"
    empty_path = tmp_path / "empty.toml"
    _write_config(empty_path, "")
    _write_config(
        config_path,
        """
[decoder]
max_candidates = 8
""".strip(),
    )
    env = {"CASCADE_DECODE_DECODER_MAX_CANDIDATES": "16"}

    default_loaded = load_config(empty_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ=env)
    override_loaded = load_config(
        config_path, environ=env, overrides={"decoder.max_candidates": 32}
    )

    assert default_loaded.max_candidates == 64
    assert file_loaded.max_candidates == 8
    assert env_loaded.max_candidates == 16
    assert override_loaded.max_candidates == 32


def test_env_coercion_for_bools_and_strings(tmp_path: Path) -> None:
    config_path = tmp_path / "cascade_decode.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={
            "CASCADE_DECODE_DECODER_ENABLE_REPAIR": "off",
            "CASCADE_DECODE_DECODER_ENABLE_RECONCILE": " YES ",
            "CASCADE_DECODE_LOGGING_LEVEL": "debug",
            "CASCADE_DECODE_LOGGING_FORMAT": "text",
            "UNRELATED": "ignored",
        },
    )

    assert loaded.enable_repair is False
    assert loaded.enable_reconcile is True
    assert loaded.logging == LoggingSettings(level="DEBUG", format="text")


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("CASCADE_DECODE_DECODER_MAX_CANDIDATES", "many", "must be an integer"),
        ("CASCADE_DECODE_DECODER_ENABLE_REPAIR", "maybe", "must be a boolean"),
    ],
)
def test_bad_env_values_raise_load_errors(
    tmp_path: Path, name: str, value: str, message: str
) -> None:
    config_path = tmp_path / "cascade_decode.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match=message):
        load_config(config_path, environ={name: value})


def test_yaml_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "decoder.yaml"
    _write_config(
        config_path,
        """
decoder:
  enable_envelope_unwrap: false
  max_content_chars: 4096
logging:
  preview_chars: 80
""".lstrip(),
    )

    loaded = load_config(config_path, environ={})

    assert loaded.enable_envelope_unwrap is False
    assert loaded.max_content_chars == 4096
    assert loaded.logging.preview_chars == 80


def test_empty_yaml_document_means_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "decoder.yml"
    _write_config(config_path, "")

    assert load_config(config_path, environ={}) == DecoderConfig()


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "nope.toml", environ={})


@pytest.mark.parametrize(
    ("filename", "text", "message"),
    [
        ("bad.toml", "[decoder\nmax_candidates = 1", "invalid TOML"),
        ("bad.yaml", "decoder: [unclosed", "invalid YAML"),
        ("list.yaml", "- 1\n- 2\n", "config root must be an object"),
    ],
)
def test_malformed_files_raise_load_errors(
    tmp_path: Path, filename: str, text: str, message: str
) -> None:
    config_path = tmp_path / filename
    _write_config(config_path, text)

    with pytest.raises(ConfigLoadError, match=message):
        load_config(config_path, environ={})


def test_validation_reports_every_issue(tmp_path: Path) -> None:
    config_path = tmp_path / "cascade_decode.toml"
    _write_config(
        config_path,
        """
[decoder]
max_candidates = 0
enable_repair = "yes"
surprise = true
""".strip(),
    )

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(config_path, environ={})

    paths = [issue.path for issue in exc_info.value.issues]
    assert paths == ["decoder.surprise", "decoder.max_candidates", "decoder.enable_repair"]


def test_override_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "cascade_decode.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigValidationError, match="logging.format"):
        load_config(config_path, environ={}, overrides={"logging": {"format": "xml"}})


def test_mapping_and_dump_are_deterministic(tmp_path: Path) -> None:
    config_path = tmp_path / "cascade_decode.toml"
    _write_config(config_path, "[logging]\nredact_secrets = false\n")

    mapping = load_config_mapping(config_path, environ={})
    loaded = load_config(config_path, environ={})

    assert mapping["logging"]["redact_secrets"] is False
    assert dump_effective_config(loaded) == dump_effective_config(
        load_config(config_path, environ={})
    )
    assert dump_effective_config(loaded).startswith('{"decoder":{"enable_envelope_unwrap":true')
