"""
cascade-decode — unit tests for candidate extraction

File: tests/unit/test_candidates.py

Purpose
- Verify balanced, string-aware bracket span extraction from free text.

What this test file should cover
- Narrative wrappers, nested spans, arrays of objects, multiple documents.
- Brackets and escaped quotes inside JSON strings.
- Unterminated openers and the candidate limit.
- A single scan for a run of unterminated openers.
"""

from __future__ import annotations

import json

import pytest

import cascade_decode.candidates as candidates_module
from cascade_decode.candidates import Candidate, extract_candidates

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - fallback path
    HYPOTHESIS_AVAILABLE = False


def _texts(text: str, **kwargs: object) -> list[str]:
    return [item.text for item in extract_candidates(text, **kwargs)]  # type: ignore[arg-type]


def test_simple_object() -> None:
    assert _texts('{"name":"John","age":30}') == ['{"name":"John","age":30}']


def test_object_inside_narrative() -> None:
    text = 'Here is the result:\n{"name":"John","age":30}\nHope this helps!'

    [candidate] = extract_candidates(text)

    assert candidate == Candidate(
        start=20, end=43, opener="{", text='{"name":"John","age":30}'
    )
    assert text[candidate.start : candidate.end + 1] == candidate.text


def test_nested_objects_emit_outer_then_inner() -> None:
    assert _texts('{"outer":{"inner":"value"}}') == [
        '{"outer":{"inner":"value"}}',
        '{"inner":"value"}',
    ]


def test_array_of_objects() -> None:
    assert _texts('[{"id":1},{"id":2}]') == ['[{"id":1},{"id":2}]', '{"id":1}', '{"id":2}']


def test_mixed_bracket_kinds() -> None:
    assert _texts('{"items":[1,2]}') == ['{"items":[1,2]}', "[1,2]"]


def test_brace_inside_string_does_not_end_candidate() -> None:
    text = 'prefix {"text":"a brace } inside a string"} suffix'

    assert _texts(text) == ['{"text":"a brace } inside a string"}']


def test_escaped_quotes_and_openers_inside_strings() -> None:
    payload = r'{"text":"say \"hi\" {now} [later]"}'
    text = f"Result: {payload} done"

    assert _texts(text) == [payload]
    assert json.loads(payload) == {"text": 'say "hi" {now} [later]'}


def test_escaped_backslash_before_quote_closes_string() -> None:
    payload = r'{"path":"C:\\","ok":true}'

    assert _texts(payload) == [payload]


def test_incomplete_json_is_ignored() -> None:
    assert _texts('{"name":"John","age":30') == []
    assert extract_candidates("no brackets here") == []


def test_multiple_documents_in_order() -> None:
    text = 'first {"a":1} then {"b":2} and [3]'

    assert _texts(text) == ['{"a":1}', '{"b":2}', "[3]"]


def test_limit_caps_candidates() -> None:
    text = '{"a":1} {"b":2} {"c":3}'

    assert _texts(text, limit=2) == ['{"a":1}', '{"b":2}']
    assert _texts(text, limit=0) == []


def test_unbalanced_prefix_does_not_hide_later_candidate() -> None:
    text = '{ broken start, then {"ok":true}'

    assert _texts(text) == ['{"ok":true}']


def _count_scans(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    starts: list[int] = []
    original = candidates_module._scan

    def _counting(text: str, start: int, opener: str) -> dict[int, object]:
        starts.append(start)
        return original(text, start, opener)

    monkeypatch.setattr(candidates_module, "_scan", _counting)
    return starts


def test_run_of_unterminated_openers_is_scanned_once(monkeypatch: pytest.MonkeyPatch) -> None:
    starts = _count_scans(monkeypatch)
    text = "{" * 5000 + '{"a":1}'

    assert _texts(text) == ['{"a":1}']
    assert starts == [0]


def test_unterminated_outer_keeps_every_inner_span(monkeypatch: pytest.MonkeyPatch) -> None:
    starts = _count_scans(monkeypatch)
    text = '{ {"x":1} {"y":[2]}'

    assert _texts(text) == ['{"x":1}', '{"y":[2]}', "[2]"]
    assert starts == [0, 15]


if HYPOTHESIS_AVAILABLE:
    _json_values = st.recursive(
        st.none() | st.booleans() | st.integers() | st.text(max_size=10),
        lambda children: st.lists(children, max_size=3)
        | st.dictionaries(st.text(max_size=5), children, max_size=3),
        max_leaves=12,
    )

    @settings(max_examples=40, deadline=None)
    @given(
        value=st.dictionaries(st.text(max_size=5), _json_values, max_size=4),
        prose=st.text(alphabet="abc .:\n", max_size=20),
    )
    def test_embedded_object_is_the_first_candidate(value: dict[str, object], prose: str) -> None:
        payload = json.dumps(value)
        candidates = extract_candidates(f"{prose}{payload}{prose}")

        assert candidates
        assert candidates[0].text == payload
