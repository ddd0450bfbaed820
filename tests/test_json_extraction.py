import pytest

from apps.orchestrator.extraction import (
    extract_json,
    from_brace_span,
    from_json_fence,
    from_plain_fence,
    from_whole_text,
    normalize_lm_output,
    require_list,
)
from devlab.core.errors import ParseError

LABELED = 'Here you go:\n```json\n{"hints": ["a", "b", "c"]}\n```\nGood luck!'
UNLABELED = 'Sure.\n```\n{"hints": ["a", "b", "c"]}\n```'
BARE = 'The answer is {"fraud_score": 12, "message": "ok"} as requested.'


def test_json_fence_extractor_only_matches_labeled_blocks() -> None:
    assert from_json_fence(LABELED) == '{"hints": ["a", "b", "c"]}'
    assert from_json_fence(UNLABELED) is None


def test_plain_fence_extractor_strips_language_label() -> None:
    assert from_plain_fence(UNLABELED) == '{"hints": ["a", "b", "c"]}'
    assert from_plain_fence('```python\n{"a": 1}\n```') == '{"a": 1}'
    assert from_plain_fence("no fences here") is None


def test_brace_span_extractor_takes_outermost_object() -> None:
    assert from_brace_span(BARE) == '{"fraud_score": 12, "message": "ok"}'
    assert from_brace_span("} backwards {") is None


def test_whole_text_extractor_trims() -> None:
    assert from_whole_text('  {"a": 1}\n') == '{"a": 1}'
    assert from_whole_text("   ") is None


@pytest.mark.parametrize("text", [LABELED, UNLABELED, BARE, '  {"ok": true}  '])
def test_extract_json_handles_each_layout(text: str) -> None:
    assert isinstance(extract_json(text), dict)


def test_first_successful_strategy_wins() -> None:
    text = '```json\n{"source": "fence"}\n```\n{"source": "bare"}'
    assert extract_json(text) == {"source": "fence"}


def test_broken_fence_falls_through_to_later_strategies() -> None:
    text = '```json\n{not json}\n```\nbut also {"recovered": 1}'
    assert extract_json(text, [from_json_fence, from_whole_text, lambda t: t[t.rfind("{") :]]) == {"recovered": 1}


def test_unparseable_text_raises_parse_error() -> None:
    with pytest.raises(ParseError, match="Could not extract valid JSON"):
        extract_json("I cannot help with that.")


def test_json_arrays_are_not_accepted_as_objects() -> None:
    with pytest.raises(ParseError):
        extract_json('["a", "b", "c"]')


def test_require_list_checks_shape() -> None:
    assert require_list({"questions": [1]}, "questions") == [1]
    with pytest.raises(ParseError, match="questions"):
        require_list({"questions": "nope"}, "questions")


def test_normalize_lm_output_joins_completions() -> None:
    assert normalize_lm_output(["a", "b"]) == "a\nb"
    assert normalize_lm_output(None) == ""
    assert normalize_lm_output(7) == "7"
