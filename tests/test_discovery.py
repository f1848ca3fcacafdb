"""Tests for recursive discovery of JSON citation objects."""

import pytest

from citeparse.parsers.discovery import (
    discover_citations,
    has_citation_fields,
    json_citation_to_citation,
    looks_like_citation,
)


def _nest(node, levels):
    for _ in range(levels):
        node = {"child": node}
    return node


# ── Shape Checks ─────────────────────────────────────────────────────


@pytest.mark.parametrize("item", [
    {"full_phrase": "x"},
    {"fullPhrase": "x"},
    {"FULL_PHRASE": "x"},
    {"keySpan": "x"},
    {"start_page_key": "page_number_1_index_0"},
    {"lineIds": [1]},
])
def test_recognized_fields(item):
    assert has_citation_fields(item)


def test_unrecognized_shapes():
    assert not has_citation_fields({"title": "x"})
    assert not has_citation_fields("full_phrase")
    assert not looks_like_citation([])
    assert not looks_like_citation([1, "x"])
    assert looks_like_citation([1, {"anchor_text": "x"}])


# ── Traversal ────────────────────────────────────────────────────────


def test_collects_citation_and_citations():
    data = {
        "answer": "text",
        "citation": {"full_phrase": "one"},
        "sections": [{"citations": [{"full_phrase": "two"}, {"full_phrase": "three"}]}],
    }
    found = discover_citations(data)
    assert [c["full_phrase"] for c in found] == ["one", "two", "three"]


def test_non_citation_values_ignored():
    data = {"citations": ["a", "b"], "citation": {"title": "not one"}}
    assert discover_citations(data) == []


def test_citation_values_not_searched_again():
    data = {"citations": [{"full_phrase": "outer", "citations": [{"full_phrase": "inner"}]}]}
    assert [c["full_phrase"] for c in discover_citations(data)] == ["outer"]


def test_depth_limit():
    data = _nest({"citations": [{"full_phrase": "deep"}]}, 10)
    assert discover_citations(data, max_depth=5) == []
    assert len(discover_citations(data, max_depth=10)) == 1


def test_very_deep_nesting_does_not_raise():
    data = _nest({"citations": [{"full_phrase": "deep"}]}, 200)
    assert discover_citations(data) == []


def test_circular_reference_terminates():
    data = {"citations": [{"fullPhrase": "loop"}]}
    data["self"] = data
    data["items"] = [data, data]
    assert len(discover_citations(data)) == 1


def test_scalars_yield_nothing():
    assert discover_citations("text") == []
    assert discover_citations(None) == []


# ── Conversion ───────────────────────────────────────────────────────


def test_camel_case_conversion():
    citation = json_citation_to_citation(
        {
            "fullPhrase": "a",
            "keySpan": "b",
            "fileId": "f1",
            "startPageKey": "page_number_3_index_1",
            "lineIds": [5, 2],
            "reasoning": "r",
            "value": 42,
        },
        citation_number=1,
    )
    assert citation.full_phrase == "a"
    assert citation.anchor_text == "b"
    assert citation.attachment_id == "f1"
    assert citation.page_number == 3
    assert citation.start_page_id == "page_number_3_index_1"
    assert citation.line_ids == [2, 5]
    assert citation.reasoning == "r"
    assert citation.value == "42"
    assert citation.citation_number == 1


def test_snake_case_conversion():
    citation = json_citation_to_citation(
        {"full_phrase": "a", "anchor_text": "b", "attachment_id": "f1", "line_ids": "4-6"}
    )
    assert citation.line_ids == [4, 5, 6]
    assert citation.attachment_id == "f1"


def test_integer_page_number():
    citation = json_citation_to_citation({"full_phrase": "a", "page_number": 4})
    assert citation.page_number == 4
    assert citation.start_page_id == "page_number_4_index_0"


def test_compact_page_id():
    citation = json_citation_to_citation({"full_phrase": "a", "page_id": "0_0"})
    assert citation.page_number == 1


def test_timestamps_conversion():
    citation = json_citation_to_citation(
        {"full_phrase": "a", "timestamps": {"startTime": "00:01", "endTime": "00:09"}}
    )
    assert citation.timestamps.start_time == "00:01"
    assert citation.timestamps.end_time == "00:09"

    citation = json_citation_to_citation({"full_phrase": "a", "timestamps": "00:01-00:09"})
    assert citation.timestamps.end_time == "00:09"


def test_missing_phrase_converted_without_phrase():
    assert json_citation_to_citation({"anchor_text": "b"}).full_phrase is None
