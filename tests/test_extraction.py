"""Tests for the extraction entry point."""

import pytest

from citeparse.core.config import ExtractionConfig, ExtractionLimits
from citeparse.core.safety import InputTooLarge
from citeparse.extraction import extract_all, group_citations_by_attachment_id
from citeparse.parsers.models import Citation

DEFERRED = (
    "Sales rose <cite attachment_id='abc' full_phrase='Sales rose' /> and grew [1].\n"
    "<<<CITATION_DATA>>>\n"
    '[{"id": 1, "attachment_id": "abc", "full_phrase": "grew 45%"}]\n'
    "<<<END_CITATION_DATA>>>"
)


def _phrases(citations):
    return sorted(c.full_phrase for c in citations.values())


# ── Text Input ───────────────────────────────────────────────────────


def test_xml_tags():
    text = "Revenue <cite attachment_id='abc' full_phrase='Revenue grew' anchor_text='grew' /> up."
    citations = extract_all(text)
    assert _phrases(citations) == ["Revenue grew"]
    assert next(iter(citations.values())).citation_number == 1


def test_tag_without_full_phrase_excluded():
    assert extract_all("<cite attachment_id='abc' anchor_text='y' />") == {}


def test_deferred_block():
    text = (
        "Grew 45% [1].\n<<<CITATION_DATA>>>\n"
        '[{"id":1,"attachment_id":"abc","full_phrase":"Grew 45%"}]\n'
        "<<<END_CITATION_DATA>>>"
    )
    citations = extract_all(text)
    assert len(citations) == 1
    citation = next(iter(citations.values()))
    assert citation.citation_number == 1
    assert citation.attachment_id == "abc"


def test_both_dialects_in_one_response():
    assert _phrases(extract_all(DEFERRED)) == ["Sales rose", "grew 45%"]


def test_broken_deferred_block_keeps_tag_citations():
    text = "<cite full_phrase='ok' /> [1]\n<<<CITATION_DATA>>>\n{{{broken"
    assert _phrases(extract_all(text)) == ["ok"]


def test_lenient_ids_from_config():
    text = 'Answer [1].\n<<<CITATION_DATA>>>\n[{"f": "no id"}]'
    assert extract_all(text) == {}
    lenient = extract_all(text, ExtractionConfig(strict_citation_ids=False))
    assert _phrases(lenient) == ["no id"]


def test_encoded_tag_inside_phrase():
    citations = extract_all("A <cite attachment_id='a' full_phrase='use &lt;cite&gt; tags' /> b")
    assert _phrases(citations) == ["use <cite> tags"]


def test_overlong_numbers_in_tag_ignored():
    overlong = "9" * 5000
    text = (
        f"<cite attachment_id='abc' start_page_id='page_number_{overlong}_index_0' "
        f"full_phrase='x' line_ids='{overlong}' />"
    )
    citations = extract_all(text)
    assert _phrases(citations) == ["x"]
    citation = next(iter(citations.values()))
    assert citation.line_ids is None
    assert citation.page_number is None


def test_deeply_nested_data_block():
    assert extract_all("Hi [1].\n<<<CITATION_DATA>>>\n" + "[" * 5000) == {}


def test_oversized_integer_in_data_block():
    payload = '[{"id": ' + "1" * 5000 + ', "full_phrase": "x"}]'
    assert extract_all("Hi [1].\n<<<CITATION_DATA>>>\n" + payload) == {}


@pytest.mark.parametrize("empty", [None, "", "   ", {}, [], 42, 3.5])
def test_nothing_to_extract(empty):
    assert extract_all(empty) == {}


# ── Object Input ─────────────────────────────────────────────────────


def test_nested_json_citations():
    citations = extract_all({"citations": [{"full_phrase": "x", "anchor_text": "y"}]})
    assert len(citations) == 1
    citation = next(iter(citations.values()))
    assert citation.full_phrase == "x"
    assert citation.anchor_text == "y"
    assert citation.citation_number == 1


def test_root_citation_list():
    data = [
        {"fullPhrase": "a", "fileId": "f1", "startPageKey": "page_number_3_index_1"},
        {"fullPhrase": "b", "fileId": "f1"},
        {"keySpan": "no phrase"},
    ]
    citations = extract_all(data)
    assert _phrases(citations) == ["a", "b"]
    assert {c.citation_number for c in citations.values()} == {1, 2}


def test_root_citation_object():
    assert _phrases(extract_all({"full_phrase": "solo", "anchor_text": "s"})) == ["solo"]


def test_tags_inside_object_strings():
    data = {"answer": "Sales rose <cite attachment_id='abc' full_phrase='Sales rose' />"}
    citations = extract_all(data)
    assert _phrases(citations) == ["Sales rose"]
    assert next(iter(citations.values())).attachment_id == "abc"


def test_deeply_nested_object():
    data = {"citations": [{"full_phrase": "deep"}]}
    for _ in range(200):
        data = {"child": data}
    assert extract_all(data) == {}


def test_nesting_beyond_recursion_limit():
    data = {"citations": [{"full_phrase": "deep"}]}
    for _ in range(50_000):
        data = {"child": data}
    assert extract_all(data) == {}


def test_circular_object():
    data = {"citations": [{"full_phrase": "loop"}]}
    data["self"] = data
    assert _phrases(extract_all(data)) == ["loop"]


def test_depth_from_config():
    data = {"a": {"b": {"citations": [{"full_phrase": "x"}]}}}
    shallow = ExtractionConfig(limits=ExtractionLimits(max_depth=1))
    assert extract_all(data, shallow) == {}
    assert len(extract_all(data)) == 1


# ── Merging ──────────────────────────────────────────────────────────


def test_duplicates_merge():
    tag = "<cite attachment_id='abc' full_phrase='same' />"
    assert len(extract_all(f"{tag} again {tag}")) == 1


def test_json_and_tag_paths_merge():
    data = {
        "citations": [{"attachment_id": "abc", "full_phrase": "same"}],
        "answer": "<cite attachment_id='abc' full_phrase='same' />",
    }
    assert len(extract_all(data)) == 1


# ── Limits ───────────────────────────────────────────────────────────


def test_oversized_text_raises():
    with pytest.raises(InputTooLarge):
        extract_all("x" * 100_001)


def test_input_limit_from_config():
    config = ExtractionConfig(limits=ExtractionLimits(max_input_length=10))
    with pytest.raises(InputTooLarge):
        extract_all("<cite full_phrase='x' />", config)


# ── Grouping ─────────────────────────────────────────────────────────


def test_group_record_by_attachment():
    citations = extract_all(
        "<cite attachment_id='f1' full_phrase='a' /> <cite attachment_id='f2' full_phrase='b' /> "
        "<cite full_phrase='c' />"
    )
    grouped = group_citations_by_attachment_id(citations)
    assert set(grouped) == {"f1", "f2", ""}
    assert _phrases(grouped["f1"]) == ["a"]


def test_group_list_keyed_by_citation_key():
    items = [Citation(attachment_id="f1", full_phrase="a"), Citation(attachment_id="f1", full_phrase="b")]
    grouped = group_citations_by_attachment_id(items)
    assert len(grouped["f1"]) == 2
    assert all(len(key) == 16 for key in grouped["f1"])
