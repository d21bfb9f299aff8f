"""Tests for docreview.llm_parsing review extraction."""
from __future__ import annotations

import json

from docreview.llm_parsing import parse_review_items, serialize_items
from docreview.models import ReviewItem

PAYLOAD = {
    "reviews": [
        {"lineNumber": 42, "reviewComment": "typo: 群 should be 集群", "suggestion": ""},
        {"lineNumber": "7", "reviewComment": "Clarify the default.", "suggestion": "Default: 1."},
    ]
}


class TestTiers:
    def test_whole_text(self):
        items = parse_review_items(json.dumps(PAYLOAD, ensure_ascii=False))
        assert [i.line_number for i in items] == ["42", "7"]
        assert items[1].suggestion == "Default: 1."

    def test_fenced_block_matches_bare_payload(self):
        bare = json.dumps(PAYLOAD, ensure_ascii=False)
        fenced = f"```json\n{bare}\n```"
        assert parse_review_items(fenced) == parse_review_items(bare)

    def test_untagged_fence(self):
        bare = json.dumps(PAYLOAD, ensure_ascii=False)
        assert parse_review_items(f"Here it is:\n```\n{bare}\n```\n") == parse_review_items(bare)

    def test_fence_that_is_not_json_is_skipped(self):
        bare = json.dumps(PAYLOAD, ensure_ascii=False)
        text = f"```bash\nls -la\n```\n\n```json\n{bare}\n```"
        assert len(parse_review_items(text)) == 2

    def test_brace_span_in_prose(self):
        text = (
            'Sure! {"reviews": [{"lineNumber": 3, "reviewComment": "Missing a period."}]} '
            "Let me know {if} you need more."
        )
        items = parse_review_items(text)
        assert items == [ReviewItem(line_number="3", comment="Missing a period.", suggestion="")]

    def test_brace_span_skips_non_json_braces(self):
        text = 'Use {placeholder} then {"reviews": [{"lineNumber": 1, "reviewComment": "x"}]}'
        assert [i.line_number for i in parse_review_items(text)] == ["1"]


class TestEmptyAndFailure:
    def test_object_without_reviews_is_empty(self):
        assert parse_review_items('{"summary": "looks fine"}') == []

    def test_object_without_reviews_does_not_fall_through(self):
        # The first tier already found an object, so the fenced payload is ignored
        bare = json.dumps(PAYLOAD)
        text = json.dumps({"note": f"```json\n{bare}\n```"})
        assert parse_review_items(text) == []

    def test_null_reviews_is_empty(self):
        assert parse_review_items('{"reviews": null}') == []

    def test_prose_is_empty_not_failure(self):
        assert parse_review_items("The changes look good to me.") == []

    def test_empty_string(self):
        assert parse_review_items("") == []

    def test_non_text_is_hard_failure(self):
        assert parse_review_items(None) is None
        assert parse_review_items({"reviews": []}) is None

    def test_non_list_reviews_is_hard_failure(self):
        assert parse_review_items('{"reviews": "none"}') is None


class TestItemFields:
    def test_missing_fields_default_to_empty(self):
        items = parse_review_items('{"reviews": [{"lineNumber": 5}]}')
        assert items == [ReviewItem(line_number="5", comment="", suggestion="")]

    def test_null_suggestion_is_empty(self):
        items = parse_review_items(
            '{"reviews": [{"lineNumber": 5, "reviewComment": "x", "suggestion": null}]}'
        )
        assert items[0].suggestion == ""

    def test_non_object_entries_skipped(self):
        items = parse_review_items('{"reviews": ["oops", {"lineNumber": 2, "reviewComment": "y"}]}')
        assert [i.line_number for i in items] == ["2"]

    def test_serialize_roundtrip_shape(self):
        items = [ReviewItem(line_number="9", comment="c", suggestion="s")]
        assert json.loads(serialize_items(items)) == {
            "reviews": [{"lineNumber": "9", "reviewComment": "c", "suggestion": "s"}]
        }
