"""Tests for pure collection transformations."""

import pytest

from ground_truth_curator.datasets.collection import (
    ApprovalFilter,
    DatasetStats,
    InsertPosition,
    SortDirection,
    collection_stats,
    compare_ids,
    filter_records,
    insert_record,
    leading_number,
    map_record,
    remove_record,
    replace_record,
    sort_records,
)
from ground_truth_curator.records.models import RecordKind, approve, assign_identity


def make_entry(chunk_id: str, question: str = "q", text: str = "t"):
    return assign_identity(
        RecordKind.ENTRY,
        {"question": question, "ground_truth_chunk_id": chunk_id, "ground_truth_text": text},
    )


def make_document(doc_id: str, **metadata):
    return assign_identity(
        RecordKind.DOCUMENT,
        {"id": doc_id, "text": f"text of {doc_id}", "page_num": 1, "metadata": metadata},
    )


class TestInsert:
    @pytest.fixture
    def docs(self):
        return [make_document("a"), make_document("b"), make_document("c")]

    def test_before(self, docs):
        new = make_document("x")
        result = insert_record(docs, new, InsertPosition.BEFORE, 1)
        assert [d.id for d in result] == ["a", "x", "b", "c"]

    def test_after(self, docs):
        new = make_document("x")
        result = insert_record(docs, new, "after", 1)
        assert [d.id for d in result] == ["a", "b", "x", "c"]

    def test_no_target_appends(self, docs):
        result = insert_record(docs, make_document("x"))
        assert result[-1].id == "x"

    @pytest.mark.parametrize(
        "position,target,expected_index",
        [("before", -5, 0), ("after", 99, 3), ("before", 99, 3), ("after", -1, 0)],
    )
    def test_out_of_range_clamped(self, docs, position, target, expected_index):
        result = insert_record(docs, make_document("x"), position, target)
        assert result[expected_index].id == "x"
        assert len(result) == 4

    def test_input_untouched(self, docs):
        insert_record(docs, make_document("x"), "before", 0)
        assert len(docs) == 3


class TestReplaceRemove:
    def test_replace_keeps_position(self):
        records = [make_entry("1"), make_entry("2"), make_entry("3")]
        replacement = records[1].model_copy(update={"question": "edited"})

        result, changed = replace_record(records, records[1].identity, replacement)

        assert changed is True
        assert [r.question for r in result] == ["q", "edited", "q"]
        assert records[1].question == "q"

    def test_replace_unknown_identity(self):
        records = [make_entry("1")]
        result, changed = replace_record(records, "missing", make_entry("2"))
        assert changed is False
        assert result == records

    def test_remove_by_identity(self):
        records = [make_entry("1"), make_entry("1")]
        result, changed = remove_record(records, records[0].identity)

        assert changed is True
        assert len(result) == 1
        assert result[0].identity == records[1].identity

    def test_remove_unknown(self):
        result, changed = remove_record([make_entry("1")], "missing")
        assert changed is False
        assert len(result) == 1

    def test_map_record(self):
        records = [make_entry("1")]
        result, changed = map_record(records, records[0].identity, lambda r: approve(r, "alice"))
        assert changed is True
        assert result[0].approved is True


class TestFilter:
    @pytest.fixture
    def records(self):
        return [
            make_entry("chunk_1", question="What is RAG?"),
            approve(make_entry("chunk_2", question="Define embeddings"), "alice"),
            make_entry("chunk_3", text="Mentions rag in the text"),
        ]

    def test_case_insensitive_search(self, records):
        result = filter_records(records, "RaG")
        assert [r.ground_truth_chunk_id for r in result] == ["chunk_1", "chunk_3"]

    def test_search_chunk_id(self, records):
        assert len(filter_records(records, "chunk_2")) == 1

    def test_approval_filters(self, records):
        assert len(filter_records(records, approval=ApprovalFilter.APPROVED)) == 1
        assert len(filter_records(records, approval="pending")) == 2
        assert len(filter_records(records, approval="all")) == 3

    def test_search_and_filter_combined(self, records):
        assert filter_records(records, "rag", "approved") == []

    def test_documents_search_metadata(self):
        docs = [make_document("s-1", chapter="Finance"), make_document("s-2", schedule="Third")]
        assert [d.id for d in filter_records(docs, "finance")] == ["s-1"]
        assert [d.id for d in filter_records(docs, "third")] == ["s-2"]


class TestSort:
    def test_direction_cycle(self):
        assert SortDirection.NONE.next() == SortDirection.ASC
        assert SortDirection.ASC.next() == SortDirection.DESC
        assert SortDirection.DESC.next() == SortDirection.NONE

    def test_leading_number(self):
        assert leading_number("12abc") == 12.0
        assert leading_number("3.5") == 3.5
        assert leading_number("-2") == -2.0
        assert leading_number("abc") is None
        assert leading_number("") is None

    def test_numeric_comparison(self):
        assert compare_ids("2", "10") < 0
        assert compare_ids("10", "10.0") == 0

    def test_natural_comparison(self):
        assert compare_ids("chunk_2", "chunk_10") < 0
        assert compare_ids("Chunk_A", "chunk_b") < 0
        assert compare_ids("abc", "ABC") == 0

    def test_numbers_before_text_ascending(self):
        records = [make_entry("beta"), make_entry("10"), make_entry("alpha"), make_entry("2")]
        result = sort_records(records, SortDirection.ASC)
        assert [r.ground_truth_chunk_id for r in result] == ["2", "10", "alpha", "beta"]

    def test_mixed_numbers_and_sections(self):
        ids = ["10", "2", "Section 1", "Section 10", "Section 2"]
        records = [make_entry(chunk_id) for chunk_id in ids]

        ascending = [r.ground_truth_chunk_id for r in sort_records(records, SortDirection.ASC)]
        assert ascending == ["2", "10", "Section 1", "Section 2", "Section 10"]

        descending = [r.ground_truth_chunk_id for r in sort_records(records, SortDirection.DESC)]
        assert descending == list(reversed(ascending))

    def test_descending(self):
        records = [make_entry("chunk_2"), make_entry("chunk_10"), make_entry("chunk_1")]
        result = sort_records(records, "desc")
        assert [r.ground_truth_chunk_id for r in result] == ["chunk_10", "chunk_2", "chunk_1"]

    def test_none_keeps_order(self):
        records = [make_entry("b"), make_entry("a")]
        assert sort_records(records, SortDirection.NONE) == records

    def test_documents_sort_by_id(self):
        docs = [make_document("s-10"), make_document("s-9")]
        assert [d.id for d in sort_records(docs, "asc")] == ["s-9", "s-10"]


class TestStats:
    def test_empty(self):
        assert collection_stats([]) == DatasetStats(0, 0, 0, 0.0)

    def test_rate_rounded_to_one_decimal(self):
        records = [approve(make_entry("1"), "a"), make_entry("2"), make_entry("3")]
        stats = collection_stats(records)
        assert stats.total == 3
        assert stats.approved == 1
        assert stats.pending == 2
        assert stats.approval_rate == 33.3
