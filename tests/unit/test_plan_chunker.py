"""Tests for the plan page chunker."""

from plan_chat.ingestion.plan_indexer import PlanTextChunker


def test_short_paragraphs_are_packed_together():
    chunker = PlanTextChunker(max_chars=100, min_chars=10)
    chunks = chunker.chunk_page("GENERAL NOTES\n\nVerify dimensions.\n\nComply with IBC.")
    assert chunks == ["GENERAL NOTES\n\nVerify dimensions.\n\nComply with IBC."]


def test_whitespace_is_collapsed_within_paragraphs():
    chunker = PlanTextChunker(max_chars=100, min_chars=10)
    assert chunker.chunk_page("Provide   3-5/8\"\nmetal studs") == ['Provide 3-5/8" metal studs']


def test_long_paragraph_splits_on_sentences():
    chunker = PlanTextChunker(max_chars=40, min_chars=10)
    text = "Roofing is TPO membrane. Flashing is prefinished metal. Gutters are aluminum."
    chunks = chunker.chunk_page(text)
    assert chunks == [
        "Roofing is TPO membrane.",
        "Flashing is prefinished metal.",
        "Gutters are aluminum.",
    ]
    assert all(len(c) <= 40 for c in chunks)


def test_overlong_sentence_is_hard_cut_and_short_tail_folded():
    chunker = PlanTextChunker(max_chars=20, min_chars=5)
    chunks = chunker.chunk_page("x" * 42)
    assert chunks == ["x" * 20, "x" * 22]


def test_blank_page_yields_nothing():
    assert PlanTextChunker().chunk_page("  \n\n \n") == []
