import pytest

from contractdiff.comparison.sections import (
    is_heading,
    jaccard_similarity,
    normalize_label,
    split_sections,
    text_stats,
)
from tests.conftest import STANDARD_NDA


class TestHeadings:
    @pytest.mark.parametrize(
        "line",
        ["1. Confidentiality", "2.1 Term of Agreement", "GOVERNING LAW", "ARTICLE IV - Term", "Section 3"],
    )
    def test_recognised(self, line: str) -> None:
        assert is_heading(line)

    @pytest.mark.parametrize(
        "line",
        ["", "The Receiving Party shall keep all information confidential.", "Yes", "x" * 120],
    )
    def test_not_recognised(self, line: str) -> None:
        assert not is_heading(line)

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("2. TERM", "term"),
            ("ARTICLE IV - Term", "term"),
            ("Section 3.1: Payment", "payment"),
            ("  Governing   Law ", "governing law"),
            ("1.", "1."),
        ],
    )
    def test_normalize_label(self, label: str, expected: str) -> None:
        assert normalize_label(label) == expected


class TestSplitSections:
    def test_splits_at_headings(self) -> None:
        sections = split_sections(STANDARD_NDA)

        assert [s.label for s in sections] == [
            "NON-DISCLOSURE AGREEMENT",
            "1. Confidentiality",
            "2. Governing Law",
            "3. Notices",
        ]
        assert sections[1].key == "confidentiality"
        assert sections[1].body.startswith("The Receiving Party")

    def test_keeps_text_before_first_heading_as_preamble(self) -> None:
        sections = split_sections("This agreement is made today.\n1. Term\nOne year.")
        assert sections[0].label == "Preamble"
        assert sections[0].body == "This agreement is made today."
        assert sections[1].key == "term"

    def test_inline_heading_body(self) -> None:
        sections = split_sections("1. Term: The agreement lasts one year.\n2. Fees\nNone.")
        assert sections[0].label == "1. Term"
        assert sections[0].body == "The agreement lasts one year."

    def test_paragraph_fallback(self) -> None:
        text = "Payment: Invoices are due within 30 days.\n\nThe supplier shall deliver goods promptly."
        sections = split_sections(text)

        assert [(s.label, s.key) for s in sections] == [
            ("Payment", "payment"),
            ("Paragraph 2", None),
        ]
        assert sections[0].body == "Invoices are due within 30 days."

    def test_empty_text(self) -> None:
        assert split_sections("") == []


class TestSimilarity:
    def test_identical_texts(self) -> None:
        assert jaccard_similarity(STANDARD_NDA, STANDARD_NDA) == 100.0

    def test_partial_overlap(self) -> None:
        assert jaccard_similarity("alpha beta gamma", "alpha beta delta") == 50.0

    def test_both_empty(self) -> None:
        assert jaccard_similarity("", "") == 100.0

    def test_ignores_short_words(self) -> None:
        assert jaccard_similarity("a an the", "of to in") == 100.0


class TestTextStats:
    def test_counts(self) -> None:
        stats = text_stats("One two. Three four!\n\nFive.")
        assert stats.words == 5
        assert stats.sentences == 3
        assert stats.paragraphs == 2
        assert stats.characters == 27
        assert stats.characters_no_spaces == 22
        assert stats.average_word_length == 4.4

    def test_empty(self) -> None:
        stats = text_stats("")
        assert stats.words == 0
        assert stats.average_word_length == 0.0
