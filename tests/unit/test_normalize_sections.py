# =============================================================================
# TESTS - Text normalizer and section splitter
# =============================================================================

from studyquiz.normalize import normalize_whitespace
from studyquiz.sections import find_answer_heading, scan_for_answer_block, split_sections


class TestNormalizeWhitespace:
    """Tests for normalize_whitespace."""

    def test_line_endings(self):
        """CRLF and lone CR become LF."""
        assert normalize_whitespace("a\r\nb\rc") == "a\nb\nc"

    def test_soft_spaces_and_runs(self):
        """Tabs, non-breaking spaces and space runs collapse to one space."""
        assert normalize_whitespace("a\u00a0\tb    c") == "a b c"

    def test_blank_line_runs(self):
        """Three or more newlines become one blank line."""
        assert normalize_whitespace("a\n\n\n\nb") == "a\n\nb"

    def test_trim(self):
        assert normalize_whitespace("  \n text \n\n") == "text"

    def test_empty(self):
        assert normalize_whitespace("") == ""
        assert normalize_whitespace(None) == ""

    def test_idempotent(self):
        """Normalizing twice changes nothing."""
        raw = "Title\r\n\r\n\r\n1.\tQuestion\u00a0one?\r\nA) x  y\n\n\n\nB) z "
        once = normalize_whitespace(raw)
        assert normalize_whitespace(once) == once


class TestSplitSections:
    """Tests for the answer-section boundary detection."""

    def test_heading_split(self, keyed_document):
        """An answer heading late in the text starts the answer section."""
        sections = split_sections(keyed_document)

        assert sections.has_answer_section
        assert sections.answer_section.startswith("Answer Key")
        assert "1) A" in sections.answer_section
        assert "Answer Key" not in sections.question_section
        assert sections.question_section.startswith("Cardiology Practice Set")

    def test_heading_too_early_is_ignored(self):
        """A heading inside the first fifth of the document is not a boundary."""
        text = "Answers\n" + "x" * 200
        assert find_answer_heading(text) == -1

    def test_heading_needs_line_start(self):
        text = "y" * 200 + "\nThe answers are below\nmore text"
        assert find_answer_heading(text) == -1

    def test_statistical_scan(self):
        """A dense run of 'N) X' lines is found without a heading."""
        lines = [f"Stem line {k} about renal physiology" for k in range(10)]
        lines += ["1) A", "2) B", "3) C", "4) D"]
        text = "\n".join(lines)

        assert scan_for_answer_block(text) > 0
        sections = split_sections(text)
        assert sections.has_answer_section
        assert sections.answer_section.endswith("4) D")
        assert sections.question_section.startswith("Stem line 0")

    def test_no_answer_section(self):
        sections = split_sections("1. What is two plus two?\nA) 3\nB) 4")

        assert not sections.has_answer_section
        assert sections.answer_section == ""
        assert sections.question_section.startswith("1. What")
