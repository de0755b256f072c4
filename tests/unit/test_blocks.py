# =============================================================================
# TESTS - Question block extraction
# =============================================================================

from studyquiz.blocks import (
    expand_true_false_groups,
    extract_questions,
    find_numbered_blocks,
    is_likely_question_start,
    parse_unnumbered_questions,
)
from studyquiz.models import QuestionType
from studyquiz.sections import split_sections


class TestFindNumberedBlocks:
    """Tests for numbered marker detection."""

    def test_numeric_markers(self, keyed_document):
        section = split_sections(keyed_document).question_section
        blocks = find_numbered_blocks(section)

        assert [number for number, _ in blocks] == [1, 2, 3]
        assert blocks[0][1].startswith("A 45-year-old man")

    def test_explicit_markers_take_priority(self, explained_document):
        section = split_sections(explained_document).question_section
        blocks = find_numbered_blocks(section)

        assert [number for number, _ in blocks] == [1, 2]
        assert blocks[1][1].startswith("Which medication reverses heparin?")

    def test_no_numbering(self, unnumbered_document):
        assert find_numbered_blocks(unnumbered_document) == []


class TestExtractQuestions:
    """Tests for extract_questions."""

    def test_numbered_questions(self, keyed_document):
        section = split_sections(keyed_document).question_section
        questions = extract_questions(section)

        assert [q.id for q in questions] == ["q-1", "q-2", "q-3"]
        assert questions[0].option_labels() == ["A", "B", "C", "D"]
        assert questions[0].options[0].text == "Myocardial infarction"
        assert questions[2].option_labels() == ["A", "B"]

    def test_blocks_without_options_are_dropped(self):
        section = (
            "1. This block is only a sentence.\n"
            "2. What is the most common cause of community acquired pneumonia?\n"
            "A) Streptococcus pneumoniae\n"
            "B) Klebsiella pneumoniae\n"
        )
        questions = extract_questions(section)

        assert [q.number for q in questions] == [2]

    def test_repeated_numbers_are_renumbered(self):
        """Numbers that do not increase are moved past the previous one."""
        section = (
            "1. Which enzyme is deficient in phenylketonuria?\n"
            "A) Phenylalanine hydroxylase\n"
            "B) Tyrosinase\n"
            "1. Which vitamin is a cofactor for that enzyme system?\n"
            "A) Tetrahydrobiopterin\n"
            "B) Thiamine\n"
        )
        questions = extract_questions(section)

        assert [q.number for q in questions] == [1, 2]
        assert [q.id for q in questions] == ["q-1", "q-2"]


class TestUnnumberedQuestions:
    """Tests for segmentation of text without question numbers."""

    def test_segmentation(self, unnumbered_document):
        questions = parse_unnumbered_questions(unnumbered_document)

        assert len(questions) == 2
        first, second = questions
        assert first.stem.startswith("Which diuretic")
        assert [o.text for o in first.options] == ["Furosemide", "Hydrochlorothiazide", "Spironolactone"]
        assert second.option_labels() == ["A", "B"]

    def test_image_after_options_moves_to_next_question(self, unnumbered_document):
        first, second = parse_unnumbered_questions(unnumbered_document)

        assert first.images == []
        assert second.images == ["nephron.png"]
        assert "[IMAGE" not in second.stem

    def test_title_line_is_skipped(self, unnumbered_document):
        questions = parse_unnumbered_questions(unnumbered_document)
        assert all("Renal Review" not in q.stem for q in questions)

    def test_question_start_detection(self):
        assert is_likely_question_start("Which of these is correct")
        assert is_likely_question_start("A 23-year-old woman comes to the clinic")
        assert is_likely_question_start("Q12 about the kidney")
        assert not is_likely_question_start("Furosemide")
        assert not is_likely_question_start("[IMAGE:figure.png]")


class TestTrueFalseExpansion:
    """Tests for 'True or False' statement groups."""

    def test_expands_statement_groups(self, true_false_document):
        section = split_sections(true_false_document).question_section
        questions = extract_questions(section)

        assert len(questions) == 2
        assert questions[0].stem == "Aspirin irreversibly inhibits cyclooxygenase."
        assert [o.text for o in questions[0].options] == ["True", "False"]
        assert all(q.type == QuestionType.TRUE_FALSE for q in questions)
        assert [q.number for q in questions] == [1, 2]

    def test_needs_two_groups(self):
        result = expand_true_false_groups(["True or False"], ["Statement one.", "TRUE", "FALSE"], 1)
        assert result == []

    def test_tokens_must_differ(self):
        lines = ["First statement.", "TRUE", "TRUE", "Second statement.", "TRUE", "FALSE"]
        assert expand_true_false_groups(["True or False"], lines, 1) == []

    def test_other_stems_are_not_expanded(self):
        lines = ["First statement.", "TRUE", "FALSE", "Second statement.", "TRUE", "FALSE"]
        assert expand_true_false_groups(["Decide:"], lines, 1) == []
