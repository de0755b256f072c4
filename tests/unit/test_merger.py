# =============================================================================
# TESTS - Merging answer keys into questions
# =============================================================================

from studyquiz.answers import AnswerEntry
from studyquiz.merger import (
    apply_answers,
    boolean_label,
    classify_question_type,
    recover_leading_option,
)
from studyquiz.models import ExplanationSource, QuestionType

RECOVERY_STEM = (
    "A 30-year-old woman has fatigue and pallor. "
    "The most likely cause of her anemia is: Chronic blood loss from menorrhagia"
)


class TestApplyAnswers:
    """Tests for apply_answers."""

    def test_resolves_letters(self, make_question):
        question = make_question(texts=("One", "Two", "Three"))
        apply_answers([question], {1: AnswerEntry(correct_option="C", correct_options=["C"], raw_answer_token="C")})

        assert question.correct_options == ["C"]
        assert question.correct_option == "C"
        assert question.raw_answer_token == "C"
        assert question.type == QuestionType.SINGLE_SELECT

    def test_multi_select(self, make_question):
        question = make_question(texts=("One", "Two", "Three"))
        apply_answers([question], {1: AnswerEntry(correct_option="A", correct_options=["A", "C"])})

        assert question.correct_options == ["A", "C"]
        assert question.type == QuestionType.MULTI_SELECT

    def test_labels_not_on_question_are_dropped(self, make_question):
        question = make_question(texts=("One", "Two"))
        apply_answers([question], {1: AnswerEntry(correct_option="B", correct_options=["B", "F"])})

        assert question.correct_options == ["B"]

    def test_explanation_seeds_correct_option(self, make_question):
        question = make_question(texts=("One", "Two"))
        entry = AnswerEntry(correct_option="B", correct_options=["B"], explanation="Two is right because of reasons.")
        apply_answers([question], {1: entry})

        assert question.source_explanation == "Two is right because of reasons."
        assert question.explanations == {"B": "Two is right because of reasons."}
        assert question.explanation_source == ExplanationSource.DOCUMENT

    def test_boolean_matches_option_text(self, make_question):
        question = make_question(texts=("False", "True"))
        apply_answers([question], {1: AnswerEntry(boolean_value=True)})

        assert question.correct_options == ["B"]
        assert question.type == QuestionType.TRUE_FALSE

    def test_embedded_answer_kept_without_entry(self, make_question):
        question = make_question(texts=("One", "Two"), correct=["B"])
        apply_answers([question], {})

        assert question.correct_options == ["B"]

    def test_question_without_entry(self, make_question):
        question = make_question(stem="Select all that apply to beta blockers.", texts=("One", "Two"))
        apply_answers([question], {2: AnswerEntry(correct_option="A", correct_options=["A"])})

        assert question.correct_options == []
        assert question.correct_option is None
        assert question.type == QuestionType.MULTI_SELECT


class TestLeadingOptionRecovery:
    """Tests for splitting a first option back out of the stem."""

    def test_recovers_when_key_names_next_label(self, make_question):
        question = make_question(stem=RECOVERY_STEM, texts=("Vitamin B12 deficiency", "Folate deficiency", "Anemia of chronic disease"))
        apply_answers([question], {1: AnswerEntry(correct_option="D", correct_options=["D"])})

        assert question.stem.endswith("anemia is:")
        assert question.option_labels() == ["A", "B", "C", "D"]
        assert question.option("A").text == "Chronic blood loss from menorrhagia"
        assert question.option("D").text == "Anemia of chronic disease"
        assert question.correct_options == ["D"]

    def test_label_must_follow_last_option(self, make_question):
        question = make_question(stem=RECOVERY_STEM, texts=("One", "Two", "Three"))

        assert not recover_leading_option(question, ["F"])
        assert question.option_labels() == ["A", "B", "C"]

    def test_needs_a_single_missing_label(self, make_question):
        question = make_question(stem=RECOVERY_STEM, texts=("One", "Two", "Three"))
        assert not recover_leading_option(question, ["D", "E"])

    def test_clause_must_not_be_a_question(self, make_question):
        question = make_question(stem="Read the case: what is the most likely diagnosis?", texts=("One", "Two"))
        assert not recover_leading_option(question, ["C"])

    def test_clause_too_short(self, make_question):
        question = make_question(stem="The cause is: iron", texts=("One", "Two"))
        assert not recover_leading_option(question, ["C"])

    def test_no_colon(self, make_question):
        question = make_question(stem="The most likely cause of her anemia is chronic blood loss", texts=("One", "Two"))
        assert not recover_leading_option(question, ["C"])

    def test_full_option_set(self, make_question):
        question = make_question(stem=RECOVERY_STEM, texts=("1", "2", "3", "4", "5", "6"))
        assert not recover_leading_option(question, ["G"])


class TestClassification:
    """Tests for question type classification."""

    def test_true_false_pair(self, make_question):
        question = make_question(texts=("☐ True", "false."))
        assert classify_question_type(question) == QuestionType.TRUE_FALSE

    def test_cue_phrases(self, make_question):
        question = make_question(stem="Which of the following are correct?", texts=("One", "Two"))
        assert classify_question_type(question) == QuestionType.MULTI_SELECT

    def test_single_select(self, make_question):
        assert classify_question_type(make_question()) == QuestionType.SINGLE_SELECT

    def test_boolean_label_fallback(self, make_question):
        question = make_question(texts=("Yes", "No"))
        assert boolean_label(question, True) == "A"
        assert boolean_label(question, False) == "B"
