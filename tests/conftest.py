# =============================================================================
# CONFTEST - shared fixtures
# =============================================================================
# Sample documents and question factories used across the unit tests
# =============================================================================

import os
from unittest.mock import patch

import pytest

from studyquiz.models import QuizOption, QuizQuestion


# =============================================================================
# ENVIRONMENT
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Keep tests away from any real Gemini key."""
    env_vars = {
        "GEMINI_API_KEY": "",
        "LOG_LEVEL": "ERROR",
    }
    with patch.dict(os.environ, env_vars):
        yield


# =============================================================================
# SAMPLE DOCUMENTS
# =============================================================================


@pytest.fixture
def keyed_document():
    """Numbered questions with a one-line answer key."""
    return (
        "Cardiology Practice Set\n"
        "\n"
        "1. A 45-year-old man presents with chest pain radiating to the left arm. "
        "What is the most likely diagnosis?\n"
        "A) Myocardial infarction\n"
        "B) Pericarditis\n"
        "C) Aortic dissection\n"
        "D) Costochondritis\n"
        "\n"
        "2. Which of the following drugs are beta blockers? Select all that apply.\n"
        "A) Metoprolol\n"
        "B) Lisinopril\n"
        "C) Propranolol\n"
        "D) Amlodipine\n"
        "\n"
        "3. Which vessel supplies the SA node in most people?\n"
        "A) Right coronary artery\n"
        "B) Left circumflex artery\n"
        "\n"
        "Answer Key\n"
        "1) A\n"
        "2) A, C\n"
        "3) A\n"
    )


@pytest.fixture
def explained_document():
    """'Question N' blocks with an answers-and-explanations section."""
    return (
        "Question 1\n"
        "Which electrolyte abnormality causes peaked T waves?\n"
        "A. Hyperkalemia\n"
        "B. Hypokalemia\n"
        "C. Hypercalcemia\n"
        "\n"
        "Question 2\n"
        "Which medication reverses heparin?\n"
        "A. Vitamin K\n"
        "B. Protamine sulfate\n"
        "C. Fresh frozen plasma\n"
        "\n"
        "Answers and Explanations\n"
        "Question 1\n"
        "Answer: A. Hyperkalemia produces tall peaked T waves due to faster repolarization.\n"
        "Question 2\n"
        "B) Protamine sulfate binds heparin and neutralizes it.\n"
    )


@pytest.fixture
def positional_document():
    """Answer key without question numbers."""
    return (
        "1. What is the capital of France?\n"
        "A) Paris\n"
        "B) Lyon\n"
        "\n"
        "2. Which planet is known as the red planet?\n"
        "A) Venus\n"
        "B) Mars\n"
        "\n"
        "Answers\n"
        "A\n"
        "B\n"
    )


@pytest.fixture
def unnumbered_document():
    """Question-start lines followed by unlabeled options, one trailing image."""
    return (
        "Renal Review\n"
        "Which diuretic acts on the thick ascending limb of the loop of Henle?\n"
        "Furosemide\n"
        "Hydrochlorothiazide\n"
        "Spironolactone\n"
        "[IMAGE:nephron.png]\n"
        "Which electrolyte is most commonly lost with thiazide diuretics?\n"
        "Potassium\n"
        "Calcium\n"
    )


@pytest.fixture
def true_false_document():
    return (
        "True or False\n"
        "Aspirin irreversibly inhibits cyclooxygenase.\n"
        "TRUE\n"
        "FALSE\n"
        "Warfarin is reversed with protamine.\n"
        "TRUE\n"
        "FALSE\n"
        "\n"
        "Answers\n"
        "True\n"
        "False\n"
    )


# =============================================================================
# QUESTION FACTORIES
# =============================================================================


@pytest.fixture
def make_question():
    """Factory for QuizQuestion with options A, B, C... from texts."""

    def _make(number=1, stem="Which option is correct?", texts=("First", "Second"), correct=None):
        question = QuizQuestion(
            id=f"q-{number}",
            number=number,
            stem=stem,
            options=[QuizOption(label=chr(ord("A") + i), text=text) for i, text in enumerate(texts)],
        )
        if correct:
            question.set_correct(list(correct))
        return question

    return _make
