"""Quiz data model - pydantic schemas serialised with camelCase keys."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OPTION_LABELS = ["A", "B", "C", "D", "E", "F"]


class QuestionType(str, Enum):
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    TRUE_FALSE = "true_false"


class ExplanationSource(str, Enum):
    """Where the explanation text of a question came from."""

    NONE = "none"
    DOCUMENT = "document"
    GEMINI = "gemini"
    MIXED = "mixed"


def upgrade_explanation_source(current, incoming) -> ExplanationSource:
    """
    Provenance only moves forward: none -> document -> mixed, none -> gemini -> mixed.
    """
    current = ExplanationSource(current)
    incoming = ExplanationSource(incoming)
    if incoming == ExplanationSource.NONE or incoming == current:
        return current
    if current == ExplanationSource.NONE:
        return incoming
    return ExplanationSource.MIXED


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuizOption(_CamelModel):
    """One labeled answer choice."""

    label: str = Field(..., description="Option label (A-F)")
    text: str = Field(..., description="Display text")


class QuizQuestion(_CamelModel):
    """A parsed multiple-choice question."""

    id: str = Field(..., description="Stable id, q-<number>")
    number: int = Field(..., description="1-based ordinal, join key against the answer key")
    type: QuestionType = QuestionType.SINGLE_SELECT
    stem: str = ""
    images: list[str] = Field(default_factory=list)
    options: list[QuizOption] = Field(default_factory=list)
    correct_option: str | None = None
    correct_options: list[str] = Field(default_factory=list)
    explanations: dict[str, str] = Field(default_factory=dict)
    source_explanation: str = ""
    explanation_source: ExplanationSource = ExplanationSource.NONE
    raw_answer_token: str | None = None

    def option_labels(self) -> list[str]:
        return [option.label for option in self.options]

    def option(self, label: str) -> QuizOption | None:
        for option in self.options:
            if option.label == label:
                return option
        return None

    def set_correct(self, labels: list[str]) -> None:
        """Keep correct_option in step with correct_options."""
        self.correct_options = list(labels)
        self.correct_option = self.correct_options[0] if self.correct_options else None

    def mark_explanation_source(self, incoming: ExplanationSource) -> None:
        self.explanation_source = upgrade_explanation_source(self.explanation_source, incoming)


class ParsingStats(_CamelModel):
    total_questions: int = 0
    answers_mapped: int = 0
    explanations_mapped: int = 0
    detected_answer_section: bool = False

    @classmethod
    def from_questions(cls, questions: list[QuizQuestion], detected_answer_section: bool) -> "ParsingStats":
        return cls(
            total_questions=len(questions),
            answers_mapped=sum(1 for q in questions if q.correct_options),
            explanations_mapped=sum(1 for q in questions if q.explanations or q.source_explanation),
            detected_answer_section=detected_answer_section,
        )


class Quiz(_CamelModel):
    """Quiz derived from one document."""

    title: str = "Generated Quiz"
    questions: list[QuizQuestion] = Field(default_factory=list)
    parsing: ParsingStats = Field(default_factory=ParsingStats)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, data: str | bytes) -> "Quiz":
        return cls.model_validate_json(data)
