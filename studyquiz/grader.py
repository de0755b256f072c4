from typing import Dict, List, Optional

from .models import Quiz, QuizQuestion


def grade_question(question: QuizQuestion, selected: List[str]) -> Optional[bool]:
    """
    True when the selection matches the answer key exactly (as a set for
    multi-select), None when the question has no key to grade against.
    """
    if not question.correct_options:
        return None
    return set(selected or []) == set(question.correct_options)


def grade_quiz(quiz: Quiz, answers: Dict[str, List[str]]) -> Dict:
    """
    Block report for submitted answers keyed by question id.
    """
    rows = []
    correct = 0
    answered = 0
    for question in quiz.questions:
        selected = [label for label in (answers.get(question.id) or []) if label]
        result = grade_question(question, selected) if selected else None
        if not selected:
            status = "unanswered"
        elif result is None:
            status = "ungraded"
        else:
            status = "correct" if result else "incorrect"
        answered += 1 if selected else 0
        correct += 1 if result else 0
        rows.append({
            "id": question.id,
            "number": question.number,
            "selected": selected,
            "correctOptions": list(question.correct_options),
            "status": status,
        })

    total = len(quiz.questions)
    return {
        "correct": correct,
        "answered": answered,
        "total": total,
        "scorePercent": round(correct / total * 100) if total else 0,
        "rows": rows,
    }
