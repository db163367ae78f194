from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class QuizQuestion:
    id: int
    questionText: str
    correctAnswer: bool
    explanation: str

    def public_dict(self) -> dict[str, Any]:
        """Shape sent to the worker before answering (no answer, no explanation)."""
        return {"id": self.id, "questionText": self.questionText}


# Taken from the 8.3 Safety Orientation form, in form order.
DEFAULT_QUIZ_QUESTIONS: tuple[QuizQuestion, ...] = (
    QuizQuestion(
        1,
        "Your 3 basic Rights are to Know, Refuse (unsafe work) & Participate?",
        True,
        "Employees have the right to know about hazards, refuse unsafe work, and participate in safety decisions.",
    ),
    QuizQuestion(
        2,
        "Basic PPE is hard hat, safety glasses, safety boots & body protection?",
        True,
        "Mandatory PPE includes CSA-approved hard hat, safety glasses, Grade 1 safety footwear, and high-visibility apparel.",
    ),
    QuizQuestion(
        3,
        "All incidents must be reported?",
        True,
        "All incidents, near misses, unsafe conditions, and damage must be reported to your immediate supervisor.",
    ),
    QuizQuestion(
        4,
        "Accidents must be reported immediately?",
        True,
        "Accidents and injuries must be reported immediately to your supervisor.",
    ),
    QuizQuestion(
        5,
        "Any controlled product spill must be reported?",
        True,
        "All spills of controlled products must be reported immediately for proper cleanup and documentation.",
    ),
    QuizQuestion(
        6,
        "Tools and equipment must be inspected prior to use?",
        True,
        "All tools and equipment must be inspected before use. Unsafe items should be tagged and taken out of service.",
    ),
    QuizQuestion(
        7,
        "I do not have to inspect my PPE prior to use?",
        False,
        "You MUST inspect your PPE before each use to ensure it is in safe working condition.",
    ),
    QuizQuestion(
        8,
        "Reporting to work under the influence of drugs and alcohol is unacceptable?",
        True,
        "Possession or consumption of alcohol, marijuana, or illegal drugs is strictly prohibited on all job sites.",
    ),
    QuizQuestion(
        9,
        "Violations of applicable Acts/Regs or Safety Manual will result in disciplinary action?",
        True,
        "Violations will result in progressive disciplinary action, from verbal warnings to termination.",
    ),
    QuizQuestion(
        10,
        "I must read and follow all labels & SDS?",
        True,
        "You must read and follow all Safety Data Sheets (SDS) and product labels when working with controlled products.",
    ),
)

_BY_ID = {q.id: q for q in DEFAULT_QUIZ_QUESTIONS}


def question_by_id(question_id: Any) -> QuizQuestion | None:
    try:
        return _BY_ID.get(int(question_id))
    except (TypeError, ValueError):
        return None


def shuffle_questions(questions: Sequence[QuizQuestion], rng: random.Random | None = None) -> list[QuizQuestion]:
    """Uniform Fisher-Yates shuffle of a copy; ``questions`` is left untouched."""
    rng = rng or random.SystemRandom()
    out = list(questions)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def is_correct(question: QuizQuestion, answer: Any) -> bool:
    return isinstance(answer, bool) and answer == question.correctAnswer


def grade_answers(questions: Sequence[QuizQuestion], answers: Mapping[Any, Any]) -> dict[str, Any]:
    """
    Grade one attempt. ``answers`` maps question id (int or str) to a bool.

    Only a perfect score passes; an unanswered question counts as wrong.
    """
    normalized: dict[int, Any] = {}
    for key, value in (answers or {}).items():
        try:
            normalized[int(key)] = value
        except (TypeError, ValueError):
            continue

    results = []
    score = 0
    for q in questions:
        given = normalized.get(q.id)
        correct = is_correct(q, given)
        if correct:
            score += 1
        results.append(
            {
                "id": q.id,
                "answer": given if isinstance(given, bool) else None,
                "correct": correct,
                "correctAnswer": q.correctAnswer,
                "explanation": q.explanation,
            }
        )
    total = len(questions)
    return {"results": results, "score": score, "total": total, "passed": total > 0 and score == total}
