"""
Deterministic quiz scoring against an embedded answer key.

Rules:
    - answers are positional; missing positions and nulls are unanswered,
    - an unanswered question is incorrect (never an error, never skipped),
    - score = correct / total * 100, left unrounded,
    - a quiz with no questions scores 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from app.features.courses.schemas import QuizDefinition
from .schemas import QuizAnswerDetail


@dataclass
class QuizGradeResult:
    correct_count: int
    total_questions: int
    score: float
    answers: List[Optional[int]] = field(default_factory=list)
    details: List[QuizAnswerDetail] = field(default_factory=list)


def normalise_answers(answers: Sequence[Optional[int]], total_questions: int) -> List[Optional[int]]:
    padded = list(answers[:total_questions])
    padded.extend([None] * (total_questions - len(padded)))
    return padded


def grade_quiz(quiz: QuizDefinition, answers: Sequence[Optional[int]]) -> QuizGradeResult:
    total = len(quiz.questions)
    normalised = normalise_answers(answers, total)
    details: List[QuizAnswerDetail] = []
    correct = 0
    for index, (question, selected) in enumerate(zip(quiz.questions, normalised)):
        is_correct = selected is not None and selected == question.correct_answer
        if is_correct:
            correct += 1
        details.append(
            QuizAnswerDetail(
                question_index=index,
                selected_option=selected,
                correct_option=question.correct_answer,
                is_correct=is_correct,
            )
        )
    score = (correct / total) * 100 if total else 0.0
    return QuizGradeResult(
        correct_count=correct,
        total_questions=total,
        score=score,
        answers=normalised,
        details=details,
    )


__all__ = ["QuizGradeResult", "grade_quiz", "normalise_answers"]
