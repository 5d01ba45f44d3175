# exam_core/services/scorer.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))



@dataclass(frozen=True)
class QuestionKey:
    question_id: int
    correct_answer: str
    marks: int


@dataclass(frozen=True)
class ExamKey:
    total_marks: int
    passing_marks: int
    questions: List[QuestionKey]

    @classmethod
    def from_exam(cls, exam):
        return cls(
            total_marks=exam.total_marks,
            passing_marks=exam.passing_marks,
            questions=[
                QuestionKey(q.pk, q.correct_answer, q.marks)
                for q in exam.ordered_questions()
            ],
        )


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    selected_answer: Optional[str] = None
    time_spent: Optional[int] = None


@dataclass(frozen=True)
class ScoredAnswer:
    question_id: int
    selected_answer: Optional[str]
    is_correct: bool
    marks_obtained: int
    time_spent: Optional[int] = None


@dataclass(frozen=True)
class ScoredResult:
    total_marks: int
    marks_obtained: int
    percentage: float
    is_passed: bool
    answers: List[ScoredAnswer] = field(default_factory=list)




class BaseScorer(ABC):
    name = 'base'

    @abstractmethod
    def is_correct(self, selected: Optional[str], question: QuestionKey) -> bool:
        pass

    def score(self, exam: ExamKey, submitted: Iterable[SubmittedAnswer]) -> ScoredResult:
        """
        Score a submission against the exam's answer key.

        Every question of the exam is scored in exam order; a question with
        no submitted answer earns nothing. Answers to questions outside the
        exam are ignored.
        """
        by_question: Dict[int, SubmittedAnswer] = {a.question_id: a for a in submitted}

        scored = []
        obtained = 0
        for question in exam.questions:
            answer = by_question.get(question.question_id)
            selected = answer.selected_answer if answer else None
            correct = self.is_correct(selected, question)
            marks = question.marks if correct else 0
            obtained += marks
            scored.append(ScoredAnswer(
                question_id=question.question_id,
                selected_answer=selected,
                is_correct=correct,
                marks_obtained=marks,
                time_spent=answer.time_spent if answer else None,
            ))

        percentage = round2(obtained / exam.total_marks * 100) if exam.total_marks else 0.0
        return ScoredResult(
            total_marks=exam.total_marks,
            marks_obtained=obtained,
            percentage=percentage,
            is_passed=obtained >= exam.passing_marks,
            answers=scored,
        )



class ExactMatchScorer(BaseScorer):
    """Full marks when the answer equals the key exactly (case-sensitive, untrimmed)."""
    name = 'exact'

    def is_correct(self, selected, question):
        return selected is not None and selected == question.correct_answer


def score(exam: ExamKey, submitted: Iterable[SubmittedAnswer]) -> ScoredResult:
    return ExactMatchScorer().score(exam, submitted)
