"""채점 서비스

- 선택형: 정답 인덱스 일치
- 단답형: 앞뒤 공백/대소문자 무시 비교
- 미응답(없음 또는 빈 문자열)은 오답이 아닌 건너뜀
"""
import math
from dataclasses import dataclass
from enum import Enum

from quizgenius.schemas.quiz import Answer, ChoiceQuestion, Question


class AnswerStatus(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class QuestionResult:
    """문제별 채점 결과 (리뷰 화면용)"""

    question: Question
    user_answer: Answer | None
    status: AnswerStatus


@dataclass(slots=True, frozen=True)
class ScoreSummary:
    correct: int
    wrong: int
    skipped: int
    total: int
    score: int

    @property
    def band(self) -> str:
        return score_band(self.score)


def grade_answer(question: Question, user_answer: Answer | None) -> AnswerStatus:
    if user_answer is None or user_answer == "":
        return AnswerStatus.SKIPPED

    if isinstance(question, ChoiceQuestion):
        # bool은 int의 하위 타입이라 별도로 배제
        if isinstance(user_answer, int) and not isinstance(user_answer, bool):
            if user_answer == question.correct_option_index:
                return AnswerStatus.CORRECT
        return AnswerStatus.WRONG

    user_text = str(user_answer).strip().lower()
    correct_text = question.answer.strip().lower()
    if user_text and correct_text and user_text == correct_text:
        return AnswerStatus.CORRECT
    return AnswerStatus.WRONG


def grade_questions(questions: list[Question], answers: dict[int, Answer]) -> list[QuestionResult]:
    return [
        QuestionResult(question=q, user_answer=answers.get(q.id), status=grade_answer(q, answers.get(q.id)))
        for q in questions
    ]


def percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), .5는 올림"""
    if total <= 0:
        return 0
    return int(math.floor(100 * correct / total + 0.5))


def score_attempt(questions: list[Question], answers: dict[int, Answer]) -> ScoreSummary:
    results = grade_questions(questions, answers)
    correct = sum(1 for r in results if r.status == AnswerStatus.CORRECT)
    wrong = sum(1 for r in results if r.status == AnswerStatus.WRONG)
    skipped = sum(1 for r in results if r.status == AnswerStatus.SKIPPED)
    total = len(questions)
    return ScoreSummary(
        correct=correct,
        wrong=wrong,
        skipped=skipped,
        total=total,
        score=percentage(correct, total),
    )


def score_band(score: int) -> str:
    if score >= 90:
        return "OUTSTANDING"
    if score >= 70:
        return "GREAT WORK"
    if score >= 50:
        return "PASSABLE"
    return "NEED REVIEW"
