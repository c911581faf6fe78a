"""공용 테스트 픽스처"""
from datetime import datetime, timedelta, timezone

import pytest

from quizgenius.crud.store import InMemoryStore
from quizgenius.schemas.quiz import ChoiceQuestion, QuizConfig, ShortAnswerQuestion
from quizgenius.schemas.session import Attempt, AttemptStatus


@pytest.fixture
def memory_store():
    """메모리 저장소"""
    return InMemoryStore()


@pytest.fixture
def choice_questions():
    """선택형 문제 3개 (정답: 0, 1, 2)"""
    return [
        ChoiceQuestion(
            id=i + 1,
            question_text=f"문제 {i + 1}",
            options=["A", "B", "C", "D"],
            correct_option_index=i,
            explanation=f"해설 {i + 1}",
        )
        for i in range(3)
    ]


@pytest.fixture
def short_answer_question():
    return ShortAnswerQuestion(id=10, question_text="프랑스의 수도는?", answer="Paris")


@pytest.fixture
def quiz_config():
    """정상 설정 (문제 3개, 10분)"""
    return QuizConfig(
        user_name="홍길동",
        topic="세계 지리",
        question_count=3,
        duration_minutes=10,
        content="지리 학습 자료",
    )


@pytest.fixture
def make_attempt(choice_questions):
    """응시 기록 생성 헬퍼"""
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(
        attempt_id: str,
        minutes: int = 0,
        status: AttemptStatus = AttemptStatus.COMPLETED,
        **kwargs,
    ) -> Attempt:
        return Attempt(
            id=attempt_id,
            title=kwargs.pop("title", f"퀴즈 {attempt_id}"),
            created_at=base_time + timedelta(minutes=minutes),
            status=status,
            questions=kwargs.pop("questions", choice_questions),
            **kwargs,
        )

    return _make
