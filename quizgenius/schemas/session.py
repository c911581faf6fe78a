from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from quizgenius.schemas.quiz import Answer, Question, QuizConfig


class Screen(str, Enum):
    LANDING = "LANDING"
    API_SETUP = "API_MANAGEMENT"
    HOW_TO = "HOW_TO_USE"
    SETUP = "SETUP"
    GENERATING = "GENERATING"
    QUIZ = "QUIZ"
    RESULTS = "RESULTS"
    REVIEW = "REVIEW"
    HISTORY = "HISTORY"


# 스냅샷은 이 화면들에서만 저장된다
SNAPSHOT_SCREENS = frozenset({Screen.QUIZ, Screen.RESULTS, Screen.REVIEW})


class AttemptStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class Attempt(BaseModel):
    """응시 기록 (히스토리의 저장 단위)"""
    id: str
    title: str
    created_at: datetime
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    questions: list[Question]
    user_answers: dict[int, Answer] = Field(default_factory=dict)
    elapsed_seconds: int = Field(0, ge=0)
    current_index: int = Field(0, ge=0)
    marked_for_review: list[int] = Field(default_factory=list)
    duration_minutes: int = Field(0, ge=0, description="배정된 제한 시간(분)")
    candidate_name: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == AttemptStatus.COMPLETED


class SessionSnapshot(BaseModel):
    """새로고침 대비용 최소 세션 상태 (기록의 원본은 히스토리)"""
    screen: Screen
    config: QuizConfig | None = None
    questions: list[Question] = Field(default_factory=list)
    attempt: Attempt | None = None


class ProgressCheckpoint(BaseModel):
    """진행 중인 응시의 자동 저장 상태"""
    quiz_fingerprint: str = Field(..., description="문제 ID 순서로 만든 식별자")
    attempt_id: str
    current_index: int = 0
    answers: dict[int, Answer] = Field(default_factory=dict)
    time_left: int = 0
    marked_for_review: list[int] = Field(default_factory=list)


def quiz_fingerprint(questions: list[Question]) -> str:
    """문제 ID 순서로 문제 세트 식별자 생성"""
    return ",".join(str(q.id) for q in questions)
