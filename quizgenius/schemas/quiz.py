import base64
import binascii
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from quizgenius.exceptions import GenerationFailedError


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class QuizType(str, Enum):
    MULTIPLE_CHOICE = "Multiple Choice"
    TRUE_FALSE = "True/False"


class FileUpload(BaseModel):
    """첨부 파일 (base64 인코딩 데이터 + MIME 타입)"""
    data: str = Field(..., description="base64 데이터 (data URL 허용)")
    mime_type: str = Field("application/octet-stream", description="MIME 타입")
    name: str = Field("", description="파일 이름")

    @field_validator("data")
    @classmethod
    def strip_data_url_prefix(cls, v: str) -> str:
        """`data:<mime>;base64,` 접두어 제거"""
        if v.startswith("data:") and "," in v:
            return v.split(",", 1)[1]
        return v

    @property
    def payload(self) -> bytes:
        """디코딩된 파일 내용 (base64 형식이 아니면 GenerationFailedError)"""
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as e:
            raise GenerationFailedError(f"첨부 파일을 읽을 수 없습니다: {self.name or self.mime_type}") from e


class QuizConfig(BaseModel):
    """퀴즈 생성 설정 (제출 후 변경 불가)

    구조적 범위만 pydantic 제약으로 두고, 입력 폼 범위(문제 3-50개, 1-180분)와
    필수 입력(이름/학습 자료) 검증은 세션 관리자가 화면 단에서 처리한다.
    duration_minutes=0 은 기록 재생처럼 시간 제한이 없는 경우에만 사용한다.
    """
    user_name: str = Field("", description="응시자 이름")
    topic: str | None = Field(None, description="제목/주제 (없으면 AI가 생성)")
    question_count: int = Field(10, ge=1, le=50, description="문제 개수")
    duration_minutes: int = Field(15, ge=0, le=180, description="제한 시간(분)")
    difficulty: Difficulty = Difficulty.MEDIUM
    quiz_type: QuizType = QuizType.MULTIPLE_CHOICE
    content: str = Field("", description="붙여넣은 학습 텍스트")
    file_uploads: list[FileUpload] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def has_material(self) -> bool:
        return bool(self.content.strip()) or bool(self.file_uploads)


class ChoiceQuestion(BaseModel):
    """선택형 문제 (객관식 / 참거짓)"""
    kind: Literal["choice"] = "choice"
    id: int
    question_text: str
    options: list[str] = Field(..., min_length=2)
    correct_option_index: int = Field(..., ge=0)
    explanation: str = ""

    @model_validator(mode="after")
    def check_correct_index(self) -> "ChoiceQuestion":
        if self.correct_option_index >= len(self.options):
            raise ValueError(
                f"정답 인덱스({self.correct_option_index})가 선택지 범위를 벗어났습니다: id={self.id}"
            )
        return self


class ShortAnswerQuestion(BaseModel):
    """단답형 문제 (선택지 없음)"""
    kind: Literal["short_answer"] = "short_answer"
    id: int
    question_text: str
    answer: str
    explanation: str = ""

    @property
    def options(self) -> list[str]:
        return []


Question = Annotated[Union[ChoiceQuestion, ShortAnswerQuestion], Field(discriminator="kind")]

# 사용자 답안: 선택지 인덱스 또는 단답 문자열
Answer = int | str


class GeneratedQuizData(BaseModel):
    """한 번의 생성 호출 결과"""
    title: str
    questions: list[Question]

    model_config = {"frozen": True}
