from pydantic import BaseModel, Field

from quizgenius.schemas.quiz import ChoiceQuestion, GeneratedQuizData, Question, ShortAnswerQuestion


class AIQuizQuestion(BaseModel):
    """AI 생성 문제 스키마 (Structured Output 원본 형태)"""
    id: int = Field(..., description="문제 ID")
    question_text: str = Field(..., description="문제 내용")
    explanation: str = Field("", description="해설 (핵심 구문은 **굵게**)")
    options: list[str] = Field(default_factory=list, description="선택지 (단답형이면 빈 리스트)")
    correct_option_index: int | None = Field(None, description="정답 선택지 인덱스")
    answer: str | None = Field(None, description="단답형 정답")

    def to_question(self) -> Question:
        """선택지 유무에 따라 선택형/단답형 문제로 변환"""
        if self.options:
            return ChoiceQuestion(
                id=self.id,
                question_text=self.question_text,
                options=self.options,
                correct_option_index=self.correct_option_index if self.correct_option_index is not None else -1,
                explanation=self.explanation,
            )
        return ShortAnswerQuestion(
            id=self.id,
            question_text=self.question_text,
            answer=self.answer or "",
            explanation=self.explanation,
        )


class AIQuizGenerationResponse(BaseModel):
    """AI 문제 생성 응답 스키마 (Structured Output)"""
    title: str = Field("", description="짧고 흥미로운 제목")
    questions: list[AIQuizQuestion] = Field(default_factory=list)

    def to_quiz_data(self) -> GeneratedQuizData:
        return GeneratedQuizData(
            title=self.title,
            questions=[q.to_question() for q in self.questions],
        )
