"""문제 생성 오케스트레이터

설정 하나로 요청 페이로드를 만들고, API 키 목록을 순서대로 시도한다.
- 사용량 제한/할당량 에러이고 다음 키가 남아 있으면 다음 키로 넘어간다.
- 그 외 에러이거나 마지막 키까지 실패하면 순회를 멈추고
  키별 로그를 모아 AllCredentialsExhaustedError를 발생시킨다.
- 응답 파싱 실패/빈 문제 목록은 다른 키로 재시도하지 않는 GenerationFailedError.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable

from google.genai import types
from pydantic import ValidationError

from quizgenius.exceptions import (
    AllCredentialsExhaustedError,
    GenerationFailedError,
    NoCredentialsConfiguredError,
)
from quizgenius.schemas.ai import AIQuizGenerationResponse
from quizgenius.schemas.quiz import Difficulty, GeneratedQuizData, QuizConfig, QuizType
from quizgenius.services import ai_service

logger = logging.getLogger(__name__)

ContentGenerator = Callable[..., Awaitable[str | None]]

DIFFICULTY_GUIDANCE = {
    Difficulty.EASY: "Focus on direct recall and basic facts.",
    Difficulty.MEDIUM: "Focus on conceptual understanding and application.",
    Difficulty.HARD: "Focus on analysis, reasoning, and scenarios.",
}

TYPE_INSTRUCTIONS = {
    QuizType.TRUE_FALSE: "Generate True/False questions only. Options must be ['True', 'False'].",
    QuizType.MULTIPLE_CHOICE: "Generate Multiple Choice questions with exactly 4 options and one correct answer.",
}


def build_system_instruction(config: QuizConfig, request_id: str, timestamp: str) -> str:
    """요청별 고유 ID가 포함된 시스템 지시문 생성"""
    title_hint = f'Use title: "{config.topic}".' if config.topic else "Generate a relevant title."
    return f"""Request Isolation ID: {request_id}
Timestamp: {timestamp}
You are an expert educational content creator.
{title_hint}
Generate {config.question_count} questions.
Type: {config.quiz_type.value}. {TYPE_INSTRUCTIONS[config.quiz_type]}
Difficulty: {config.difficulty.value}. {DIFFICULTY_GUIDANCE[config.difficulty]}

Rules:
1. Base questions strictly on the provided content parts in this specific request.
2. Explanation should be educational with **bold** key phrases.
3. Return raw JSON strictly following the schema.
4. This is a standalone, isolated request. Do not use any previous context or cached data."""


def build_content_parts(config: QuizConfig, request_id: str, timestamp: str) -> list[types.Part]:
    """고유 식별자 → 본문 텍스트 → 첨부 파일 순서로 content part 구성"""
    # 요청 본문 전체가 항상 달라지도록 첫 part에 고유 ID를 넣는다
    parts = [types.Part.from_text(text=f"UNIQUE_SESSION_IDENTIFIER: {request_id} [{timestamp}]")]
    if config.content:
        parts.append(types.Part.from_text(text=config.content))
    for upload in config.file_uploads:
        parts.append(types.Part.from_bytes(data=upload.payload, mime_type=upload.mime_type))
    return parts


def build_response_schema(quiz_type: QuizType) -> types.Schema:
    """GeneratedQuizData 형태의 Structured Output 스키마"""
    options_description = (
        "Must be ['True', 'False']"
        if quiz_type == QuizType.TRUE_FALSE
        else "Must contain exactly 4 options."
    )
    question_schema = types.Schema(
        type=types.Type.OBJECT,
        properties={
            "id": types.Schema(type=types.Type.INTEGER),
            "question_text": types.Schema(type=types.Type.STRING),
            "explanation": types.Schema(
                type=types.Type.STRING,
                description="Detailed explanation. Key phrases in markdown bold (**).",
            ),
            "options": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
                description=options_description,
            ),
            "correct_option_index": types.Schema(
                type=types.Type.INTEGER,
                description="Index of the correct option",
            ),
        },
        required=["id", "question_text", "explanation", "options", "correct_option_index"],
    )
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": types.Schema(type=types.Type.STRING, description="A short, engaging title."),
            "questions": types.Schema(type=types.Type.ARRAY, items=question_schema),
        },
        required=["title", "questions"],
    )


def strip_code_fence(text: str) -> str:
    """마크다운 코드 블록 제거"""
    result = text.strip()
    if result.startswith("```json"):
        result = result[7:]
    if result.startswith("```"):
        result = result[3:]
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


def parse_quiz_response(text: str | None) -> GeneratedQuizData:
    """응답 텍스트를 GeneratedQuizData로 변환 (빈 문제 목록도 실패로 처리)"""
    if not text or not text.strip():
        raise GenerationFailedError("AI 응답이 비어있습니다.")

    try:
        data = json.loads(strip_code_fence(text))
        quiz_data = AIQuizGenerationResponse.model_validate(data).to_quiz_data()
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"퀴즈 JSON 파싱 실패: {e.__class__.__name__}, 응답 앞부분={text[:200]!r}")
        raise GenerationFailedError() from e

    if not quiz_data.questions:
        raise GenerationFailedError("AI가 유효한 문제를 생성하지 못했습니다. 다른 학습 자료로 시도해주세요.")
    return quiz_data


class QuizGenerator:
    """API 키를 순서대로 시도하는 문제 생성기

    각 호출은 독립적이며, 마지막 호출에서 기록된 키별 실패 로그를
    `failure_logs`로 노출한다.
    """

    def __init__(self, content_generator: ContentGenerator | None = None):
        self._generate_content = content_generator or ai_service.generate_content
        self.failure_logs: list[str] = []

    async def generate(self, config: QuizConfig, credentials: list[str]) -> GeneratedQuizData:
        self.failure_logs = []
        if not credentials:
            raise NoCredentialsConfiguredError()

        request_id = str(uuid.uuid4())
        timestamp = datetime.now(timezone.utc).isoformat()
        system_instruction = build_system_instruction(config, request_id, timestamp)
        contents = build_content_parts(config, request_id, timestamp)
        response_schema = build_response_schema(config.quiz_type)

        logger.info(
            f"문제 생성 시작: request_id={request_id}, keys={len(credentials)}, "
            f"count={config.question_count}, type={config.quiz_type.value}"
        )

        for i, api_key in enumerate(credentials):
            try:
                text = await self._generate_content(
                    api_key,
                    contents=contents,
                    system_instruction=system_instruction,
                    response_schema=response_schema,
                )
            except Exception as e:
                error_message = str(e) or e.__class__.__name__
                self.failure_logs.append(f"Key {i + 1} Failure: {error_message}")
                has_next = i < len(credentials) - 1

                if ai_service.is_quota_error(e) and has_next:
                    logger.warning(
                        f"API 키 {i + 1}/{len(credentials)} 사용량 제한, 다음 키로 전환 "
                        f"(에러: {error_message[:100]})"
                    )
                    continue

                logger.error(
                    f"API 키 {i + 1}/{len(credentials)} 호출 실패, 순회 중단: "
                    f"error_type={type(e).__name__}, error_message={error_message[:200]}"
                )
                break

            quiz_data = parse_quiz_response(text)
            if i > 0:
                logger.info(f"문제 생성 성공 (키 {i + 1}/{len(credentials)})")
            return quiz_data

        logger.error(f"모든 API 키 실패: request_id={request_id}, logs={len(self.failure_logs)}")
        raise AllCredentialsExhaustedError(self.failure_logs)
