"""Generation Service (키 순회 오케스트레이터) 테스트"""
import json
from unittest.mock import AsyncMock

import pytest

from quizgenius.exceptions import (
    AllCredentialsExhaustedError,
    GenerationFailedError,
    NoCredentialsConfiguredError,
)
from quizgenius.schemas.quiz import ChoiceQuestion, FileUpload, QuizConfig, QuizType
from quizgenius.services import generation_service
from quizgenius.services.generation_service import QuizGenerator


def _quiz_json(title: str = "세계 지리 퀴즈", count: int = 2) -> str:
    return json.dumps({
        "title": title,
        "questions": [
            {
                "id": i + 1,
                "question_text": f"문제 {i + 1}",
                "explanation": "**핵심** 해설",
                "options": ["A", "B", "C", "D"],
                "correct_option_index": i % 4,
            }
            for i in range(count)
        ],
    })


@pytest.fixture
def config():
    return QuizConfig(user_name="홍길동", question_count=3, content="학습 자료")


@pytest.mark.asyncio
async def test_generate_success_first_key(config):
    """첫 번째 키로 바로 성공"""
    mock_generate = AsyncMock(return_value=_quiz_json())
    generator = QuizGenerator(content_generator=mock_generate)

    data = await generator.generate(config, ["key-one"])

    assert data.title == "세계 지리 퀴즈"
    assert len(data.questions) == 2
    assert isinstance(data.questions[0], ChoiceQuestion)
    assert generator.failure_logs == []
    mock_generate.assert_awaited_once()
    assert mock_generate.await_args.args[0] == "key-one"


@pytest.mark.asyncio
async def test_generate_quota_error_falls_through_to_next_key(config):
    """사용량 제한이면 다음 키로 넘어가고 실패 로그를 남김"""
    mock_generate = AsyncMock(
        side_effect=[
            Exception("429 RESOURCE_EXHAUSTED quota"),
            Exception("Rate limit exceeded"),
            _quiz_json(),
        ]
    )
    generator = QuizGenerator(content_generator=mock_generate)

    data = await generator.generate(config, ["k1", "k2", "k3"])

    assert len(data.questions) == 2
    assert [call.args[0] for call in mock_generate.await_args_list] == ["k1", "k2", "k3"]
    assert generator.failure_logs == [
        "Key 1 Failure: 429 RESOURCE_EXHAUSTED quota",
        "Key 2 Failure: Rate limit exceeded",
    ]


@pytest.mark.asyncio
async def test_generate_non_quota_error_stops_rotation(config):
    """사용량 제한이 아닌 에러는 남은 키를 시도하지 않음"""
    mock_generate = AsyncMock(side_effect=[Exception("400 INVALID_ARGUMENT"), _quiz_json()])
    generator = QuizGenerator(content_generator=mock_generate)

    with pytest.raises(AllCredentialsExhaustedError) as exc_info:
        await generator.generate(config, ["k1", "k2"])

    assert mock_generate.await_count == 1
    assert exc_info.value.logs == ["Key 1 Failure: 400 INVALID_ARGUMENT"]
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_generate_all_keys_quota_exhausted(config):
    """모든 키가 사용량 제한이면 키 개수만큼 로그 보고"""
    mock_generate = AsyncMock(side_effect=Exception("quota exceeded"))
    generator = QuizGenerator(content_generator=mock_generate)

    with pytest.raises(AllCredentialsExhaustedError) as exc_info:
        await generator.generate(config, ["k1", "k2"])

    assert mock_generate.await_count == 2
    assert exc_info.value.report == "Key 1 Failure: quota exceeded\nKey 2 Failure: quota exceeded"


@pytest.mark.asyncio
async def test_generate_without_credentials(config):
    """키가 없으면 호출 없이 실패"""
    mock_generate = AsyncMock()
    generator = QuizGenerator(content_generator=mock_generate)

    with pytest.raises(NoCredentialsConfiguredError):
        await generator.generate(config, [])

    mock_generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_generate_unparseable_response_is_not_retried(config):
    """파싱 실패는 다른 키로 재시도하지 않음"""
    mock_generate = AsyncMock(side_effect=["not json at all", _quiz_json()])
    generator = QuizGenerator(content_generator=mock_generate)

    with pytest.raises(GenerationFailedError):
        await generator.generate(config, ["k1", "k2"])

    assert mock_generate.await_count == 1


@pytest.mark.asyncio
async def test_generate_fresh_request_id_per_call(config):
    """호출마다 요청 식별자가 달라짐"""
    mock_generate = AsyncMock(return_value=_quiz_json())
    generator = QuizGenerator(content_generator=mock_generate)

    await generator.generate(config, ["k1"])
    await generator.generate(config, ["k1"])

    first, second = (call.kwargs["system_instruction"] for call in mock_generate.await_args_list)
    assert first != second


def test_parse_quiz_response_strips_code_fence():
    text = "```json\n" + _quiz_json(title="펜스") + "\n```"
    data = generation_service.parse_quiz_response(text)
    assert data.title == "펜스"


def test_parse_quiz_response_empty_questions():
    with pytest.raises(GenerationFailedError):
        generation_service.parse_quiz_response(json.dumps({"title": "빈 퀴즈", "questions": []}))


def test_parse_quiz_response_empty_text():
    with pytest.raises(GenerationFailedError):
        generation_service.parse_quiz_response("   ")


def test_parse_quiz_response_out_of_range_index():
    """정답 인덱스가 선택지 범위를 벗어나면 실패"""
    payload = json.loads(_quiz_json(count=1))
    payload["questions"][0]["correct_option_index"] = 7
    with pytest.raises(GenerationFailedError):
        generation_service.parse_quiz_response(json.dumps(payload))


def test_build_system_instruction_mentions_settings():
    config = QuizConfig(topic="광합성", question_count=5, quiz_type=QuizType.TRUE_FALSE, content="x")
    instruction = generation_service.build_system_instruction(config, "req-1", "2024-01-01T00:00:00")

    assert "req-1" in instruction
    assert 'Use title: "광합성".' in instruction
    assert "Generate 5 questions." in instruction
    assert "['True', 'False']" in instruction


def test_build_system_instruction_without_topic():
    config = QuizConfig(content="x")
    instruction = generation_service.build_system_instruction(config, "req-1", "ts")
    assert "Generate a relevant title." in instruction


def test_build_content_parts_order():
    """고유 식별자 → 텍스트 → 파일 순서"""
    config = QuizConfig(
        content="본문",
        file_uploads=[FileUpload(data="data:text/plain;base64,aGVsbG8=", mime_type="text/plain")],
    )
    parts = generation_service.build_content_parts(config, "req-9", "ts")

    assert len(parts) == 3
    assert "req-9" in parts[0].text
    assert parts[1].text == "본문"
    assert parts[2].inline_data.data == b"hello"
    assert parts[2].inline_data.mime_type == "text/plain"


def test_build_content_parts_without_text():
    config = QuizConfig(file_uploads=[FileUpload(data="aGVsbG8=", mime_type="application/pdf")])
    parts = generation_service.build_content_parts(config, "req", "ts")
    assert len(parts) == 2
