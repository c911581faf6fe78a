import asyncio
import logging

from google import genai
from google.genai import types
from google.genai.errors import APIError

from quizgenius.core.config import settings

logger = logging.getLogger(__name__)

# API 키별 클라이언트 캐시
_gemini_clients: dict[str, genai.Client] = {}

_QUOTA_SIGNATURES = ("429", "quota", "resource_exhausted", "rate limit")


def get_gemini_client(api_key: str) -> genai.Client:
    """API 키별 Gemini 클라이언트 (키마다 1개 재사용)"""
    client = _gemini_clients.get(api_key)
    if client is None:
        client = genai.Client(api_key=api_key)
        _gemini_clients[api_key] = client
    return client


def is_quota_error(error: Exception) -> bool:
    """사용량 제한/할당량 초과 에러인지 메시지로 판별"""
    if isinstance(error, APIError) and error.code == 429:
        return True
    message = str(error).lower()
    return any(signature in message for signature in _QUOTA_SIGNATURES)


async def generate_content(
    api_key: str,
    contents: list[types.Part],
    system_instruction: str,
    response_schema: types.Schema,
) -> str | None:
    """API 키 하나로 Gemini 호출 후 응답 텍스트 반환

    예외는 분류하지 않고 그대로 전파한다 (키 순회는 호출자가 담당).
    """
    client = get_gemini_client(api_key)

    # Gemini는 동기 API이므로 asyncio로 래핑
    loop = asyncio.get_event_loop()
    response = await loop.run_in_executor(
        None,
        lambda: client.models.generate_content(
            model=settings.gemini_model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=settings.gemini_temperature,
                response_mime_type="application/json",
                response_schema=response_schema,
            ),
        ),
    )
    return response.text


async def validate_api_key(api_key: str) -> bool:
    """최소 호출(ping)로 API 키 사용 가능 여부 확인"""
    try:
        client = genai.Client(api_key=api_key)
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None,
            lambda: client.models.generate_content(
                model=settings.gemini_validation_model,
                contents="ping",
            ),
        )
        return True
    except Exception as e:
        logger.warning(f"API 키 검증 실패: error_type={type(e).__name__}, error_message={str(e)[:200]}")
        return False
