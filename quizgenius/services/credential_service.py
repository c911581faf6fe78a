import logging
from typing import Awaitable, Callable

from quizgenius.core.config import settings
from quizgenius.crud import profile as profile_crud
from quizgenius.crud.store import KeyValueStore
from quizgenius.exceptions import InvalidCredentialError
from quizgenius.services import ai_service

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 10

SOURCE_LOCAL = "Using Local Storage APIs"
SOURCE_SYSTEM = "Using Internal System APIs"


def get_available_credentials(store: KeyValueStore) -> list[str]:
    """사용자 등록 키 우선, 없으면 시스템 키"""
    local_keys = profile_crud.get_local_credentials(store)
    if local_keys:
        return local_keys
    return settings.system_api_keys


def describe_credential_source(store: KeyValueStore) -> str:
    return SOURCE_LOCAL if profile_crud.get_local_credentials(store) else SOURCE_SYSTEM


def mask_credential(api_key: str) -> str:
    if len(api_key) < MIN_KEY_LENGTH:
        return api_key
    return f"{api_key[:6]}...{api_key[-4:]}"


def list_masked_credentials(store: KeyValueStore) -> list[str]:
    return [mask_credential(key) for key in profile_crud.get_local_credentials(store)]


async def add_credential(
    store: KeyValueStore,
    api_key: str,
    validator: Callable[[str], Awaitable[bool]] | None = None,
) -> list[str]:
    """검증 통과한 키를 로컬 목록 끝에 추가"""
    trimmed = api_key.strip()
    if len(trimmed) < MIN_KEY_LENGTH:
        raise InvalidCredentialError("API 키가 너무 짧습니다.")

    validate = validator or ai_service.validate_api_key
    if not await validate(trimmed):
        raise InvalidCredentialError("유효하지 않은 API 키입니다. 키를 확인하고 다시 시도해주세요.")

    keys = profile_crud.get_local_credentials(store) + [trimmed]
    profile_crud.save_local_credentials(store, keys)
    logger.info(f"API 키 등록: {mask_credential(trimmed)} (총 {len(keys)}개)")
    return keys


def remove_credential(store: KeyValueStore, index: int) -> list[str]:
    keys = profile_crud.get_local_credentials(store)
    if not 0 <= index < len(keys):
        raise InvalidCredentialError(f"API 키 위치가 범위를 벗어났습니다: {index}")
    removed = keys.pop(index)
    profile_crud.save_local_credentials(store, keys)
    logger.info(f"API 키 삭제: {mask_credential(removed)} (남은 키 {len(keys)}개)")
    return keys
