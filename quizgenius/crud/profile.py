import json
import logging

from quizgenius.crud.store import KeyValueStore

logger = logging.getLogger(__name__)

USERNAME_KEY = "quiz_username"
LOCAL_KEYS_KEY = "user_gemini_keys"


def get_remembered_name(store: KeyValueStore) -> str | None:
    raw = store.get(USERNAME_KEY)
    return raw.decode("utf-8") if raw else None


def remember_name(store: KeyValueStore, name: str) -> None:
    store.set(USERNAME_KEY, name.encode("utf-8"))


def get_local_credentials(store: KeyValueStore) -> list[str]:
    """사용자가 등록한 API 키 목록 (손상/형식 오류 시 빈 목록)"""
    raw = store.get(LOCAL_KEYS_KEY)
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("저장된 API 키 목록을 읽지 못했습니다")
        return []
    if not isinstance(parsed, list):
        return []
    return [key for key in parsed if isinstance(key, str)]


def save_local_credentials(store: KeyValueStore, keys: list[str]) -> None:
    store.set(LOCAL_KEYS_KEY, json.dumps(keys).encode("utf-8"))
