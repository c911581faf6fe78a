import logging

from pydantic import ValidationError

from quizgenius.crud.store import KeyValueStore
from quizgenius.schemas.session import ProgressCheckpoint, SessionSnapshot

logger = logging.getLogger(__name__)

SESSION_KEY = "quiz_session"
PROGRESS_KEY = "quiz_progress"


def get_snapshot(store: KeyValueStore) -> SessionSnapshot | None:
    """세션 스냅샷 조회 (손상 시 삭제 후 None)"""
    raw = store.get(SESSION_KEY)
    if not raw:
        return None
    try:
        return SessionSnapshot.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"세션 스냅샷 로드 실패: {e.error_count()}개 오류")
        store.remove(SESSION_KEY)
        return None


def save_snapshot(store: KeyValueStore, snapshot: SessionSnapshot) -> None:
    store.set(SESSION_KEY, snapshot.model_dump_json().encode("utf-8"))


def clear_snapshot(store: KeyValueStore) -> None:
    store.remove(SESSION_KEY)


def get_checkpoint(store: KeyValueStore) -> ProgressCheckpoint | None:
    raw = store.get(PROGRESS_KEY)
    if not raw:
        return None
    try:
        return ProgressCheckpoint.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"진행 상태 복원 실패: {e.error_count()}개 오류")
        return None


def save_checkpoint(store: KeyValueStore, checkpoint: ProgressCheckpoint) -> None:
    store.set(PROGRESS_KEY, checkpoint.model_dump_json().encode("utf-8"))


def clear_checkpoint(store: KeyValueStore) -> None:
    store.remove(PROGRESS_KEY)
