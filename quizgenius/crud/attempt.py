import json
import logging
from typing import Any

from pydantic import ValidationError

from quizgenius.crud.store import KeyValueStore
from quizgenius.exceptions import StorageError
from quizgenius.schemas.session import Attempt, AttemptStatus

logger = logging.getLogger(__name__)

HISTORY_KEY = "quiz_history"

# 검증에 실패한 항목은 원본(JSON 디코딩 값) 그대로 보관해 쓰기 시 함께 저장한다
StoredEntry = Any


def _load_entries(store: KeyValueStore) -> list[StoredEntry]:
    """저장된 항목을 순서대로 로드 (항목별 검증)

    목록 자체를 읽을 수 없으면 StorageError. 덮어쓰기로 기록이 유실되지 않도록
    쓰기 작업은 이 경우 중단된다.
    """
    raw = store.get(HISTORY_KEY)
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError("히스토리 데이터를 읽을 수 없습니다.") from e
    if not isinstance(items, list):
        raise StorageError("히스토리 데이터 형식이 올바르지 않습니다.")

    entries: list[StoredEntry] = []
    for position, item in enumerate(items):
        try:
            entries.append(Attempt.model_validate_json(json.dumps(item)))
        except ValidationError as e:
            logger.warning(f"히스토리 항목 검증 실패, 원본 유지: position={position}, {e.error_count()}개 오류")
            entries.append(item)
    return entries


def _save_entries(store: KeyValueStore, entries: list[StoredEntry]) -> None:
    payload = [e.model_dump(mode="json") if isinstance(e, Attempt) else e for e in entries]
    store.set(HISTORY_KEY, json.dumps(payload, ensure_ascii=False).encode("utf-8"))


def _index_of(entries: list[StoredEntry], attempt_id: str) -> int:
    return next(
        (i for i, e in enumerate(entries) if isinstance(e, Attempt) and e.id == attempt_id),
        -1,
    )


def get_attempts(store: KeyValueStore) -> list[Attempt]:
    """저장된 순서 그대로 유효한 응시 기록 조회 (손상된 데이터는 빈 목록)"""
    try:
        entries = _load_entries(store)
    except StorageError as e:
        logger.warning(f"히스토리 데이터 손상, 빈 목록으로 처리: {e.message}")
        return []
    return [e for e in entries if isinstance(e, Attempt)]


def get_attempts_newest_first(store: KeyValueStore) -> list[Attempt]:
    return sorted(get_attempts(store), key=lambda a: a.created_at, reverse=True)


def get_attempt_by_id(store: KeyValueStore, attempt_id: str) -> Attempt | None:
    return next((a for a in get_attempts(store) if a.id == attempt_id), None)


def has_in_progress_attempt(store: KeyValueStore) -> bool:
    return any(a.status == AttemptStatus.IN_PROGRESS for a in get_attempts(store))


def upsert_attempt(store: KeyValueStore, attempt: Attempt) -> Attempt:
    """ID가 같은 기록은 제자리 교체, 없으면 끝에 추가"""
    entries = _load_entries(store)
    index = _index_of(entries, attempt.id)
    if index >= 0:
        entries[index] = attempt
    else:
        entries.append(attempt)
    _save_entries(store, entries)
    return attempt


def update_attempt_progress(
    store: KeyValueStore,
    attempt_id: str,
    user_answers: dict,
    elapsed_seconds: int,
    current_index: int,
    marked_for_review: list[int],
) -> Attempt | None:
    """진행 중인 기록에 답안/경과 시간/위치/검토 표시 반영

    완료된 기록이나 없는 ID는 변경하지 않고 None 반환
    """
    entries = _load_entries(store)
    index = _index_of(entries, attempt_id)
    if index < 0 or entries[index].status != AttemptStatus.IN_PROGRESS:
        return None

    updated = entries[index].model_copy(
        update={
            "user_answers": dict(user_answers),
            "elapsed_seconds": elapsed_seconds,
            "current_index": current_index,
            "marked_for_review": list(marked_for_review),
        }
    )
    entries[index] = updated
    _save_entries(store, entries)
    return updated


def delete_attempt(store: KeyValueStore, attempt_id: str) -> bool:
    """ID가 일치하는 기록만 삭제 (나머지 순서 유지)"""
    entries = _load_entries(store)
    index = _index_of(entries, attempt_id)
    if index < 0:
        return False
    del entries[index]
    _save_entries(store, entries)
    return True


def clear_attempts(store: KeyValueStore) -> None:
    store.remove(HISTORY_KEY)
