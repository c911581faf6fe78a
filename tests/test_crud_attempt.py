"""응시 기록 / 세션 CRUD 테스트"""
import json

import pytest

from quizgenius.crud import attempt as attempt_crud
from quizgenius.crud import profile as profile_crud
from quizgenius.crud import session as session_crud
from quizgenius.exceptions import StorageError
from quizgenius.schemas.session import AttemptStatus, ProgressCheckpoint, Screen, SessionSnapshot


def test_get_attempts_empty(memory_store):
    assert attempt_crud.get_attempts(memory_store) == []


def test_get_attempts_corrupt_data(memory_store):
    """손상된 히스토리는 빈 목록"""
    memory_store.set(attempt_crud.HISTORY_KEY, b"{not-json")
    assert attempt_crud.get_attempts(memory_store) == []


def test_upsert_replaces_in_place(memory_store, make_attempt):
    attempt_crud.upsert_attempt(memory_store, make_attempt("a"))
    attempt_crud.upsert_attempt(memory_store, make_attempt("b"))
    attempt_crud.upsert_attempt(memory_store, make_attempt("a", title="수정됨"))

    attempts = attempt_crud.get_attempts(memory_store)
    assert [a.id for a in attempts] == ["a", "b"]
    assert attempts[0].title == "수정됨"


def test_newest_first_and_lookup(memory_store, make_attempt):
    attempt_crud.upsert_attempt(memory_store, make_attempt("a", minutes=10))
    attempt_crud.upsert_attempt(memory_store, make_attempt("b", minutes=20))

    assert [a.id for a in attempt_crud.get_attempts_newest_first(memory_store)] == ["b", "a"]
    assert attempt_crud.get_attempt_by_id(memory_store, "a").id == "a"
    assert attempt_crud.get_attempt_by_id(memory_store, "zzz") is None


def test_update_progress_only_in_progress(memory_store, make_attempt):
    """완료된 기록은 진행 상태 동기화 대상이 아님"""
    attempt_crud.upsert_attempt(memory_store, make_attempt("done"))
    attempt_crud.upsert_attempt(memory_store, make_attempt("live", status=AttemptStatus.IN_PROGRESS))

    assert attempt_crud.update_attempt_progress(memory_store, "done", {1: 2}, 10, 1, []) is None
    updated = attempt_crud.update_attempt_progress(memory_store, "live", {1: 2, 10: "paris"}, 10, 1, [1])

    assert updated.user_answers == {1: 2, 10: "paris"}
    stored = attempt_crud.get_attempt_by_id(memory_store, "live")
    assert stored.user_answers == {1: 2, 10: "paris"}
    assert (stored.elapsed_seconds, stored.current_index, stored.marked_for_review) == (10, 1, [1])
    assert attempt_crud.has_in_progress_attempt(memory_store) is True


def test_delete_and_clear(memory_store, make_attempt):
    for attempt_id in ("a", "b", "c"):
        attempt_crud.upsert_attempt(memory_store, make_attempt(attempt_id))

    assert attempt_crud.delete_attempt(memory_store, "a") is True
    assert attempt_crud.delete_attempt(memory_store, "missing") is False
    assert [a.id for a in attempt_crud.get_attempts(memory_store)] == ["b", "c"]

    attempt_crud.clear_attempts(memory_store)
    assert attempt_crud.get_attempts(memory_store) == []
    assert attempt_crud.has_in_progress_attempt(memory_store) is False


def test_snapshot_roundtrip_and_corruption(memory_store, choice_questions):
    session_crud.save_snapshot(memory_store, SessionSnapshot(screen=Screen.QUIZ, questions=choice_questions))
    assert session_crud.get_snapshot(memory_store).questions == choice_questions

    memory_store.set(session_crud.SESSION_KEY, b"garbage")
    assert session_crud.get_snapshot(memory_store) is None
    assert memory_store.get(session_crud.SESSION_KEY) is None


def test_checkpoint_save_and_clear(memory_store):
    checkpoint = ProgressCheckpoint(quiz_fingerprint="1,2", attempt_id="a", answers={1: 0}, time_left=30)
    session_crud.save_checkpoint(memory_store, checkpoint)
    assert session_crud.get_checkpoint(memory_store) == checkpoint

    session_crud.clear_checkpoint(memory_store)
    assert session_crud.get_checkpoint(memory_store) is None


def test_profile_name_and_local_credentials(memory_store):
    assert profile_crud.get_remembered_name(memory_store) is None
    profile_crud.remember_name(memory_store, "김철수")
    assert profile_crud.get_remembered_name(memory_store) == "김철수"

    memory_store.set(profile_crud.LOCAL_KEYS_KEY, b"not json")
    assert profile_crud.get_local_credentials(memory_store) == []

    profile_crud.save_local_credentials(memory_store, ["key-a", "key-b"])
    assert profile_crud.get_local_credentials(memory_store) == ["key-a", "key-b"]


def _store_raw_history(store, entries):
    store.set(attempt_crud.HISTORY_KEY, json.dumps(entries).encode("utf-8"))


def test_invalid_entry_is_kept_through_writes(memory_store, make_attempt):
    """검증에 실패한 항목이 있어도 나머지 기록은 유지되고 원본도 보존됨"""
    legacy = {"id": "legacy", "title": "예전 기록", "questions": []}
    _store_raw_history(memory_store, [make_attempt("keep").model_dump(mode="json"), legacy])

    assert [a.id for a in attempt_crud.get_attempts(memory_store)] == ["keep"]

    attempt_crud.upsert_attempt(memory_store, make_attempt("new", minutes=5))
    assert [a.id for a in attempt_crud.get_attempts(memory_store)] == ["keep", "new"]

    assert attempt_crud.delete_attempt(memory_store, "keep") is True
    stored = json.loads(memory_store.get(attempt_crud.HISTORY_KEY))
    assert stored[0] == legacy
    assert [entry["id"] for entry in stored] == ["legacy", "new"]


def test_unreadable_history_refuses_writes(memory_store, make_attempt):
    """목록 자체를 읽을 수 없으면 덮어쓰지 않음"""
    memory_store.set(attempt_crud.HISTORY_KEY, b"{not-json")

    with pytest.raises(StorageError):
        attempt_crud.upsert_attempt(memory_store, make_attempt("new"))

    assert memory_store.get(attempt_crud.HISTORY_KEY) == b"{not-json"
