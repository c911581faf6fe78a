from quizgenius.crud.attempt import (
    clear_attempts,
    delete_attempt,
    get_attempt_by_id,
    get_attempts,
    get_attempts_newest_first,
    has_in_progress_attempt,
    update_attempt_progress,
    upsert_attempt,
)
from quizgenius.crud.profile import (
    get_local_credentials,
    get_remembered_name,
    remember_name,
    save_local_credentials,
)
from quizgenius.crud.session import (
    clear_checkpoint,
    clear_snapshot,
    get_checkpoint,
    get_snapshot,
    save_checkpoint,
    save_snapshot,
)
from quizgenius.crud.store import DatabaseStore, InMemoryStore, KeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "DatabaseStore",
    "get_attempts",
    "get_attempts_newest_first",
    "get_attempt_by_id",
    "has_in_progress_attempt",
    "upsert_attempt",
    "update_attempt_progress",
    "delete_attempt",
    "clear_attempts",
    "get_snapshot",
    "save_snapshot",
    "clear_snapshot",
    "get_checkpoint",
    "save_checkpoint",
    "clear_checkpoint",
    "get_remembered_name",
    "remember_name",
    "get_local_credentials",
    "save_local_credentials",
]
