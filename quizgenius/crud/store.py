"""키/값 저장소 (세션 스냅샷과 히스토리의 기반 저장소)

트랜잭션 보장이 없는 동기 get/set/remove만 제공하며,
값 크기가 한도를 넘으면 StorageCapacityError를 발생시킨다.
"""
import logging
from typing import Protocol

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError

from quizgenius.core.config import settings
from quizgenius.exceptions import StorageCapacityError, StorageError
from quizgenius.models.base import get_engine, get_session_factory, init_db
from quizgenius.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStore:
    """메모리 저장소 (테스트 및 임시 실행용)"""

    def __init__(self, max_value_bytes: int | None = None):
        self._data: dict[str, bytes] = {}
        self._max_value_bytes = max_value_bytes

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self._max_value_bytes is not None and len(value) > self._max_value_bytes:
            raise StorageCapacityError(key, len(value), self._max_value_bytes)
        self._data[key] = bytes(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class DatabaseStore:
    """SQLAlchemy 기반 저장소 (기본: 로컬 SQLite 파일)"""

    def __init__(self, engine: Engine | None = None, max_value_bytes: int | None = None):
        self._engine = engine or get_engine()
        self._session_factory = get_session_factory(self._engine)
        self._max_value_bytes = (
            settings.storage_max_value_bytes if max_value_bytes is None else max_value_bytes
        )
        init_db(self._engine)

    def get(self, key: str) -> bytes | None:
        try:
            with self._session_factory() as session:
                return session.scalar(select(KeyValueEntry.value).where(KeyValueEntry.key == key))
        except SQLAlchemyError as e:
            logger.error(f"저장소 읽기 실패: key={key}, error={e.__class__.__name__}")
            raise StorageError(f"저장소 읽기 실패: {key}") from e

    def set(self, key: str, value: bytes) -> None:
        if len(value) > self._max_value_bytes:
            raise StorageCapacityError(key, len(value), self._max_value_bytes)
        try:
            with self._session_factory.begin() as session:
                entry = session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
        except SQLAlchemyError as e:
            logger.error(f"저장소 쓰기 실패: key={key}, error={e.__class__.__name__}")
            raise StorageError(f"저장소 쓰기 실패: {key}") from e

    def remove(self, key: str) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError as e:
            logger.error(f"저장소 삭제 실패: key={key}, error={e.__class__.__name__}")
            raise StorageError(f"저장소 삭제 실패: {key}") from e
