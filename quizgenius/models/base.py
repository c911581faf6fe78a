from datetime import datetime

from sqlalchemy import DateTime, Engine, create_engine, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from quizgenius.core.config import settings

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def get_engine(url: str | None = None) -> Engine:
    """엔진 싱글톤 (url 지정 시 새 엔진 생성)"""
    global _engine
    if url is not None:
        return create_engine(url, future=True)
    if _engine is None:
        _engine = create_engine(settings.storage_url, future=True)
    return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    """세션 팩토리 (엔진 지정 시 해당 엔진 전용 팩토리 생성)"""
    global _session_factory
    if engine is not None:
        return sessionmaker(bind=engine, expire_on_commit=False)
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def init_db(engine: Engine) -> None:
    """테이블 생성"""
    Base.metadata.create_all(engine)
