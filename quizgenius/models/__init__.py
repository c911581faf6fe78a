from quizgenius.models.base import Base, get_engine, get_session_factory, init_db
from quizgenius.models.kv_entry import KeyValueEntry

__all__ = ["Base", "KeyValueEntry", "get_engine", "get_session_factory", "init_db"]
