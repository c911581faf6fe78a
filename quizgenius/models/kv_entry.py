from sqlalchemy import LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from quizgenius.models.base import Base, TimestampMixin


class KeyValueEntry(Base, TimestampMixin):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
