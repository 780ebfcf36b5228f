"""Key/value settings persisted alongside the relay data."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from confichannel.db.session import Base


class AppSetting(Base):
    """Single persisted setting, e.g. the last deployed version."""

    __tablename__ = "app_setting"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
