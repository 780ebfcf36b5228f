"""Subscription model backing the tier lookup."""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from confichannel.db.session import Base


class Subscription(Base):
    """Paid tier attached to a device."""

    __tablename__ = "subscription"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    device_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    creation_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    update_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    valid_until: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
