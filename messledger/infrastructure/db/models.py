"""
SQLAlchemy ORM models
"""
from sqlalchemy import String, DateTime, TIMESTAMP, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from messledger.infrastructure.db.session import Base


class Household(Base):
    """
    One household ("mess") and its whole ledger document

    The ledger is stored as a single JSONB blob and always replaced as a
    whole; the last writer wins.
    """
    __tablename__ = "households"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # join code
    name: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    db_json: Mapped[dict] = mapped_column(JSONB, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
