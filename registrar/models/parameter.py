"""
Parameter models for the password policy.

A ParameterType is a catalog entry for a key; a Parameter holds the value. At
most one active Parameter exists per type, which a partial unique index
guarantees.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registrar.models.database import Base


def _utcnow():
    """Get current UTC time."""
    return datetime.now(timezone.utc)


class ParameterType(Base):
    """Catalog entry describing a parameter key."""

    __tablename__ = "parameter_type"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    def __repr__(self) -> str:
        return f"<ParameterType(id={self.id}, key={self.key})>"


class Parameter(Base):
    """A stored parameter value."""

    __tablename__ = "parameter"
    __table_args__ = (
        Index(
            "uq_parameter_active_type",
            "type_id",
            unique=True,
            sqlite_where=text("active"),
            postgresql_where=text("active"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type_id: Mapped[int] = mapped_column(ForeignKey("parameter_type.id"), index=True)
    value: Mapped[str] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    parameter_type: Mapped[ParameterType] = relationship(lazy="joined")

    @property
    def key(self) -> str:
        return self.parameter_type.key

    @property
    def description(self) -> Optional[str]:
        return self.parameter_type.description

    def __repr__(self) -> str:
        return f"<Parameter(id={self.id}, type_id={self.type_id}, value={self.value!r})>"
