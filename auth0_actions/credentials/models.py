"""M2M configuration data models."""

import re
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from auth0_actions.config import settings
from auth0_actions.database import Base

if not re.match(r"^[A-Za-z0-9_]+$", settings.m2m_config_table):
    raise ValueError(
        f"Invalid table name: {settings.m2m_config_table}. "
        "Only alphanumeric characters and underscores are allowed."
    )


class M2MConfig(Base):
    """Stored Auth0 machine-to-machine application credentials."""

    __tablename__ = settings.m2m_config_table

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Encrypted
    client_secret: Mapped[str] = mapped_column(Text, nullable=False)

    audience: Mapped[Optional[str]] = mapped_column(Text)
    scope: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Validation
    last_validated: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    validation_error: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with the client secret masked."""
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "client_id": self.client_id,
            "client_secret_set": bool(self.client_secret),
            "audience": self.audience,
            "scope": self.scope,
            "is_active": self.is_active,
            "last_validated": self.last_validated.isoformat() if self.last_validated else None,
            "validation_error": self.validation_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<M2MConfig(id={self.id}, domain='{self.domain}', is_active={self.is_active})>"
