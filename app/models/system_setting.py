"""
TDMS Analytics - System Settings Model

Narrow key/value store for runtime toggles administrators can change.
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


AUTO_APPROVAL_KEY = "auto_approval"


class SystemSetting(BaseModel):
    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
