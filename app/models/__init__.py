"""
TDMS Analytics - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin
from app.models.user import UserAccount, UserRole
from app.models.establishment import (
    Establishment,
    AccommodationType,
    ACCOMMODATION_CODES,
    accommodation_code_for,
)
from app.models.submission import Submission, DailyMetric, Guest
from app.models.system_setting import SystemSetting, AUTO_APPROVAL_KEY

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    # Accounts
    "UserAccount",
    "UserRole",
    # Establishments
    "Establishment",
    "AccommodationType",
    "ACCOMMODATION_CODES",
    "accommodation_code_for",
    # Submissions
    "Submission",
    "DailyMetric",
    "Guest",
    # Settings
    "SystemSetting",
    "AUTO_APPROVAL_KEY",
]
