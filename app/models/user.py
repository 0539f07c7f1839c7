"""
TDMS Analytics - User Model

Requester accounts with role-based geographic access.

Role lattice (widest first):
1. Regional Admin (r_admin): every establishment in one region
2. Provincial Admin (p_admin): every establishment in one province
3. Municipal Admin (admin): every establishment in one municipality
4. Establishment User (user): a single establishment

Accounts are provisioned by the login service; this service reads them to
resolve the requester's scope and never stores credentials.
"""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, String, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.establishment import Establishment


class UserRole(str, Enum):
    """Requester roles, ordered from widest to narrowest territory."""
    R_ADMIN = "r_admin"    # Regional tourism office
    P_ADMIN = "p_admin"    # Provincial tourism office
    ADMIN = "admin"        # Municipal tourism office
    USER = "user"          # Establishment owner / front desk


class UserAccount(BaseModel):
    """
    A person allowed to query the analytics engine.

    The address columns describe the requester's own territory. Establishment
    users additionally point at the establishment they report for.
    """

    __tablename__ = "user_accounts"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        default=UserRole.USER,
        nullable=False,
    )

    # Territory
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    municipality: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    establishment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("establishments.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    establishment: Mapped[Optional["Establishment"]] = relationship(
        "Establishment",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<UserAccount(email={self.email}, role={self.role})>"
