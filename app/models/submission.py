"""
TDMS Analytics - Submission Models

Monthly occupancy reports: one Submission per establishment and period
(resubmissions allowed, the latest one wins), one DailyMetric per day of the
period and one Guest row per guest recorded on a day.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric,
    String, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.establishment import Establishment


class Submission(BaseModel):
    """
    One monthly report from one establishment.

    The three average_* columns are computed once at intake and stored;
    rollups average them across submissions rather than recomputing them
    from daily rows.
    """

    __tablename__ = "submissions"

    establishment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("establishments.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Reporting period
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Rooms declared for this period (may differ from the establishment's current count)
    number_of_rooms: Mapped[int] = mapped_column(Integer, nullable=False)

    # Stored rate fields
    average_guest_nights: Mapped[float] = mapped_column(
        Numeric(10, 4, asdecimal=False), default=0, nullable=False,
    )
    average_room_occupancy_rate: Mapped[float] = mapped_column(
        Numeric(10, 4, asdecimal=False), default=0, nullable=False,
    )
    average_guests_per_room: Mapped[float] = mapped_column(
        Numeric(10, 4, asdecimal=False), default=0, nullable=False,
    )

    # Penalty
    penalty_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    penalty_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    receipt_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    penalty_paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    establishment: Mapped["Establishment"] = relationship(
        "Establishment",
        back_populates="submissions",
    )
    daily_metrics: Mapped[List["DailyMetric"]] = relationship(
        "DailyMetric",
        back_populates="submission",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DailyMetric.day",
    )

    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="month_range"),
        Index("ix_submissions_period", "establishment_id", "year", "month"),
    )

    def __repr__(self) -> str:
        return f"<Submission(establishment_id={self.establishment_id}, period={self.year}-{self.month:02d})>"


class DailyMetric(BaseModel):
    """Counts for one day of a submission's period."""

    __tablename__ = "daily_metrics"

    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    check_ins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    overnight: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    occupied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    submission: Mapped["Submission"] = relationship("Submission", back_populates="daily_metrics")
    guests: Mapped[List["Guest"]] = relationship(
        "Guest",
        back_populates="daily_metric",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("submission_id", "day", name="uq_daily_metrics_submission_day"),
    )


class Guest(BaseModel):
    """
    A guest recorded on a given day.

    Only rows with is_check_in set count towards nationality and demographic
    totals; the rest are stay-over records.
    """

    __tablename__ = "guests"

    daily_metric_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("daily_metrics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    nationality: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_check_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    daily_metric: Mapped["DailyMetric"] = relationship("DailyMetric", back_populates="guests")
