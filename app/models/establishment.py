"""
TDMS Analytics - Establishment Model

Accommodation establishments that report monthly occupancy.
"""

from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.submission import Submission


class AccommodationType(str, Enum):
    """DOT accommodation classifications."""
    HOTEL = "Hotel"
    CONDOTEL = "Condotel"
    SERVICED_RESIDENCE = "Serviced Residence"
    RESORT = "Resort"
    APARTELLE = "Apartelle"
    MOTEL = "Motel"
    PENSION_HOUSE = "Pension House"
    HOME_STAY_SITE = "Home Stay Site"
    TOURIST_INN = "Tourist Inn"
    OTHER = "Other"


ACCOMMODATION_CODES = {
    AccommodationType.HOTEL: "HTL",
    AccommodationType.CONDOTEL: "CON",
    AccommodationType.SERVICED_RESIDENCE: "SER",
    AccommodationType.RESORT: "RES",
    AccommodationType.APARTELLE: "APA",
    AccommodationType.MOTEL: "MOT",
    AccommodationType.PENSION_HOUSE: "PEN",
    AccommodationType.HOME_STAY_SITE: "HSS",
    AccommodationType.TOURIST_INN: "TIN",
    AccommodationType.OTHER: "OTH",
}


def accommodation_code_for(accommodation_type: str) -> str:
    """Three-letter code for an accommodation type; unknown types map to OTH."""
    try:
        return ACCOMMODATION_CODES[AccommodationType(accommodation_type)]
    except ValueError:
        return ACCOMMODATION_CODES[AccommodationType.OTHER]


class Establishment(BaseModel):
    """
    A registered accommodation establishment.

    Only establishments that are both approved and active are expected to
    submit, so only they count towards submission-rate denominators.
    """

    __tablename__ = "establishments"

    company_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Address
    region: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    province: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    municipality: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    barangay: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    number_of_rooms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    accommodation_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    accommodation_code: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    submissions: Mapped[List["Submission"]] = relationship(
        "Submission",
        back_populates="establishment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_eligible(self) -> bool:
        """Expected to submit every month."""
        return self.is_approved and self.is_active

    def __repr__(self) -> str:
        return f"<Establishment(name={self.company_name}, municipality={self.municipality})>"
