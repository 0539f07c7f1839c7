"""
TDMS Analytics - Test Helpers

Builders for submission payloads and auth headers shared across test modules.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.models.user import UserAccount
from app.utils.security import create_access_token


REGION = "Region I"


def auth_headers_for(account: UserAccount) -> Dict[str, str]:
    """Bearer header for an account."""
    token = create_access_token({"sub": str(account.id)})
    return {"Authorization": f"Bearer {token}"}


def daily_rows(
    days: int,
    check_ins: int = 0,
    overnight: int = 0,
    occupied: int = 0,
) -> List[dict]:
    """Identical counts for every day of a period."""
    return [
        {"day": day, "check_ins": check_ins, "overnight": overnight, "occupied": occupied}
        for day in range(1, days + 1)
    ]


def april_2024_rows() -> List[dict]:
    """30 days totalling 40 check-ins, 35 overnight and 180 occupied rooms."""
    return [
        {
            "day": day,
            "check_ins": 4 if day <= 10 else 0,
            "overnight": 2 if day <= 5 else 1,
            "occupied": 6,
        }
        for day in range(1, 31)
    ]


def guest(
    nationality: Optional[str],
    gender: str = "Male",
    age: int = 30,
    status: str = "Single",
    is_check_in: bool = True,
) -> dict:
    return {
        "nationality": nationality,
        "gender": gender,
        "age": age,
        "status": status,
        "room_number": 101,
        "is_check_in": is_check_in,
    }


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
