"""API Dependencies"""

from datetime import date
from typing import Optional

from fastapi import Query

from app.database import get_db, get_session_factory  # noqa: F401
from app.utils.time import get_utc_today


def get_reference_date(
    reference_date: Optional[date] = Query(None, description="Defaults to today (UTC)")
) -> date:
    """Reference date for read-only billing views"""
    return reference_date or get_utc_today()
