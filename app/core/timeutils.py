from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from typing import Optional
from app.core.config import settings

def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)

def to_epoch_ms(moment: datetime) -> int:
    """Milliseconds since epoch, the unit used by the session store"""
    return int(moment.timestamp() * 1000)

def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)

def display_zone() -> ZoneInfo:
    return ZoneInfo(settings.DISPLAY_TIMEZONE)

def format_long_date(moment: Optional[datetime] = None) -> str:
    """
    Human readable date in the display timezone.
    Example: 'Saturday, October 25, 2025'
    """
    local = (moment or utcnow()).astimezone(display_zone())
    return f"{local:%A}, {local:%B} {local.day}, {local.year}"
