"""
Cooldown gate for upstream quote requests.

ZenQuotes allows 5 requests per 30 seconds. The gate approximates that budget
per session by refusing a new request for a fixed window after each one.
It is a courtesy to the provider, the real limit is enforced upstream.
"""
import math
from datetime import datetime, timedelta
from typing import Optional

from app.core.config import settings
from app.core.timeutils import from_epoch_ms, to_epoch_ms
from app.gate.store import SessionStore

COOLDOWN_STORAGE_KEY = "quoteCooldownUnlock"

class CooldownGate:
    def __init__(self, store: SessionStore, key: str = COOLDOWN_STORAGE_KEY):
        self.store = store
        self.key = key
        self.unlock_at: Optional[datetime] = None

    def is_locked(self, now: datetime) -> bool:
        return self.unlock_at is not None and self.unlock_at > now

    def remaining(self, now: datetime) -> int:
        """Seconds until unlock, rounded up; 0 when unlocked"""
        if self.unlock_at is None:
            return 0
        seconds = (self.unlock_at - now).total_seconds()
        return max(0, math.ceil(seconds))

    def trigger(self, now: datetime, duration_seconds: Optional[int] = None) -> bool:
        """
        Start a cooldown and persist it to the session store.
        Does nothing and returns False while a cooldown is still running.
        """
        # Another request of the same session may have started a cooldown meanwhile
        stored = self._read_stored()
        if stored is not None and (self.unlock_at is None or stored > self.unlock_at):
            self.unlock_at = stored

        if self.is_locked(now):
            return False

        if duration_seconds is None:
            duration_seconds = settings.COOLDOWN_SECONDS

        unlock_ms = to_epoch_ms(now) + int(duration_seconds) * 1000
        self.unlock_at = from_epoch_ms(unlock_ms)
        self.store.set(self.key, str(unlock_ms))
        return True

    def restore_on_load(self, now: datetime) -> int:
        """
        Re-read the persisted unlock time on view activation.
        Returns the remaining seconds; an expired record is removed.
        """
        raw = self.store.get(self.key)
        if raw is None:
            self.unlock_at = None
            return 0

        try:
            self.unlock_at = from_epoch_ms(int(raw))
        except (TypeError, ValueError, OverflowError, OSError):
            print(f"COOLDOWN RECORD INVALID ({raw!r}), ignoring")
            self.unlock_at = None
            self.store.delete(self.key)
            return 0

        remaining = self.remaining(now)
        if remaining == 0:
            self.unlock_at = None
            self.store.delete(self.key)
        return remaining

    def _read_stored(self) -> Optional[datetime]:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            return from_epoch_ms(int(raw))
        except (TypeError, ValueError, OverflowError, OSError):
            return None
