import asyncio
import weakref
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.cache import db as cache_db
from app.core.config import settings
from app.core.timeutils import utcnow
from app.fetch import quotes
from app.gate.cooldown import CooldownGate
from app.gate.store import SessionStore, SqliteSessionStore
from app.presenter.quote_box import QuotePresenter
from app.schemas import PresenterState, Quote, QuoteView

DISPLAYED_QUOTE_KEY = "displayedQuote"

# One refresh at a time per session; entries go away once no request holds them
_refresh_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

@dataclass
class RefreshOutcome:
    refreshed: bool
    view: QuoteView

    @property
    def status_code(self) -> int:
        if self.refreshed:
            return 200
        if self.view.error:
            return 502
        return 429

def load_displayed_quote(store: SessionStore) -> Optional[Quote]:
    payload = store.get(DISPLAYED_QUOTE_KEY)
    if not payload:
        return None
    try:
        return Quote.model_validate_json(payload)
    except ValidationError:
        print("DISPLAYED QUOTE CORRUPTED, ignoring")
        return None

def save_displayed_quote(store: SessionStore, quote: Quote):
    store.set(DISPLAYED_QUOTE_KEY, quote.model_dump_json())

async def current_quote(store: SessionStore) -> Quote:
    """Quote shown on the random view, falling back to the (cached) daily quote"""
    quote = load_displayed_quote(store)
    if quote is None:
        quote = await quotes.fetch_daily()
    return quote

def build_presenter(
    session_id: str,
    initial_quote: Quote,
    show_button: bool = True,
    live: bool = False,
) -> QuotePresenter:
    store = SqliteSessionStore(session_id)
    return QuotePresenter(
        initial_quote=initial_quote,
        gate=CooldownGate(store),
        # resolved at call time so the fetcher can be swapped out
        fetcher=lambda: quotes.fetch_random(),
        show_button=show_button,
        clock=lambda: utcnow(),
        live=live,
    )

async def daily_view(session_id: str) -> QuoteView:
    """
    Initial fetch for the daily view.
    Upstream failures propagate: the page has nothing else to show.
    """
    quote = await quotes.fetch_daily()
    async with build_presenter(session_id, quote, show_button=False) as presenter:
        return presenter.view()

async def random_view(session_id: str) -> QuoteView:
    """Initial fetch for the random view; the cooldown of the session is restored on mount"""
    quote = await quotes.fetch_random()
    save_displayed_quote(SqliteSessionStore(session_id), quote)
    async with build_presenter(session_id, quote) as presenter:
        return presenter.view()

async def refresh_random_quote(session_id: str) -> RefreshOutcome:
    """
    User-triggered refresh through the cooldown gate.
    Locked sessions get their current quote back without an upstream call.
    """
    lock = _refresh_lock(session_id)
    async with lock:
        store = SqliteSessionStore(session_id)
        initial = await current_quote(store)

        async with build_presenter(session_id, initial) as presenter:
            refreshed = await presenter.request_refresh()
            if refreshed:
                save_displayed_quote(store, presenter.quote)
                print(f"REFRESHED quote for session {session_id[:8]}, locked for {presenter.remaining}s")
            elif presenter.state is PresenterState.LOCKED:
                print(f"REFRESH REJECTED for session {session_id[:8]}, {presenter.remaining}s left")
            return RefreshOutcome(refreshed=refreshed, view=presenter.view())

def _refresh_lock(session_id: str) -> asyncio.Lock:
    lock = _refresh_locks.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[session_id] = lock
    return lock

def cooldown_status(session_id: str) -> Dict[str, Any]:
    gate = CooldownGate(SqliteSessionStore(session_id))
    remaining = gate.restore_on_load(utcnow())
    return {"locked": remaining > 0, "remaining": remaining}

def get_cache_stats() -> Dict[str, Any]:
    """Get cache statistics for debugging"""
    try:
        stats = cache_db.get_stats()
        stats["daily_cache_ttl_hours"] = settings.DAILY_CACHE_TTL_HOURS
        return stats
    except Exception as e:
        return {"error": str(e)}
