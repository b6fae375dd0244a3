"""
Quote box presenter.

Holds the displayed quote and drives the refresh control:

    Idle --request_refresh--> Loading --success--> Locked --tick...--> Idle
                                      --failure--> Idle (quote kept, error set)

A refresh is only accepted from Idle while the cooldown gate is unlocked.
When running live, a countdown task ticks once per interval while Locked and
is cancelled on close().
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from app.core.config import settings
from app.core.timeutils import utcnow
from app.fetch.base import QuoteFetchError
from app.gate.cooldown import CooldownGate
from app.schemas import PresenterState, Quote, QuoteView

REFRESH_ERROR_MESSAGE = "Failed to fetch a new quote."

QuoteFetcher = Callable[[], Awaitable[Quote]]

class Countdown:
    """Repeating once-per-interval tick bound to its owner's lifetime"""

    def __init__(self, on_tick: Callable[[], bool], interval: float):
        # on_tick returns True to keep ticking
        self.on_tick = on_tick
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        try:
            while True:
                await asyncio.sleep(self.interval)
                if not self.on_tick():
                    break
        finally:
            self._task = None

    async def cancel(self):
        task = self._task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._task = None

class QuotePresenter:
    def __init__(
        self,
        initial_quote: Quote,
        gate: CooldownGate,
        fetcher: QuoteFetcher,
        show_button: bool = False,
        clock: Callable[[], datetime] = utcnow,
        live: bool = False,
        tick_interval: Optional[float] = None,
    ):
        self.quote = initial_quote
        self.gate = gate
        self.fetcher = fetcher
        self.show_button = show_button
        self.clock = clock
        self.live = live
        self.state = PresenterState.IDLE
        self.remaining = 0
        self.error: Optional[str] = None
        self._subscribers: List[asyncio.Queue] = []
        self._countdown = Countdown(
            self.tick,
            tick_interval if tick_interval is not None else settings.TICK_INTERVAL_SECONDS
        )

    async def __aenter__(self) -> "QuotePresenter":
        self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def mount(self) -> QuoteView:
        """Restore a cooldown persisted by an earlier view of this session"""
        remaining = self.gate.restore_on_load(self.clock())
        if remaining > 0:
            self._enter_locked(remaining)
        return self.view()

    async def request_refresh(self) -> bool:
        """
        Replace the quote with a fresh random one.
        Returns False without calling the fetcher unless Idle and unlocked.
        """
        if self.state is not PresenterState.IDLE or self.gate.is_locked(self.clock()):
            return False

        self.state = PresenterState.LOADING
        self.error = None
        self._publish()

        try:
            new_quote = await self.fetcher()
        except QuoteFetchError as e:
            print(f"Error fetching random quote: {e}")
            self.error = REFRESH_ERROR_MESSAGE
            self.state = PresenterState.IDLE
            self._publish()
            return False

        self.quote = new_quote
        now = self.clock()
        self.gate.trigger(now)
        self._enter_locked(self.gate.remaining(now))
        return True

    def tick(self) -> bool:
        """Advance the countdown by one second. Returns True while still Locked."""
        if self.state is not PresenterState.LOCKED:
            return False

        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.state = PresenterState.IDLE
        self._publish()
        return self.state is PresenterState.LOCKED

    def subscribe(self) -> asyncio.Queue:
        """Queue receiving a QuoteView after every state change"""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    @property
    def countdown_running(self) -> bool:
        return self._countdown.running

    async def close(self):
        await self._countdown.cancel()
        self._subscribers.clear()

    def view(self) -> QuoteView:
        return QuoteView(
            state=self.state,
            quote=self.quote,
            remaining=self.remaining,
            error=self.error,
            show_button=self.show_button,
        )

    def _enter_locked(self, remaining: int):
        if remaining <= 0:
            self.state = PresenterState.IDLE
            self.remaining = 0
            self._publish()
            return

        self.state = PresenterState.LOCKED
        self.remaining = remaining
        self._publish()
        if self.live:
            self._countdown.start()

    def _publish(self):
        view = self.view()
        for queue in self._subscribers:
            queue.put_nowait(view)
