"""Client-side helpers for list and search screens.

None of these talk to the API directly; they wrap whatever coroutine the
caller uses to fetch data:

- ``PageState`` keeps page / page size / filter consistent.
- ``Debouncer`` waits for a quiet period before running a callback.
- ``RequestSequencer`` drops responses that arrive after a newer request.
- ``SearchBox`` combines the three for the product search box.
- ``Poller`` runs a refresh on a fixed interval until stopped.
- ``OptimisticToggle`` flips a flag locally and reverts if the server refuses.
"""

import asyncio
import inspect
import math
from contextlib import suppress
from typing import Any, Awaitable, Callable, Hashable, Optional

from app.core.config import settings
from app.core.logging_config import get_logger

logger = get_logger("clients.live_query")

DEBOUNCE_SECONDS = 0.3
MIN_SEARCH_CHARS = 2
PAGE_SIZE_OPTIONS = (10, 15, 20, 50, 100)


def _check_page_size(page_size: int) -> int:
    if page_size not in PAGE_SIZE_OPTIONS:
        raise ValueError(f"page_size must be one of {PAGE_SIZE_OPTIONS}")
    return page_size


class PageState:
    def __init__(self, page_size: int = PAGE_SIZE_OPTIONS[0]):
        _check_page_size(page_size)
        self.page = 1
        self.page_size = page_size
        self.filter_text = ""
        self.total_count = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def set_page_size(self, page_size: int) -> None:
        self.page_size = _check_page_size(page_size)
        # the old page number may not exist any more
        self.page = 1

    def set_filter(self, text: str) -> None:
        self.filter_text = text
        self.page = 1

    def update_total(self, total_count: int) -> None:
        self.total_count = max(0, int(total_count))
        if self.page > max(1, self.total_pages):
            self.page = max(1, self.total_pages)

    def next_page(self) -> bool:
        if self.page < self.total_pages:
            self.page += 1
            return True
        return False

    def previous_page(self) -> bool:
        if self.page > 1:
            self.page -= 1
            return True
        return False

    def params(self) -> dict:
        out = {"page": self.page, "page_size": self.page_size}
        if self.filter_text:
            out["search"] = self.filter_text
        return out


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class Debouncer:
    def __init__(self, callback: Callable[..., Any], delay: float = DEBOUNCE_SECONDS):
        self.callback = callback
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, *args: Any) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire(args))
        return self._task

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def wait(self) -> None:
        if self._task is not None:
            with suppress(asyncio.CancelledError):
                await self._task

    async def _fire(self, args) -> None:
        await asyncio.sleep(self.delay)
        await _maybe_await(self.callback(*args))


class RequestSequencer:
    def __init__(self):
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, seq: int) -> bool:
        return seq == self._latest

    async def run(self, fetch: Callable[[], Awaitable[Any]], apply: Callable[[Any], Any]) -> bool:
        """Run ``fetch`` and hand its result to ``apply`` unless a newer request was issued meanwhile."""
        seq = self.issue()
        try:
            result = await fetch()
        except Exception:
            # a failure nobody is waiting for any more is dropped like a stale result
            if not self.is_current(seq):
                logger.debug("stale_failure_dropped", extra={"seq": seq, "latest": self._latest})
                return False
            raise
        if not self.is_current(seq):
            logger.debug("stale_response_dropped", extra={"seq": seq, "latest": self._latest})
            return False
        apply(result)
        return True


class SearchBox:
    def __init__(
        self,
        search: Callable[[str], Awaitable[list]],
        min_chars: int = MIN_SEARCH_CHARS,
        delay: float = DEBOUNCE_SECONDS,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ):
        self.search = search
        self.min_chars = min_chars
        self.on_error = on_error
        self.results: list = []
        # last search failure, cleared by the next successful search
        self.error: Optional[Exception] = None
        self._sequencer = RequestSequencer()
        self._debouncer = Debouncer(self._run, delay)

    def type(self, text: str) -> asyncio.Task:
        return self._debouncer.trigger(text)

    async def settle(self) -> None:
        await self._debouncer.wait()

    def close(self) -> None:
        self._debouncer.cancel()

    def _set(self, results) -> None:
        self.results = list(results or [])
        self.error = None

    async def _run(self, text: str) -> None:
        if len(text.strip()) < self.min_chars:
            # invalidates anything still in flight
            self._sequencer.issue()
            self.results = []
            self.error = None
            return
        try:
            await self._sequencer.run(lambda: self.search(text), self._set)
        except Exception as e:
            logger.exception("search_failed", extra={"query": text})
            self.results = []
            self.error = e
            if self.on_error is not None:
                await _maybe_await(self.on_error(e))


class Poller:
    def __init__(
        self,
        refresh: Callable[[], Any],
        interval: Optional[float] = None,
        run_immediately: bool = True,
    ):
        self.refresh = refresh
        # stock alerts refresh every ALERT_POLL_SECONDS unless told otherwise
        self.interval = settings.alert_poll_seconds if interval is None else interval
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _tick(self) -> None:
        try:
            await _maybe_await(self.refresh())
        except Exception:
            # a failed refresh waits for the next tick
            logger.exception("poll_refresh_failed")

    async def _loop(self) -> None:
        if self.run_immediately:
            await self._tick()
        while True:
            await asyncio.sleep(self.interval)
            await self._tick()


class OptimisticToggle:
    def __init__(self, flags: dict):
        self.flags = flags

    async def toggle(self, key: Hashable, commit: Callable[[Hashable, bool], Awaitable[Any]]) -> bool:
        previous = bool(self.flags[key])
        self.flags[key] = not previous
        try:
            await commit(key, not previous)
        except Exception:
            self.flags[key] = previous
            raise
        return self.flags[key]
