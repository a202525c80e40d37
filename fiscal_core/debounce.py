"""
Debounced search-as-you-type.

Keystrokes arm a timer on the running event loop; only when the user pauses for
the debounce interval does a search go out. Short queries never take the search
path: clearing the box below the minimum length drops back to the default,
server-paginated first page immediately.

State machine:

    IDLE --keystroke (len >= min)--> DEBOUNCING
    DEBOUNCING --keystroke--> DEBOUNCING (timer re-armed)
    DEBOUNCING --timer elapsed--> SEARCHING
    SEARCHING --response--> SETTLED
    any non-IDLE --query below min--> IDLE (+ default page request)

Every request carries a generation number. A response is applied only if its
generation is still the newest one; anything older is dropped on arrival. HTTP
requests themselves are never aborted.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, Set, TypeVar

from fiscal_core.config import get_settings
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SEARCHING = "searching"
    SETTLED = "settled"


class DebouncedSearchController(Generic[T]):
    """
    Gates and throttles incremental search requests.

    Parameters
    ----------
    search_fn : Callable[[str], Awaitable[T]]
        Issues the (expensive) search for a query.
    default_fn : Callable[[], Awaitable[T]]
        Fetches the unfiltered, server-paginated first page.
    on_result : Callable[[T], None]
        Receives the result of the current request only.
    on_error : Callable[[BaseException], None] | None
        Receives the failure of the current request. When omitted the error is
        kept on `last_error` and logged.
    delay : float | None
        Debounce interval in seconds. Defaults to settings.search_debounce_ms.
    min_length : int | None
        Minimum query length for the search path. Defaults to settings.search_min_length.
    """

    def __init__(
        self,
        search_fn: Callable[[str], Awaitable[T]],
        default_fn: Callable[[], Awaitable[T]],
        on_result: Callable[[T], None],
        *,
        on_error: Optional[Callable[[BaseException], None]] = None,
        delay: Optional[float] = None,
        min_length: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._search_fn = search_fn
        self._default_fn = default_fn
        self._on_result = on_result
        self._on_error = on_error
        self.delay = settings.search_debounce_seconds if delay is None else delay
        self.min_length = settings.search_min_length if min_length is None else min_length

        self._state = SearchState.IDLE
        self._query = ""
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self.requests_issued = 0
        self.last_error: Optional[BaseException] = None

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def query(self) -> str:
        return self._query

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _long_enough(self, text: str) -> bool:
        return len(text.strip()) >= self.min_length

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def on_input(self, text: str) -> None:
        """
        Feed the current content of the search box. Must run on the event loop.
        """
        if self._closed:
            return
        self._query = text

        if not self._long_enough(text):
            self._cancel_timer()
            if self._state is not SearchState.IDLE:
                self._state = SearchState.IDLE
                self._issue(self._default_fn, kind="default", query="")
            return

        # A newer query supersedes whatever is still in flight.
        self._generation += 1
        self._cancel_timer()
        self._state = SearchState.DEBOUNCING
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire, text.strip())

    def _fire(self, query: str) -> None:
        self._timer = None
        if self._closed:
            return
        self._state = SearchState.SEARCHING
        self._issue(lambda: self._search_fn(query), kind="search", query=query)

    def _issue(self, factory: Callable[[], Awaitable[T]], *, kind: str, query: str) -> None:
        self._generation += 1
        self.requests_issued += 1
        task = asyncio.ensure_future(self._run(self._generation, factory, kind, query))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(
        self,
        generation: int,
        factory: Callable[[], Awaitable[T]],
        kind: str,
        query: str,
    ) -> None:
        try:
            result = await factory()
        except Exception as exc:  # noqa: BLE001 - delivered to on_error, never dropped silently
            if generation != self._generation:
                log.debug(
                    f"[SEARCH DISCARDED] stale {kind} failure",
                    extra={"query": query, "generation": generation},
                )
                return
            if kind == "search":
                self._state = SearchState.SETTLED
            self.last_error = exc
            if self._on_error is not None:
                self._on_error(exc)
            else:
                log.warning(
                    f"[SEARCH FAILED] {kind}",
                    extra={"query": query, "error": str(exc)},
                )
            return

        if generation != self._generation:
            log.debug(
                f"[SEARCH DISCARDED] stale {kind} result",
                extra={"query": query, "generation": generation, "current": self._generation},
            )
            return
        if kind == "search":
            self._state = SearchState.SETTLED
        self.last_error = None
        self._on_result(result)

    async def drain(self) -> None:
        """Wait for every request issued so far to finish (applied or discarded)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """
        Tear down: cancel the pending timer and invalidate outstanding requests.
        """
        self._closed = True
        self._cancel_timer()
        self._generation += 1


__all__ = ["DebouncedSearchController", "SearchState"]
