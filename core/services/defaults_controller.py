"""Debounced, cancelable recomputation of smart defaults.

Input changes are debounced; a manual refresh starts a cycle immediately.
Every cycle carries a monotonically increasing request id and its result is
applied only if that id is still the latest one issued, so a slow, older
cycle can never overwrite a newer result. Applying is a single assignment
of an immutable `SmartDefaults`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from core.config import Settings
from core.services.defaults_context import Clock, DefaultsContext, SystemClock, assemble_context
from core.services.field_resolvers import DefaultReasoning
from core.services.smart_defaults import SmartDefaults, compute_smart_defaults

logger = logging.getLogger(__name__)

ContextFactory = Callable[[dict[str, Any]], Union[DefaultsContext, Awaitable[DefaultsContext]]]


class SmartDefaultsController:
    def __init__(
        self,
        context_factory: ContextFactory,
        *,
        debounce_seconds: float = 0.3,
        max_players: int = 15,
        clock: Optional[Clock] = None,
        on_apply: Optional[Callable[[SmartDefaults], None]] = None,
    ) -> None:
        self._context_factory = context_factory
        self._debounce_seconds = debounce_seconds
        self._max_players = max_players
        self._clock = clock or SystemClock()
        self._on_apply = on_apply

        self._inputs: dict[str, Any] = {}
        self._latest_request_id = 0
        self._completed_request_id = 0
        self._debounce_task: Optional[asyncio.Task] = None
        self._cycles: dict[int, asyncio.Task] = {}
        self._defaults: Optional[SmartDefaults] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        context_factory: ContextFactory,
        *,
        clock: Optional[Clock] = None,
        on_apply: Optional[Callable[[SmartDefaults], None]] = None,
    ) -> "SmartDefaultsController":
        """Controller with the debounce window and player cap of the running environment."""
        return cls(
            context_factory,
            debounce_seconds=settings.debounce_seconds,
            max_players=settings.max_default_players,
            clock=clock,
            on_apply=on_apply,
        )

    # -- state --

    @property
    def defaults(self) -> Optional[SmartDefaults]:
        return self._defaults

    @property
    def confidence(self) -> int:
        return self._defaults.confidence if self._defaults else 0

    @property
    def reasoning(self) -> tuple[DefaultReasoning, ...]:
        return self._defaults.reasoning if self._defaults else ()

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    @property
    def max_players(self) -> int:
        return self._max_players

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    @property
    def is_calculating(self) -> bool:
        debouncing = self._debounce_task is not None and not self._debounce_task.done()
        return debouncing or self._completed_request_id != self._latest_request_id

    @property
    def inputs(self) -> dict[str, Any]:
        return dict(self._inputs)

    # -- triggers --

    def notify_change(self, **changes: Any) -> None:
        """Record changed inputs and (re)start the debounce window. Needs a running loop."""
        self._inputs.update(changes)
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounce())

    def refresh(self, **changes: Any) -> asyncio.Task:
        """Start a cycle now, superseding any cycle still in flight."""
        self._inputs.update(changes)
        return self._start_cycle()

    async def wait_idle(self) -> Optional[SmartDefaults]:
        """Wait until no debounce or cycle is pending, then return the live defaults."""
        while True:
            pending = [t for t in self._cycles.values() if not t.done()]
            if self._debounce_task is not None and not self._debounce_task.done():
                pending.append(self._debounce_task)
            if not pending:
                return self._defaults
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        for task in self._cycles.values():
            task.cancel()
        self._cycles.clear()
        # nothing left in flight can complete
        self._completed_request_id = self._latest_request_id

    # -- internals --

    async def _debounce(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        self._start_cycle()

    def _start_cycle(self) -> asyncio.Task:
        self._latest_request_id += 1
        request_id = self._latest_request_id
        task = asyncio.get_running_loop().create_task(self._run_cycle(request_id, dict(self._inputs)))
        self._cycles[request_id] = task
        task.add_done_callback(lambda _t, rid=request_id: self._cycles.pop(rid, None))
        return task

    async def _build_context(self, inputs: dict[str, Any]) -> DefaultsContext:
        try:
            ctx = self._context_factory(inputs)
            if inspect.isawaitable(ctx):
                ctx = await ctx
            return ctx
        except Exception:
            logger.exception("context assembly failed, using an empty context")
            return assemble_context(self._clock)

    async def _run_cycle(self, request_id: int, inputs: dict[str, Any]) -> Optional[SmartDefaults]:
        ctx = await self._build_context(inputs)
        result = compute_smart_defaults(ctx, max_players=self._max_players)

        if request_id != self._latest_request_id:
            logger.debug("discarding stale smart defaults", extra={"ctx_request_id": request_id, "ctx_latest": self._latest_request_id})
            return None

        self._defaults = result
        self._completed_request_id = request_id
        if self._on_apply is not None:
            self._on_apply(result)
        return result
