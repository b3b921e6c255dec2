"""
Post-commit events emitted by the moderation state machines.

Services only *describe* side effects (notify someone, delete a stored file)
and hand the events back in their ``ActionResult``. Routers schedule
``dispatcher.dispatch`` as a background task, so the side effects run after
the transition is committed and a failing handler never undoes it.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Type

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostFlagged:
    post_id: int
    post_title: str
    report_count: int


@dataclass(frozen=True)
class StoredFileReleased:
    path: str


@dataclass
class EventDispatcher:
    handlers: Dict[Type, List[Callable]] = field(default_factory=dict)

    def subscribe(self, event_type: Type, handler: Callable) -> Callable:
        self.handlers.setdefault(event_type, []).append(handler)
        return handler

    def on(self, event_type: Type):
        """Decorator form of ``subscribe``."""

        def decorator(handler: Callable) -> Callable:
            return self.subscribe(event_type, handler)

        return decorator

    async def dispatch(self, events: Iterable) -> int:
        """
        Deliver ``events`` to their handlers. Returns the number of handler
        failures; failures are logged and swallowed because the transition
        that produced the events is already committed.
        """
        failures = 0
        for event in events:
            for handler in self.handlers.get(type(event), []):
                try:
                    if inspect.iscoroutinefunction(handler):
                        await handler(event)
                    else:
                        # Sync handlers hit the database or disk
                        await run_in_threadpool(handler, event)
                except Exception as e:
                    failures += 1
                    logger.error(
                        f"Handler {getattr(handler, '__name__', handler)} failed for {event}: {e}",
                        exc_info=True,
                    )
        return failures

    def dispatch_sync(self, events: Iterable) -> int:
        """For callers without a running event loop (CLI, tests)."""
        return asyncio.run(self.dispatch(list(events)))


dispatcher = EventDispatcher()


def schedule(background_tasks, events: Iterable) -> None:
    """Queue ``events`` to be dispatched once the response has been sent."""
    events = list(events)
    if events:
        background_tasks.add_task(dispatcher.dispatch, events)
