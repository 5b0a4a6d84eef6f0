"""Fire-and-forget observer channels.

An :class:`EventChannel` delivers each emitted event to its subscribers in
registration order.  Subscribers may be plain callables or coroutine
functions:

* plain callables run inline; an exception is logged and delivery continues;
* coroutines are scheduled as tasks on the running loop and are **not**
  awaited by :meth:`EventChannel.emit`; their failures are logged.

:meth:`EventChannel.drain` waits for outstanding tasks (tests, shutdown).

The session layer runs on :mod:`asyncio`; trio is not supported.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

_LOG = logging.getLogger("oauth-session.client.events")

Subscriber = Callable[..., Union[None, Awaitable[None]]]


class EventChannel:
    """Ordered, append-only subscriber list with fire-and-forget delivery."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: list[Subscriber] = []
        self._pending: set[asyncio.Future[Any]] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def emit(self, *args: Any) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(*args)
            except Exception:  # subscriber failures never reach the emitter
                _LOG.exception("Subscriber of %s channel failed", self.name)
                continue
            if inspect.isawaitable(result):
                self._schedule(result)

    async def drain(self) -> None:
        """Wait until every scheduled subscriber coroutine has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ---------------- internal helpers --------------------------------- #
    def _schedule(self, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOG.warning(
                "No running event loop; dropped async subscriber of %s channel",
                self.name,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Future[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOG.error(
                "Async subscriber of %s channel failed", self.name, exc_info=exc
            )
