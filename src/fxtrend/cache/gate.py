"""Latest-wins request gate shared by the rate and series caches.

Each cache owns one gate per resource class. Starting a request for a new key
cancels whatever the gate had in flight and hands out a fresh token; a
request for the key already in flight joins it instead of issuing a second
fetch. Callers of a superseded request get ``RequestSuperseded``.
"""

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

from fxtrend.exceptions import RequestSuperseded
from fxtrend.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Marks one request as superseded. Checked by fetch continuations."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestSuperseded()


class RequestGate(Generic[T]):
    """Holds at most one in-flight request for a resource class.

    Usage:
        gate = RequestGate("rates")
        snapshot = await gate.run("USD", lambda token: fetch("USD", token))
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._key: Hashable | None = None
        self._token: CancellationToken | None = None
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def in_flight_key(self) -> Hashable | None:
        """Key of the running request, or None when idle."""
        if self._task is None or self._task.done():
            return None
        return self._key

    def cancel(self) -> None:
        """Supersede the in-flight request, if any."""
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("request_superseded", gate=self._name, key=self._key)
        self._task = None
        self._key = None
        self._token = None

    async def run(
        self,
        key: Hashable,
        factory: Callable[[CancellationToken], Awaitable[T]],
    ) -> T:
        """Run ``factory`` for ``key``, joining or superseding the in-flight request.

        The factory receives the request's token and must call
        ``token.raise_if_cancelled()`` before mutating shared state.

        Raises:
            RequestSuperseded: if a newer request replaced this one before it
                finished. Errors raised by a superseded fetch are dropped.
        """
        if self.in_flight_key == key and self._task is not None and self._token is not None:
            task, token = self._task, self._token
            logger.debug("request_joined", gate=self._name, key=key)
        else:
            self.cancel()
            token = CancellationToken()
            task = asyncio.ensure_future(factory(token))
            self._key, self._token, self._task = key, token, task

        try:
            # shield: a waiter being cancelled must not cancel a shared fetch
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if token.cancelled and (current is None or not current.cancelling()):
                raise RequestSuperseded() from None
            raise
        except RequestSuperseded:
            raise
        except Exception:
            if token.cancelled:
                raise RequestSuperseded() from None
            raise
        finally:
            if self._task is task and task.done():
                self._task = None
                self._key = None
                self._token = None

        if token.cancelled:
            raise RequestSuperseded()
        return result
