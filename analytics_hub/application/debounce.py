from __future__ import annotations

import time
from typing import Any, Callable


class Debouncer:
    """Collapse bursts of calls into one, fired after ``wait_seconds`` of quiet.

    Nothing runs in the background: the owning event loop calls :meth:`poll`
    on each tick and the wrapped function fires from there.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        wait_seconds: float = 0.2,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._func = func
        self.wait_seconds = wait_seconds
        self._clock = clock
        self._deadline: float | None = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self._args = args
        self._kwargs = kwargs
        self._deadline = self._clock() + self.wait_seconds

    def poll(self) -> bool:
        """Fire the pending call if its delay has elapsed; return whether it fired."""

        if self._deadline is None or self._clock() < self._deadline:
            return False
        self._fire()
        return True

    def flush(self) -> bool:
        if self._deadline is None:
            return False
        self._fire()
        return True

    def cancel(self) -> None:
        self._deadline = None
        self._args = ()
        self._kwargs = {}

    def _fire(self) -> None:
        args, kwargs = self._args, self._kwargs
        self.cancel()
        self._func(*args, **kwargs)
