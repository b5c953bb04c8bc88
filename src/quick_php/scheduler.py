from __future__ import annotations

import asyncio
from collections.abc import Callable


class Debouncer:
    """Collapse bursts of events into one callback after a quiet period.

    Must be used from the thread running `loop`.

    Example:
        ```python
        debouncer = Debouncer(lambda: 0.3, fire)
        debouncer.trigger()
        ```
    """

    def __init__(
        self,
        delay_provider: Callable[[], float],
        callback: Callable[[], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._delay_provider = delay_provider
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """Cancel any armed timer and arm a fresh one."""
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(max(0.0, self._delay_provider()), self._fire)

    def cancel(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def _fire(self) -> None:
        self._handle = None
        self._callback()
