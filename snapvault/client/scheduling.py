"""
    Cancellable timers: schedule a callback after a delay, cancel it by token.
"""
from typing import Callable, Dict, List, Optional, Protocol, Tuple
import asyncio
import heapq
import itertools

class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> int:
        ...

    def cancel(self, token: int) -> bool:
        ...

class AsyncioScheduler:
    """Timers on the running asyncio event loop."""
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tokens = itertools.count(1)
        self._handles: Dict[int, asyncio.TimerHandle] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def schedule(self, delay: float, callback: Callable[[], None]) -> int:
        token = next(self._tokens)

        def fire():
            self._handles.pop(token, None)
            callback()

        self._handles[token] = self.loop.call_later(delay, fire)
        return token

    def cancel(self, token: int) -> bool:
        handle = self._handles.pop(token, None)
        if handle is None:
            return False
        handle.cancel()
        return True

class ManualScheduler:
    """Virtual clock; timers fire only when advance() moves time past them."""
    def __init__(self):
        self.now = 0.0
        self._tokens = itertools.count(1)
        self._queue: List[Tuple[float, int]] = []
        self._callbacks: Dict[int, Callable[[], None]] = {}

    def schedule(self, delay: float, callback: Callable[[], None]) -> int:
        token = next(self._tokens)
        self._callbacks[token] = callback
        heapq.heappush(self._queue, (self.now + delay, token))
        return token

    def cancel(self, token: int) -> bool:
        return self._callbacks.pop(token, None) is not None

    @property
    def pending(self) -> int:
        return len(self._callbacks)

    def advance(self, seconds: float) -> int:
        """Moves the clock forward, firing due timers in order. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, token = heapq.heappop(self._queue)
            callback = self._callbacks.pop(token, None)
            if callback is None:
                continue
            self.now = due
            callback()
            fired += 1
        self.now = target
        return fired
