"""
Keyed work queue for reconciliation requests.

- A key waiting in the queue is not queued twice.
- A key being processed is not handed to a second worker; if it is added
  meanwhile, it is queued again once the current pass is done.
- Delayed adds keep only the earliest pending deadline per key.
"""

import asyncio
from typing import Hashable, Optional

import structlog

logger = structlog.get_logger(__name__)


class ShutDown(Exception):
    """Raised by get() once the queue has been shut down."""


class WorkQueue:
    """Coalescing, per-key serializing queue driven by asyncio."""
    
    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._dirty: set = set()
        self._processing: set = set()
        self._timers: dict[Hashable, asyncio.TimerHandle] = {}
        self._deadlines: dict[Hashable, float] = {}
        self._shutting_down = False
    
    def __len__(self) -> int:
        return len(self._dirty)
    
    @property
    def shutting_down(self) -> bool:
        return self._shutting_down
    
    def add(self, key: Hashable) -> None:
        """Queue a key for processing now."""
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            # Picked up again by done()
            return
        self._queue.put_nowait(key)
    
    def add_after(self, key: Hashable, delay: float) -> None:
        """Queue a key after `delay` seconds, unless it is already due sooner."""
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return
        
        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay
        pending = self._deadlines.get(key)
        if pending is not None and pending <= deadline:
            return
        
        self._cancel_timer(key)
        self._deadlines[key] = deadline
        self._timers[key] = loop.call_at(deadline, self._fire, key)
    
    def _fire(self, key: Hashable) -> None:
        self._timers.pop(key, None)
        self._deadlines.pop(key, None)
        self.add(key)
    
    def _cancel_timer(self, key: Hashable) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._deadlines.pop(key, None)
    
    async def get(self) -> Hashable:
        """
        Wait for the next key and mark it as being processed.
        
        Every key returned must be handed back with done().
        """
        while True:
            if self._shutting_down:
                raise ShutDown()
            key = await self._queue.get()
            if key is None:
                # Wake-up sentinel from shutdown()
                continue
            if key not in self._dirty:
                # Forgotten while waiting in the queue
                continue
            if key in self._processing:
                # Stale entry; done() re-queues the key
                continue
            self._dirty.discard(key)
            self._processing.add(key)
            return key
    
    def done(self, key: Hashable) -> None:
        """Mark a key as processed, re-queueing it if it was added meanwhile."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._queue.put_nowait(key)
    
    def forget(self, key: Hashable) -> None:
        """Drop any pending or scheduled work for a key."""
        self._cancel_timer(key)
        self._dirty.discard(key)
    
    def scheduled_delay(self, key: Hashable) -> Optional[float]:
        """Seconds until a delayed add for the key fires, or None."""
        deadline = self._deadlines.get(key)
        if deadline is None:
            return None
        return max(0.0, deadline - asyncio.get_running_loop().time())
    
    def shutdown(self, workers: int = 1) -> None:
        """Stop handing out keys and cancel all scheduled adds."""
        self._shutting_down = True
        for key in list(self._timers):
            self._cancel_timer(key)
        for _ in range(workers):
            self._queue.put_nowait(None)
        logger.info("Work queue shut down", pending=len(self._dirty))
