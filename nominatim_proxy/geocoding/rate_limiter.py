"""
Global rate limiter for outbound Nominatim requests.

A single lock is the single queue for all upstream calls. The lock is held
while sleeping off the minimum interval so that no other request can take the
slot meant for the one currently waiting; the delay and the timestamp update
therefore happen atomically with respect to every other caller.

Waiting happens on the event loop, so requests that never need a permit
(cache hits) are not held up by the queue.
"""
import time
import asyncio
import logging

# Get logger
logger = logging.getLogger(__name__)


class RateLimiter:

    def __init__(self):
        # asyncio.Lock wakes its waiters in FIFO order
        self._lock = asyncio.Lock()
        # Monotonic timestamp (seconds) of the last granted permit
        self._last_granted_at = None

    async def await_permit(self, min_interval_ms, max_wait_ms) -> bool:
        """
        Wait until this caller may hit the upstream API, or give up.

        Enforces at least `min_interval_ms` between two granted permits.
        Time spent queueing for the lock counts against `max_wait_ms`; when
        the budget cannot cover the remaining delay the call is rejected
        right away so the service fails fast under load.
        """
        enqueued_at = time.monotonic()

        # A zero timeout cancels even an uncontended acquire on some Python versions
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=max(max_wait_ms, 1) / 1000)
        except asyncio.TimeoutError:
            logger.debug(f"Gave up waiting for the rate limiter after {max_wait_ms} ms")
            return False

        try:
            now = time.monotonic()

            waited_for_lock_ms = int((now - enqueued_at) * 1000)
            remaining_wait_ms = max_wait_ms - waited_for_lock_ms

            if remaining_wait_ms < 0:
                return False

            if self._last_granted_at is None:
                required_delay_ms = 0
            else:
                elapsed_ms = (now - self._last_granted_at) * 1000
                required_delay_ms = max(0, min_interval_ms - elapsed_ms)

            if required_delay_ms > remaining_wait_ms:
                return False

            # Still holding the lock, nobody can pass ahead of us
            if required_delay_ms > 0:
                await asyncio.sleep(required_delay_ms / 1000)

            self._last_granted_at = time.monotonic()
            return True
        finally:
            self._lock.release()

    async def reset_for_tests(self):
        async with self._lock:
            self._last_granted_at = None
