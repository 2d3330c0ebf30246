from __future__ import annotations
import asyncio
import heapq
import itertools
import time


class AsyncioClock:
    """Reloj real sobre el event loop. speed > 1 acelera las esperas."""

    def __init__(self, speed: float = 1.0):
        if speed <= 0:
            raise ValueError("speed must be > 0")
        self.speed = speed

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds) / self.speed)


class VirtualClock:
    """Reloj simulado: el tiempo solo avanza con `advance()`.

    Cada `sleep()` deja un futuro en un heap de timers; `advance()` los
    dispara en orden de vencimiento y deja correr a las tareas despertadas.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: list = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, fut in self._timers if not fut.done())

    async def sleep(self, seconds: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        heapq.heappush(self._timers, (self._now + max(0.0, seconds), next(self._seq), fut))
        await fut

    async def advance(self, seconds: float) -> None:
        target = self._now + seconds
        await _settle()
        while self._timers and self._timers[0][0] <= target:
            deadline, _, fut = heapq.heappop(self._timers)
            self._now = deadline
            if not fut.done():
                fut.set_result(None)
            await _settle()
        self._now = target

    async def run_until_idle(self, limit: float = 365 * 24 * 3600) -> None:
        """Avanza hasta que no quede ningún timer pendiente."""
        await _settle()
        while self.pending_timers:
            deadline = min(d for d, _, fut in self._timers if not fut.done())
            if deadline - self._now > limit:
                break
            await self.advance(deadline - self._now)


async def _settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
