"""
Polling de statut sous forme de tâche asyncio annulable.
- Interroge `check()` toutes les `interval` secondes jusqu'à un statut terminal (PAID/FAILED)
  ou jusqu'à `timeout` secondes depuis le premier appel.
- Nombre d'essais borné: ceil(timeout / interval) + 1.
- Signal de fin observable: `outcome` (CONFIRMED / FAILED / TIMED_OUT / CANCELLED) et `done`.
Les erreurs transitoires de `check()` (UpstreamError) sont journalisées et comptées comme un essai.
"""
from typing import Awaitable, Callable, Optional
import asyncio
import logging
import math
import time

from .errors import PaymentTimeoutError, UpstreamError
from .state import FAILED, PAID

logger = logging.getLogger(__name__)

CONFIRMED = "CONFIRMED"
TIMED_OUT = "TIMED_OUT"
CANCELLED = "CANCELLED"

StatusCheck = Callable[[], Awaitable[str]]


class StatusPoller:
    def __init__(
        self,
        check: StatusCheck,
        *,
        interval: float = 2.0,
        timeout: float = 120.0,
        label: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval doit être > 0")
        self._check = check
        self.interval = interval
        self.timeout = timeout
        self.label = label
        self._clock = clock
        self._sleep = sleep
        self.max_attempts = int(math.ceil(timeout / interval)) + 1
        self.attempts = 0
        self.last_status: Optional[str] = None
        self.outcome: Optional[str] = None
        self.done = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def run(self) -> str:
        started: Optional[float] = None
        try:
            while True:
                if started is None:
                    started = self._clock()
                try:
                    self.last_status = await self._check()
                except UpstreamError as e:
                    logger.warning("poller.check failed label=%s attempt=%s: %s", self.label, self.attempts + 1, e)
                    self.last_status = None
                self.attempts += 1

                if self.last_status == PAID:
                    return self._finish(CONFIRMED)
                if self.last_status == FAILED:
                    return self._finish(FAILED)
                if self._expired(started):
                    raise PaymentTimeoutError(f"Aucun statut terminal après {self.timeout:.0f}s")
                await self._sleep(self.interval)
        except PaymentTimeoutError as e:
            logger.info("poller.timeout label=%s attempts=%s: %s", self.label, self.attempts, e)
            return self._finish(TIMED_OUT)
        except asyncio.CancelledError:
            self._finish(CANCELLED)
            raise

    def _expired(self, started: float) -> bool:
        return self.attempts >= self.max_attempts or (self._clock() - started) >= self.timeout

    def _finish(self, outcome: str) -> str:
        self.outcome = outcome
        self.done.set()
        logger.info("poller.done label=%s outcome=%s attempts=%s", self.label, outcome, self.attempts)
        return outcome

    def start(self) -> "asyncio.Task[str]":
        if self._task is None:
            self._task = asyncio.create_task(self.run())
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> Optional[str]:
        await self.done.wait()
        return self.outcome

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
