"""
Verrou par session (asyncio.Lock) pour sérialiser confirmation et matérialisation.
Deux requêtes concurrentes pour le même session_id (retry réseau, webhook + navigateur)
s'exécutent l'une après l'autre; des sessions différentes ne se bloquent jamais.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict
import asyncio


class SessionLatch:
    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._waiters[session_id] = self._waiters.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[session_id] -= 1
            # Libère le verrou quand plus personne ne l'attend
            if self._waiters[session_id] == 0:
                self._waiters.pop(session_id, None)
                self._locks.pop(session_id, None)

    def is_held(self, session_id: str) -> bool:
        return session_id in self._locks

    def active(self) -> int:
        return len(self._locks)
