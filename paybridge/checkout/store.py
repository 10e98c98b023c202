"""
Stockage des sessions de checkout.
- SessionStore: interface (get/put/update/remove/values) pour pouvoir brancher un backend durable.
- InMemorySessionStore: implémentation par défaut, durée de vie = processus.
Une session est écrite une seule fois (put); ensuite seules les transitions passent par update.
"""
import logging
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .errors import DuplicateSessionError, SessionNotFoundError
from .models import CheckoutSession

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    def get(self, session_id: str) -> Optional[CheckoutSession]: ...

    def put(self, session: CheckoutSession) -> None: ...

    def update(self, session: CheckoutSession) -> None: ...

    def remove(self, session_id: str) -> Optional[CheckoutSession]: ...

    def values(self) -> List[CheckoutSession]: ...


class InMemorySessionStore:
    def __init__(self) -> None:
        self._sessions: Dict[str, CheckoutSession] = {}

    def get(self, session_id: str) -> Optional[CheckoutSession]:
        return self._sessions.get(session_id)

    def put(self, session: CheckoutSession) -> None:
        if session.session_id in self._sessions:
            raise DuplicateSessionError(f"Session déjà enregistrée: {session.session_id}")
        self._sessions[session.session_id] = session
        logger.info("store.put session_id=%s order_ref=%s", session.session_id, session.order_reference)

    def update(self, session: CheckoutSession) -> None:
        if session.session_id not in self._sessions:
            raise SessionNotFoundError(f"Session inconnue: {session.session_id}")
        self._sessions[session.session_id] = session

    def remove(self, session_id: str) -> Optional[CheckoutSession]:
        return self._sessions.pop(session_id, None)

    def values(self) -> List[CheckoutSession]:
        return list(self._sessions.values())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
