"""
Session registry for a load-test run.

Holds at most one authenticated session per identity. The registry is
owned by the run and handed to the virtual users explicitly.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from client.surface import UserSession
from scenario_errors import AuthenticationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """
    Who a session logs in as.

    `slot` tells apart virtual users that share one credential (or the
    same Windows account).
    """
    user_name: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False, compare=False)
    windows_auth: bool = False
    slot: int = 0

    def __str__(self) -> str:
        who = "windows" if self.windows_auth else (self.user_name or "?")
        return f"{who}#{self.slot}"


SessionFactory = Callable[[Identity], UserSession]


class SessionRegistry:
    """Creates sessions lazily and caches one per identity."""

    def __init__(self, factory: SessionFactory):
        self.factory = factory
        self._sessions: dict[Identity, UserSession] = {}
        self._identity_locks: dict[Identity, threading.Lock] = {}
        self._lock = threading.Lock()

    def _identity_lock(self, identity: Identity) -> threading.Lock:
        with self._lock:
            return self._identity_locks.setdefault(identity, threading.Lock())

    def acquire(self, identity: Identity) -> UserSession:
        """
        Return the session for `identity`, logging in on first use.

        Raises:
            AuthenticationFailure: If the login is rejected (not retried)
        """
        with self._identity_lock(identity):
            with self._lock:
                session = self._sessions.get(identity)
            if session is not None:
                return session

            logger.info(f"Opening session for {identity}")
            try:
                session = self.factory(identity)
            except AuthenticationFailure:
                logger.error(f"Authentication failed for {identity}")
                raise

            with self._lock:
                self._sessions[identity] = session
            return session

    def release(self, identity: Identity) -> None:
        """Close and forget one session (best effort)."""
        with self._lock:
            session = self._sessions.pop(identity, None)
        if session is not None:
            self._close(identity, session)

    def close_all(self) -> None:
        """
        Close every cached session exactly once.

        Sessions may still have forms open from abandoned iterations;
        close errors are logged and never raised.
        """
        with self._lock:
            sessions = list(self._sessions.items())
            self._sessions.clear()

        for identity, session in sessions:
            self._close(identity, session)

        if sessions:
            logger.info(f"Closed {len(sessions)} session(s)")

    def _close(self, identity: Identity, session: UserSession) -> None:
        try:
            session.close()
        except Exception as e:
            logger.warning(f"Could not close session for {identity}: {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __enter__(self) -> "SessionRegistry":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close_all()
