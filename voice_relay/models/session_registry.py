"""
Session state management for live voice connections.

This module provides the SessionRegistry class, the process-wide mapping from
session identifiers to Session objects. Every access to live sessions goes
through it: sessions are created when a client connects, looked up by the
handlers, and removed once the session has been finalized.
"""

import logging
from typing import Dict, Optional

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.session import Session
from voice_relay.models.tenant import TenantContext

logger = logging.getLogger(LOGGER_NAME)


class SessionRegistry:
    """
    Registry of active voice sessions.

    All sessions live on one event loop and each session is only mutated by
    its own connection, so plain dict operations are enough. Only live
    sessions are kept; a finalized session leaves nothing behind.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self.active_sessions: Dict[str, Session] = {}

    def create(self, session_id: str, tenant: TenantContext) -> Session:
        """
        Create and register a new session.

        Args:
            session_id: Unique identifier generated at connect time
            tenant: The resolved tenant for the connection

        Returns:
            The new Session

        Raises:
            ValueError: If a live session already has this identifier
        """
        if session_id in self.active_sessions:
            raise ValueError(f"Session id already active: {session_id}")
        session = Session(session_id, tenant)
        self.active_sessions[session_id] = session
        logger.debug(f"Session registered: {session_id} ({len(self.active_sessions)} active)")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        """
        Get an active session by its ID.

        Returns:
            The Session, or None if it does not exist or was already finalized
        """
        return self.active_sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        """
        Remove a session from the registry.

        Returns:
            The removed Session, or None if it was not registered. Only the
            caller that receives the Session should finalize it.
        """
        session = self.active_sessions.pop(session_id, None)
        if session is not None:
            logger.debug(f"Session removed: {session_id} ({len(self.active_sessions)} active)")
        return session

    def all(self) -> Dict[str, Session]:
        """Get a snapshot of all active sessions."""
        return dict(self.active_sessions)

    def __len__(self) -> int:
        return len(self.active_sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.active_sessions
