"""
Gate queue for posts that carry several sources.

Each source gets its own GateSession; the post may be shared only once
every session allows it.
"""

from __future__ import annotations

from loguru import logger

from .session import GateSession


class GateQueue:
    """Ordered set of gate sessions for one composer draft."""

    def __init__(self, sessions: list[GateSession] | None = None):
        self.sessions: list[GateSession] = []
        self.current_index = 0
        self.active = False
        for session in sessions or []:
            self.add(session)

    def add(self, session: GateSession) -> None:
        if any(s.article_id == session.article_id for s in self.sessions):
            raise ValueError(f"Source {session.article_id!r} is already queued")
        self.sessions.append(session)

    def remove(self, article_id: str) -> bool:
        """Drop a source (e.g. its link was deleted from the draft). Closes its session."""
        for index, session in enumerate(self.sessions):
            if session.article_id == article_id:
                session.close()
                del self.sessions[index]
                if self.current_index >= len(self.sessions):
                    self.current_index = max(0, len(self.sessions) - 1)
                return True
        return False

    @property
    def current(self) -> GateSession | None:
        if not self.sessions:
            return None
        return self.sessions[self.current_index]

    def start(self) -> GateSession | None:
        """Activate the queue on the first source that still blocks sharing."""
        for index, session in enumerate(self.sessions):
            if not session.can_share():
                self.current_index = index
                self.active = True
                logger.debug(f"Gate queue started on {session.article_id}")
                return session
        return None

    def next_pending(self) -> GateSession | None:
        """Advance to the next source after the current one that still blocks sharing."""
        for index in range(self.current_index + 1, len(self.sessions)):
            if not self.sessions[index].can_share():
                self.current_index = index
                return self.sessions[index]
        return None

    @property
    def pending(self) -> list[GateSession]:
        return [s for s in self.sessions if not s.can_share()]

    @property
    def all_passed(self) -> bool:
        return bool(self.sessions) and not self.pending

    def can_share(self) -> bool:
        return self.all_passed

    def close(self) -> None:
        for session in self.sessions:
            session.close()
        self.active = False
