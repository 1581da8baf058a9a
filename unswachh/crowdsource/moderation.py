"""
Admin moderation of submitted reports
in-review -> approved, or deletion from any state
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from unswachh.core.exceptions import ReportNotFound, Unauthorized
from unswachh.crowdsource.report_store import Report, ReportStatus, ReportStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=12)


class AdminGate:
    """Decides whether a password grants admin access."""

    async def verify(self, password: str) -> bool:
        raise NotImplementedError


class PasswordAdminGate(AdminGate):
    """Compares against a single configured admin password."""

    def __init__(self, admin_password: Optional[str]):
        self._password = admin_password

    async def verify(self, password: str) -> bool:
        if not password or not self._password:
            return False
        return secrets.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))


@dataclass(frozen=True)
class AdminSession:
    """Proof of a successful admin login, passed to every moderation action."""
    token: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ModerationQueue:
    """Reports split the way the admin dashboard shows them."""
    in_review: List[Report]
    approved: List[Report]

    def to_dict(self) -> Dict[str, List[dict]]:
        return {
            "in_review": [r.to_dict() for r in self.in_review],
            "approved": [r.to_dict() for r in self.approved],
        }


class ModerationEngine:
    """
    Moderation state machine over report status.

    Transitions:
        approve: in-review -> approved (no-op when already approved)
        remove:  in-review | approved -> deleted (irreversible)

    Admin sessions expire session_ttl after login.
    """

    def __init__(
        self,
        store: ReportStore,
        gate: AdminGate,
        session_ttl: timedelta = DEFAULT_SESSION_TTL
    ):
        self.store = store
        self.gate = gate
        self.session_ttl = session_ttl
        self._sessions: Dict[str, AdminSession] = {}

    def _expired(self, session: AdminSession) -> bool:
        return datetime.now(timezone.utc) - session.started_at >= self.session_ttl

    def _prune(self) -> None:
        for token in [t for t, s in self._sessions.items() if self._expired(s)]:
            del self._sessions[token]

    async def login(self, password: str) -> AdminSession:
        """
        Open an admin session.

        Raises:
            Unauthorized: Password rejected by the gate
        """
        if not await self.gate.verify(password):
            logger.warning("Admin login rejected")
            raise Unauthorized()

        self._prune()
        session = AdminSession(token=secrets.token_urlsafe(32))
        self._sessions[session.token] = session
        logger.info("Admin session opened")
        return session

    def logout(self, session: AdminSession) -> None:
        self._sessions.pop(session.token, None)

    def session_for(self, token: Optional[str]) -> AdminSession:
        """Look up an open session by token; raises Unauthorized."""
        session = self._sessions.get(token) if token else None
        if session is None or self._expired(session):
            raise Unauthorized("Admin session required.")
        return session

    def _authorize(self, session: Optional[AdminSession]) -> None:
        if (
            session is None
            or self._sessions.get(session.token) != session
            or self._expired(session)
        ):
            raise Unauthorized("Admin session required.")

    async def approve(self, session: AdminSession, report_id: str) -> Report:
        """Approve a report; approving an approved report succeeds unchanged."""
        self._authorize(session)

        report = await self.store.get(report_id)
        if report is None:
            raise ReportNotFound(report_id)
        if report.status == ReportStatus.APPROVED:
            logger.info(f"Report {report_id} already approved")
            return report

        return await self.store.set_status(report_id, ReportStatus.APPROVED)

    async def remove(self, session: AdminSession, report_id: str) -> None:
        """Delete a report permanently, whatever its status."""
        self._authorize(session)
        await self.store.delete(report_id)

    async def queue(self, session: AdminSession) -> ModerationQueue:
        self._authorize(session)
        reports = await self.store.list()
        return ModerationQueue(
            in_review=[r for r in reports if r.status == ReportStatus.IN_REVIEW],
            approved=[r for r in reports if r.status == ReportStatus.APPROVED],
        )
