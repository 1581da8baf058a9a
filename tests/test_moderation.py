"""
Tests for admin moderation
"""
import asyncio
from dataclasses import replace
from datetime import timedelta
import pytest

import sys
sys.path.insert(0, '.')

from conftest import make_new_report
from unswachh.core.exceptions import ReportNotFound, Unauthorized
from unswachh.crowdsource.moderation import AdminSession, ModerationEngine, PasswordAdminGate
from unswachh.crowdsource.report_store import InMemoryReportStore, ReportStatus


class TestPasswordAdminGate:
    """Test suite for the admin password check."""

    def test_correct_password(self):
        assert asyncio.run(PasswordAdminGate("s3cret").verify("s3cret"))

    @pytest.mark.parametrize("password", ["", "wrong", "s3cret "])
    def test_wrong_password(self, password):
        assert not asyncio.run(PasswordAdminGate("s3cret").verify(password))

    def test_unset_password_never_authenticates(self):
        assert not asyncio.run(PasswordAdminGate(None).verify(""))
        assert not asyncio.run(PasswordAdminGate("").verify(""))


class TestModerationEngine:
    """Test suite for the moderation state machine."""

    def setup_method(self):
        """Setup test fixtures."""
        self.store = InMemoryReportStore()
        self.engine = ModerationEngine(self.store, PasswordAdminGate("s3cret"))

    def _login(self):
        return asyncio.run(self.engine.login("s3cret"))

    def _create(self):
        return asyncio.run(self.store.create(make_new_report()))

    def test_login_rejects_bad_password(self):
        with pytest.raises(Unauthorized):
            asyncio.run(self.engine.login("nope"))

    def test_approve(self):
        session = self._login()
        report = self._create()

        approved = asyncio.run(self.engine.approve(session, report.id))

        assert approved.status == ReportStatus.APPROVED
        assert asyncio.run(self.store.get(report.id)).status == ReportStatus.APPROVED

    def test_approve_is_idempotent(self):
        """Test approving twice succeeds both times."""
        session = self._login()
        report = self._create()

        first = asyncio.run(self.engine.approve(session, report.id))
        second = asyncio.run(self.engine.approve(session, report.id))

        assert first.status == second.status == ReportStatus.APPROVED

    def test_approve_missing_report(self):
        session = self._login()
        with pytest.raises(ReportNotFound):
            asyncio.run(self.engine.approve(session, "missing"))

    @pytest.mark.parametrize("approve_first", [False, True])
    def test_remove_from_any_state(self, approve_first):
        session = self._login()
        report = self._create()
        if approve_first:
            asyncio.run(self.engine.approve(session, report.id))

        asyncio.run(self.engine.remove(session, report.id))

        assert asyncio.run(self.store.get(report.id)) is None
        assert asyncio.run(self.store.list(ReportStatus.APPROVED)) == []
        assert asyncio.run(self.store.list(ReportStatus.IN_REVIEW)) == []

    def test_remove_is_irreversible(self):
        session = self._login()
        report = self._create()
        asyncio.run(self.engine.remove(session, report.id))

        with pytest.raises(ReportNotFound):
            asyncio.run(self.engine.approve(session, report.id))
        with pytest.raises(ReportNotFound):
            asyncio.run(self.engine.remove(session, report.id))

    def test_actions_require_session(self):
        report = self._create()
        forged = AdminSession(token="forged")

        with pytest.raises(Unauthorized):
            asyncio.run(self.engine.approve(forged, report.id))
        with pytest.raises(Unauthorized):
            asyncio.run(self.engine.remove(None, report.id))
        with pytest.raises(Unauthorized):
            asyncio.run(self.engine.queue(forged))

        assert asyncio.run(self.store.get(report.id)).status == ReportStatus.IN_REVIEW

    def test_logout_invalidates_session(self):
        session = self._login()
        report = self._create()
        self.engine.logout(session)

        with pytest.raises(Unauthorized):
            asyncio.run(self.engine.approve(session, report.id))

    def test_session_for_token(self):
        session = self._login()
        assert self.engine.session_for(session.token) is session
        with pytest.raises(Unauthorized):
            self.engine.session_for(None)
        with pytest.raises(Unauthorized):
            self.engine.session_for("unknown")

    def test_queue_partitions_reports(self):
        session = self._login()
        pending = self._create()
        approved = self._create()
        asyncio.run(self.engine.approve(session, approved.id))

        queue = asyncio.run(self.engine.queue(session))

        assert [r.id for r in queue.in_review] == [pending.id]
        assert [r.id for r in queue.approved] == [approved.id]
        assert set(queue.to_dict()) == {"in_review", "approved"}

    def test_session_expires(self):
        """Test a session older than the time limit is rejected and dropped."""
        engine = ModerationEngine(self.store, PasswordAdminGate("s3cret"), session_ttl=timedelta(minutes=30))
        report = self._create()
        stale = asyncio.run(engine.login("s3cret"))
        aged = replace(stale, started_at=stale.started_at - timedelta(minutes=31))
        engine._sessions[aged.token] = aged

        with pytest.raises(Unauthorized):
            asyncio.run(engine.approve(aged, report.id))
        with pytest.raises(Unauthorized):
            engine.session_for(aged.token)

        fresh = asyncio.run(engine.login("s3cret"))
        assert aged.token not in engine._sessions
        assert engine.session_for(fresh.token) is fresh
