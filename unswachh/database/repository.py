"""
SQL-backed report store
Blocking SQLAlchemy sessions run on worker threads
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from unswachh.core.exceptions import PersistenceFailed, ReportNotFound
from unswachh.core.geo_utils import Coordinate, bounding_box, format_coordinates
from unswachh.crowdsource.report_store import NewReport, Report, ReportStatus, ReportStore

from .connection import DatabaseConnection
from .models import ReportRecord, SiteCounter

logger = logging.getLogger(__name__)

T = TypeVar("T")

VIEWS_COUNTER = "views"


class SqlReportStore(ReportStore):
    """
    Report store on a relational database.

    Vote and view counters are incremented inside the database with a
    single UPDATE, so concurrent writers never lose an update.
    """

    def __init__(self, db: DatabaseConnection, share_base_url: Optional[str] = None):
        super().__init__(share_base_url)
        self.db = db

    async def _run(self, operation: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(operation)
        except SQLAlchemyError as e:
            logger.error(f"Report store operation failed: {e}")
            raise PersistenceFailed() from e

    async def create(self, new_report: NewReport) -> Report:
        report_id = uuid.uuid4().hex
        share_url = self._share_url(report_id, new_report.latitude, new_report.longitude)

        def _create() -> Report:
            with self.db.get_session() as session:
                now = datetime.now(timezone.utc)
                latest = session.execute(select(func.max(ReportRecord.created_at))).scalar()
                if latest is not None:
                    if latest.tzinfo is None:
                        latest = latest.replace(tzinfo=timezone.utc)
                    if now <= latest:
                        now = latest + timedelta(microseconds=1)

                record = ReportRecord(
                    id=report_id,
                    title=new_report.title,
                    description=new_report.description,
                    image_url=new_report.image_url,
                    location_name=new_report.location_name,
                    latitude=new_report.latitude,
                    longitude=new_report.longitude,
                    status=ReportStatus.IN_REVIEW,
                    vote_count=0,
                    created_at=now,
                    share_url=share_url,
                )
                session.add(record)
                session.flush()
                return record.to_report()

        report = await self._run(_create)
        logger.info(f"Report created: {report.id} at ({format_coordinates(report.latitude, report.longitude)})")
        self._publish()
        return report

    async def get(self, report_id: str) -> Optional[Report]:
        def _get() -> Optional[Report]:
            with self.db.get_session() as session:
                record = session.get(ReportRecord, report_id)
                return record.to_report() if record else None

        return await self._run(_get)

    async def list(self, status: Optional[ReportStatus] = None) -> List[Report]:
        def _list() -> List[Report]:
            query = select(ReportRecord).order_by(ReportRecord.created_at.desc())
            if status is not None:
                query = query.where(ReportRecord.status == status)
            with self.db.get_session() as session:
                return [r.to_report() for r in session.execute(query).scalars()]

        return await self._run(_list)

    async def candidates_near(self, coordinate: Coordinate, radius_m: float) -> List[Report]:
        # Pad the box so rounding never drops a report inside the radius
        box = bounding_box(coordinate.latitude, coordinate.longitude, radius_m * 1.1)
        if box is None:
            return await self.list()

        def _near() -> List[Report]:
            query = select(ReportRecord).where(
                ReportRecord.latitude.between(box.south, box.north),
                ReportRecord.longitude.between(box.west, box.east),
            )
            with self.db.get_session() as session:
                return [r.to_report() for r in session.execute(query).scalars()]

        return await self._run(_near)

    async def set_status(self, report_id: str, status: ReportStatus) -> Report:
        def _set_status() -> Optional[Report]:
            with self.db.get_session() as session:
                record = session.get(ReportRecord, report_id)
                if record is None:
                    return None
                if record.status == ReportStatus.APPROVED and status != ReportStatus.APPROVED:
                    raise ValueError(
                        f"Report {report_id} is approved and cannot return to {status.value}"
                    )
                if record.status != status:
                    logger.info(f"Report {report_id} status: {record.status.value} -> {status.value}")
                    record.status = status
                session.flush()
                return record.to_report()

        report = await self._run(_set_status)
        if report is None:
            raise ReportNotFound(report_id)
        self._publish()
        return report

    async def increment_votes(self, report_id: str, delta: int) -> int:
        def _increment() -> Optional[int]:
            with self.db.get_session() as session:
                result = session.execute(
                    update(ReportRecord)
                    .where(ReportRecord.id == report_id)
                    .values(vote_count=ReportRecord.vote_count + delta)
                )
                if result.rowcount == 0:
                    return None
                return session.execute(
                    select(ReportRecord.vote_count).where(ReportRecord.id == report_id)
                ).scalar_one()

        vote_count = await self._run(_increment)
        if vote_count is None:
            raise ReportNotFound(report_id)
        self._publish()
        return vote_count

    async def delete(self, report_id: str) -> None:
        def _delete() -> bool:
            with self.db.get_session() as session:
                record = session.get(ReportRecord, report_id)
                if record is None:
                    return False
                session.delete(record)
                return True

        if not await self._run(_delete):
            raise ReportNotFound(report_id)
        logger.info(f"Report {report_id} deleted")
        self._publish()

    async def increment_views(self) -> int:
        def _bump() -> int:
            with self.db.get_session() as session:
                result = session.execute(
                    update(SiteCounter)
                    .where(SiteCounter.name == VIEWS_COUNTER)
                    .values(value=SiteCounter.value + 1)
                )
                if result.rowcount == 0:
                    session.add(SiteCounter(name=VIEWS_COUNTER, value=1))
                    session.flush()
                return session.execute(
                    select(SiteCounter.value).where(SiteCounter.name == VIEWS_COUNTER)
                ).scalar_one()

        try:
            return await asyncio.to_thread(_bump)
        except IntegrityError:
            # Another writer created the counter first
            return await self._run(_bump)
        except SQLAlchemyError as e:
            logger.error(f"View counter update failed: {e}")
            raise PersistenceFailed() from e
