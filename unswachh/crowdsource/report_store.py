"""
Report store for crowdsourced cleanliness reports
Owns report records, their moderation status and vote counters
"""

import asyncio
import dataclasses
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any, Set
from dataclasses import dataclass
from enum import Enum

from unswachh.core.constants import UNKNOWN_LOCATION
from unswachh.core.exceptions import ReportNotFound
from unswachh.core.geo_utils import Coordinate, format_coordinates
from unswachh.crowdsource.links import directions_link, map_link

logger = logging.getLogger(__name__)


class ReportStatus(str, Enum):
    """Moderation status of a report."""
    IN_REVIEW = "in-review"
    APPROVED = "approved"


@dataclass(frozen=True)
class NewReport:
    """Fields supplied by the submitter; the store assigns the rest."""
    title: str
    image_url: str
    latitude: float
    longitude: float
    description: Optional[str] = None
    location_name: Optional[str] = None


@dataclass
class Report:
    """
    Cleanliness issue reported by a member of the public.

    Created in review; only moderation changes the status and only the
    vote ledger changes the vote count.
    """
    id: str
    title: str
    image_url: str
    latitude: float
    longitude: float
    created_at: datetime

    description: Optional[str] = None
    location_name: Optional[str] = None
    status: ReportStatus = ReportStatus.IN_REVIEW
    vote_count: int = 0
    share_url: Optional[str] = None

    @property
    def display_location(self) -> str:
        return self.location_name or UNKNOWN_LOCATION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "location_name": self.display_location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status.value,
            "vote_count": self.vote_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "share_url": self.share_url,
            "directions_url": directions_link(self.latitude, self.longitude),
        }


class ReportFeed:
    """
    Live subscription to the reports with a given status.

    Use as an async context manager; iterating yields the complete
    current set as a list, first on entry and then after every change.
    Leaving the context unsubscribes. Iterating again starts with a
    fresh snapshot.

        async with store.watch(ReportStatus.APPROVED) as feed:
            async for reports in feed:
                ...
    """

    def __init__(self, store: "ReportStore", status: Optional[ReportStatus] = None):
        self._store = store
        self.status = status
        self._changed = asyncio.Event()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def __aenter__(self) -> "ReportFeed":
        self._store._feeds.add(self)
        self._open = True
        self._changed.set()
        logger.debug(f"Feed opened (status={self.status})")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Unsubscribe; pending iterations finish."""
        self._store._feeds.discard(self)
        self._open = False
        self._changed.set()

    def notify(self) -> None:
        self._changed.set()

    def __aiter__(self):
        if not self._open:
            raise RuntimeError("Feed is closed; open it with 'async with store.watch(...)'")
        self._changed.set()
        return self._snapshots()

    async def _snapshots(self):
        last: Optional[List[Report]] = None
        while self._open:
            await self._changed.wait()
            self._changed.clear()
            if not self._open:
                return
            snapshot = await self._store.list(self.status)
            # Changes outside the watched set leave it untouched
            if snapshot != last:
                last = snapshot
                yield snapshot


class ReportStore:
    """
    Persisted collection of reports.

    Subclasses implement storage; this class owns the feed bookkeeping.
    Vote counters must be updated with an atomic increment, never by
    writing back a value read earlier.
    """

    def __init__(self, share_base_url: Optional[str] = None):
        self.share_base_url = share_base_url
        self._feeds: Set[ReportFeed] = set()

    def watch(self, status: Optional[ReportStatus] = None) -> ReportFeed:
        """Subscribe to full snapshots of the reports with the given status."""
        return ReportFeed(self, status)

    def _publish(self) -> None:
        for feed in list(self._feeds):
            feed.notify()

    def _share_url(self, report_id: str, latitude: float, longitude: float) -> Optional[str]:
        if not self.share_base_url:
            return None
        return map_link(self.share_base_url, latitude, longitude, report_id=report_id)

    async def create(self, new_report: NewReport) -> Report:
        raise NotImplementedError

    async def get(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    async def list(self, status: Optional[ReportStatus] = None) -> List[Report]:
        """Reports newest first, optionally filtered by status."""
        raise NotImplementedError

    async def candidates_near(self, coordinate: Coordinate, radius_m: float) -> List[Report]:
        """
        Reports that may lie within radius_m of the coordinate.

        May return more than the exact set (every report is always a
        valid answer) but never fewer; status is not filtered.
        """
        return await self.list()

    async def set_status(self, report_id: str, status: ReportStatus) -> Report:
        raise NotImplementedError

    async def increment_votes(self, report_id: str, delta: int) -> int:
        """Atomically add delta to the vote counter; returns the new count."""
        raise NotImplementedError

    async def delete(self, report_id: str) -> None:
        raise NotImplementedError

    async def increment_views(self) -> int:
        """Atomically count one public map view; returns the total."""
        raise NotImplementedError


def _check_transition(report: Report, status: ReportStatus) -> None:
    if report.status == ReportStatus.APPROVED and status != ReportStatus.APPROVED:
        raise ValueError(f"Report {report.id} is approved and cannot return to {status.value}")


class InMemoryReportStore(ReportStore):
    """
    Report store held in process memory.

    Every operation completes without awaiting, so each one is atomic
    with respect to other coroutines on the event loop.
    """

    def __init__(self, share_base_url: Optional[str] = None):
        super().__init__(share_base_url)
        self._reports: Dict[str, Report] = {}
        self._last_created: Optional[datetime] = None
        self._views = 0

        logger.info("InMemoryReportStore initialized")

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    async def create(self, new_report: NewReport) -> Report:
        report_id = uuid.uuid4().hex

        report = Report(
            id=report_id,
            title=new_report.title,
            description=new_report.description,
            image_url=new_report.image_url,
            location_name=new_report.location_name,
            latitude=new_report.latitude,
            longitude=new_report.longitude,
            created_at=self._next_timestamp(),
            share_url=self._share_url(report_id, new_report.latitude, new_report.longitude),
        )
        self._reports[report_id] = report

        logger.info(f"Report created: {report_id} at ({format_coordinates(report.latitude, report.longitude)})")
        self._publish()

        return dataclasses.replace(report)

    async def get(self, report_id: str) -> Optional[Report]:
        report = self._reports.get(report_id)
        return dataclasses.replace(report) if report else None

    async def list(self, status: Optional[ReportStatus] = None) -> List[Report]:
        reports = [
            dataclasses.replace(r) for r in self._reports.values()
            if status is None or r.status == status
        ]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports

    async def set_status(self, report_id: str, status: ReportStatus) -> Report:
        report = self._reports.get(report_id)
        if report is None:
            raise ReportNotFound(report_id)

        _check_transition(report, status)
        if report.status != status:
            old_status = report.status
            report.status = status
            logger.info(f"Report {report_id} status: {old_status.value} -> {status.value}")
            self._publish()

        return dataclasses.replace(report)

    async def increment_votes(self, report_id: str, delta: int) -> int:
        report = self._reports.get(report_id)
        if report is None:
            raise ReportNotFound(report_id)

        report.vote_count += delta
        self._publish()
        return report.vote_count

    async def delete(self, report_id: str) -> None:
        if self._reports.pop(report_id, None) is None:
            raise ReportNotFound(report_id)

        logger.info(f"Report {report_id} deleted")
        self._publish()

    async def increment_views(self) -> int:
        self._views += 1
        return self._views
