"""
SQLAlchemy models for Unswachh
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Float, String, Text,
    DateTime, Index, Enum as SQLEnum
)
from sqlalchemy.orm import declarative_base

from unswachh.crowdsource.report_store import Report, ReportStatus

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportRecord(Base):
    """
    Cleanliness report row.

    vote_count is only ever changed by an in-database increment.
    """
    __tablename__ = "reports"

    id = Column(String(32), primary_key=True)

    # Report details
    title = Column(String(200), nullable=False)
    description = Column(Text)
    image_url = Column(String(500), nullable=False)
    location_name = Column(String(500))
    share_url = Column(String(500))

    # Location
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    # Moderation and voting
    status = Column(
        SQLEnum(ReportStatus, values_callable=lambda e: [m.value for m in e], name="report_status"),
        nullable=False,
        default=ReportStatus.IN_REVIEW,
    )
    vote_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_report_status_created", status, created_at),
        Index("idx_report_lat_lon", latitude, longitude),
    )

    def __repr__(self):
        return f"<ReportRecord({self.id}, status={self.status}, votes={self.vote_count})>"

    def to_report(self) -> Report:
        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            # SQLite drops the offset
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Report(
            id=self.id,
            title=self.title,
            description=self.description,
            image_url=self.image_url,
            location_name=self.location_name,
            latitude=self.latitude,
            longitude=self.longitude,
            status=self.status,
            vote_count=self.vote_count,
            created_at=created_at,
            share_url=self.share_url,
        )


class SiteCounter(Base):
    """Named counters such as public map views."""
    __tablename__ = "site_counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<SiteCounter({self.name}={self.value})>"
