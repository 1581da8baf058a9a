"""
Database module for Unswachh
SQLAlchemy persistence for reports and site counters
"""

from .connection import DatabaseConnection, init_db
from .models import Base, ReportRecord, SiteCounter
from .repository import SqlReportStore

__all__ = [
    "DatabaseConnection",
    "init_db",
    "Base",
    "ReportRecord",
    "SiteCounter",
    "SqlReportStore",
]
