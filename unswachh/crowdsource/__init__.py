"""
Unswachh - Crowdsource Module
Report submission, moderation and community voting.
"""

from unswachh.crowdsource.report_store import (
    Report,
    NewReport,
    ReportStatus,
    ReportStore,
    ReportFeed,
    InMemoryReportStore,
)
from unswachh.crowdsource.duplicates import DuplicateGuard
from unswachh.crowdsource.geolocation import (
    GeoVerifier,
    PositionProvider,
    DevicePosition,
)
from unswachh.crowdsource.moderation import (
    ModerationEngine,
    AdminGate,
    PasswordAdminGate,
    AdminSession,
)
from unswachh.crowdsource.votes import (
    VoteLedger,
    VoteChoice,
    VoteEffect,
    InMemoryVoteBook,
    JsonVoteBook,
)
from unswachh.crowdsource.submission import (
    ReportSubmissionPipeline,
    ReportDraft,
)
from unswachh.crowdsource.regions import group_by_region, region_of

__all__ = [
    # Store
    "Report",
    "NewReport",
    "ReportStatus",
    "ReportStore",
    "ReportFeed",
    "InMemoryReportStore",
    # Submission
    "DuplicateGuard",
    "GeoVerifier",
    "PositionProvider",
    "DevicePosition",
    "ReportSubmissionPipeline",
    "ReportDraft",
    # Moderation
    "ModerationEngine",
    "AdminGate",
    "PasswordAdminGate",
    "AdminSession",
    # Voting
    "VoteLedger",
    "VoteChoice",
    "VoteEffect",
    "InMemoryVoteBook",
    "JsonVoteBook",
    # Regions
    "group_by_region",
    "region_of",
]
