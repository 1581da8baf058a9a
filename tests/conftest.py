"""
Pytest configuration and fixtures
"""
import asyncio
import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unswachh.core.geo_utils import VerifiedCoordinate
from unswachh.crowdsource.report_store import InMemoryReportStore, NewReport, ReportStatus
from unswachh.crowdsource.submission import ReportSubmissionPipeline, ReportDraft


# Bengaluru, MG Road area
BASE_LAT = 12.9716
BASE_LON = 77.5946


class FakeImagePipeline:
    """Records uploads and returns a fixed URL, or raises the configured error."""

    def __init__(self, url="https://res.cloudinary.com/demo/image/upload/report.jpg", error=None):
        self.url = url
        self.error = error
        self.calls = []

    async def process(self, raw):
        self.calls.append(raw)
        if self.error:
            raise self.error
        return self.url


class FakeGeocoder:
    """Returns a fixed label, or raises the configured error."""

    def __init__(self, label="MG Road, Shanthala Nagar, Bengaluru, Karnataka", error=None):
        self.label = label
        self.error = error
        self.calls = []

    async def label_for(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.error:
            raise self.error
        return self.label


def make_new_report(latitude=BASE_LAT, longitude=BASE_LON, title="Garbage pile", **kwargs):
    return NewReport(
        title=title,
        image_url=kwargs.pop("image_url", "https://img.example/1.jpg"),
        latitude=latitude,
        longitude=longitude,
        **kwargs
    )


@pytest.fixture
def store():
    """Empty in-memory report store."""
    return InMemoryReportStore()


@pytest.fixture
def fake_images():
    return FakeImagePipeline()


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def pipeline(store, fake_images, fake_geocoder):
    """Submission pipeline wired to fakes."""
    return ReportSubmissionPipeline(store=store, images=fake_images, geocoder=fake_geocoder)


@pytest.fixture
def verified_location():
    return VerifiedCoordinate(latitude=BASE_LAT, longitude=BASE_LON, accuracy_m=8.0)


@pytest.fixture
def draft(verified_location):
    return ReportDraft(
        title="Overflowing bin",
        description="Bin near the bus stop has not been cleared for days",
        image=b"\xff\xd8\xff\xe0fake-jpeg",
        coordinates=verified_location,
    )


@pytest.fixture
def approved_report(store):
    """A report that has passed moderation."""
    async def _create():
        report = await store.create(make_new_report())
        return await store.set_status(report.id, ReportStatus.APPROVED)

    return asyncio.run(_create())
