"""
Tests for the report submission pipeline
"""
import asyncio
import logging
import pytest
from dataclasses import replace
from unittest.mock import AsyncMock

import sys
sys.path.insert(0, '.')

from conftest import BASE_LAT, BASE_LON, FakeGeocoder, FakeImagePipeline, make_new_report
from unswachh.core.constants import LOCATION_UNAVAILABLE
from unswachh.core.exceptions import (
    DuplicateNearby,
    ImageUploadError,
    InvalidReport,
    MissingImage,
    MissingLocation,
    PersistenceFailed,
    UploadFailed,
)
from unswachh.core.geo_utils import Coordinate, VerifiedCoordinate, destination_point
from unswachh.crowdsource.report_store import ReportStatus
from unswachh.crowdsource.submission import ReportSubmissionPipeline


def _submit(pipeline, draft):
    return asyncio.run(pipeline.submit(draft))


def _verified_at(distance_m, bearing=0.0):
    lat, lon = destination_point(BASE_LAT, BASE_LON, distance_m, bearing)
    return VerifiedCoordinate(latitude=lat, longitude=lon, accuracy_m=10.0)


class TestSubmissionValidation:
    """Test suite for rejected drafts."""

    def test_missing_location(self, pipeline, draft, fake_images):
        with pytest.raises(MissingLocation):
            _submit(pipeline, replace(draft, coordinates=None))
        assert fake_images.calls == []

    def test_missing_location_wins_over_other_problems(self, pipeline, draft):
        """No image and no title still reports the missing location first."""
        with pytest.raises(MissingLocation):
            _submit(pipeline, replace(draft, coordinates=None, image=None, title=""))

    def test_unverified_coordinate_rejected(self, pipeline, draft, store):
        """A map-click coordinate is not a device fix."""
        clicked = Coordinate(BASE_LAT, BASE_LON)

        with pytest.raises(MissingLocation):
            _submit(pipeline, replace(draft, coordinates=clicked))
        assert asyncio.run(store.list()) == []

    @pytest.mark.parametrize("image", [None, b""])
    def test_missing_image(self, pipeline, draft, image):
        with pytest.raises(MissingImage):
            _submit(pipeline, replace(draft, image=image))

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title(self, pipeline, draft, title):
        with pytest.raises(InvalidReport):
            _submit(pipeline, replace(draft, title=title))


class TestDuplicateRejection:
    """Test suite for the proximity check during submission."""

    def test_duplicate_of_approved_report(self, pipeline, draft, approved_report, fake_images):
        draft = replace(draft, coordinates=_verified_at(33))

        with pytest.raises(DuplicateNearby) as exc_info:
            _submit(pipeline, draft)

        assert exc_info.value.existing_id == approved_report.id
        assert exc_info.value.distance_m == pytest.approx(33, abs=0.5)
        assert exc_info.value.status_code == 409
        assert fake_images.calls == []

    def test_duplicate_of_report_in_review(self, pipeline, draft, store):
        pending = asyncio.run(store.create(make_new_report()))

        with pytest.raises(DuplicateNearby) as exc_info:
            _submit(pipeline, replace(draft, coordinates=_verified_at(10, bearing=90)))

        assert exc_info.value.existing_id == pending.id
        assert len(asyncio.run(store.list())) == 1

    def test_distant_report_accepted(self, pipeline, draft, approved_report, store):
        report = _submit(pipeline, replace(draft, coordinates=_verified_at(5000)))

        assert report.status == ReportStatus.IN_REVIEW
        assert len(asyncio.run(store.list())) == 2

    def test_store_failure_while_checking(self, pipeline, draft, store):
        store.candidates_near = AsyncMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(PersistenceFailed):
            _submit(pipeline, draft)


class TestSubmissionPipeline:
    """Test suite for successful and partially failing submissions."""

    def test_successful_submission(self, pipeline, draft, fake_images, fake_geocoder):
        report = _submit(pipeline, draft)

        assert report.status == ReportStatus.IN_REVIEW
        assert report.vote_count == 0
        assert report.title == "Overflowing bin"
        assert report.image_url == fake_images.url
        assert report.location_name == fake_geocoder.label
        assert (report.latitude, report.longitude) == (BASE_LAT, BASE_LON)
        assert fake_images.calls == [draft.image]
        assert fake_geocoder.calls == [(BASE_LAT, BASE_LON)]

    def test_title_and_description_trimmed(self, pipeline, draft):
        report = _submit(pipeline, replace(draft, title="  Dump  ", description="   "))

        assert report.title == "Dump"
        assert report.description is None

    def test_upload_failure_leaves_no_record(self, store, draft, fake_geocoder):
        images = FakeImagePipeline(error=ImageUploadError("Cloudinary credentials missing."))
        pipeline = ReportSubmissionPipeline(store=store, images=images, geocoder=fake_geocoder)

        with pytest.raises(UploadFailed) as exc_info:
            _submit(pipeline, draft)

        assert exc_info.value.message == "Cloudinary credentials missing."
        assert fake_geocoder.calls == []
        assert asyncio.run(store.list()) == []

    def test_unexpected_upload_error(self, store, draft, fake_geocoder):
        images = FakeImagePipeline(error=ConnectionError("reset"))
        pipeline = ReportSubmissionPipeline(store=store, images=images, geocoder=fake_geocoder)

        with pytest.raises(UploadFailed) as exc_info:
            _submit(pipeline, draft)
        assert exc_info.value.message == UploadFailed.default_message

    def test_geocoder_failure_degrades_label(self, store, draft, fake_images):
        geocoder = FakeGeocoder(error=RuntimeError("service down"))
        pipeline = ReportSubmissionPipeline(store=store, images=fake_images, geocoder=geocoder)

        report = _submit(pipeline, draft)

        assert report.location_name == LOCATION_UNAVAILABLE
        assert report.display_location == LOCATION_UNAVAILABLE

    def test_persistence_failure(self, pipeline, draft, store):
        store.create = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(PersistenceFailed) as exc_info:
            _submit(pipeline, draft)
        assert exc_info.value.message == "Failed to submit report."

    def test_second_submission_same_spot_rejected(self, pipeline, draft):
        first = _submit(pipeline, draft)

        with pytest.raises(DuplicateNearby) as exc_info:
            _submit(pipeline, draft)
        assert exc_info.value.existing_id == first.id

    def test_logs_nearest_report(self, pipeline, draft, approved_report, caplog):
        """Test an accepted submission logs how far the closest report is."""
        with caplog.at_level(logging.DEBUG, logger="unswachh.crowdsource.submission"):
            _submit(pipeline, replace(draft, coordinates=_verified_at(120)))

        assert f"Nearest existing report {approved_report.id} is 120.0 m away" in caplog.text
