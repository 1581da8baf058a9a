"""
Report submission pipeline
Verified location -> duplicate check -> image upload -> geocode -> create
"""

import logging
from dataclasses import dataclass
from typing import Optional

from unswachh.core.constants import LOCATION_UNAVAILABLE
from unswachh.core.exceptions import (
    DuplicateNearby,
    InvalidReport,
    MissingImage,
    MissingLocation,
    PersistenceFailed,
    UnswachhError,
    UploadFailed,
)
from unswachh.core.geo_utils import VerifiedCoordinate
from unswachh.crowdsource.duplicates import DuplicateGuard
from unswachh.crowdsource.report_store import NewReport, Report, ReportStore
from unswachh.ingestion.geocoding_client import ReverseGeocoder
from unswachh.ingestion.image_pipeline import ImagePipeline

logger = logging.getLogger(__name__)


@dataclass
class ReportDraft:
    """Candidate report as filled in by the submitter."""
    title: str
    image: Optional[bytes] = None
    coordinates: Optional[VerifiedCoordinate] = None
    description: Optional[str] = None


class ReportSubmissionPipeline:
    """
    Turns a draft into a stored report in review.

    Steps run strictly in order and stop at the first failure. Nothing is
    written before the final create, so a failed submission leaves no
    partial record behind.
    """

    def __init__(
        self,
        store: ReportStore,
        images: ImagePipeline,
        geocoder: ReverseGeocoder,
        guard: Optional[DuplicateGuard] = None
    ):
        """
        Initialize pipeline.

        Args:
            store: Report store the new report is created in
            images: Image normalization and upload
            geocoder: Location label lookup
            guard: Duplicate check (default 50 m radius)
        """
        self.store = store
        self.images = images
        self.geocoder = geocoder
        self.guard = guard or DuplicateGuard()

    async def submit(self, draft: ReportDraft) -> Report:
        """
        Submit a report.

        Returns:
            Created report with status in-review and vote count 0

        Raises:
            MissingLocation, MissingImage, InvalidReport, DuplicateNearby,
            UploadFailed, PersistenceFailed
        """
        coordinate = draft.coordinates
        if not isinstance(coordinate, VerifiedCoordinate):
            raise MissingLocation()
        if not draft.image:
            raise MissingImage()

        title = (draft.title or "").strip()
        if not title:
            raise InvalidReport("Please give the report a title.")

        # 1. Proximity check against every report, any status
        try:
            existing = await self.store.candidates_near(coordinate, self.guard.radius_m)
        except PersistenceFailed:
            raise
        except Exception as e:
            logger.error(f"Failed to load existing reports: {e}")
            raise PersistenceFailed("Failed to submit report.") from e

        duplicate = self.guard.find_duplicate(coordinate, existing)
        if duplicate:
            report, distance = duplicate
            logger.info(
                f"Submission at ({coordinate.latitude}, {coordinate.longitude}) "
                f"rejected: {distance:.1f} m from {report.id}"
            )
            raise DuplicateNearby(existing_id=report.id, distance_m=distance)

        nearest = self.guard.find_nearest(coordinate, existing)
        if nearest:
            logger.debug(f"Nearest existing report {nearest[0].id} is {nearest[1]:.1f} m away")

        # 2. Compress and upload
        try:
            image_url = await self.images.process(draft.image)
        except Exception as e:
            logger.error(f"Image upload failed: {e}")
            message = e.message if isinstance(e, UnswachhError) else None
            raise UploadFailed(message) from e

        # 3. Location label; failures only degrade the label
        try:
            location_name = await self.geocoder.label_for(coordinate.latitude, coordinate.longitude)
        except Exception as e:
            logger.warning(f"Location label unavailable: {e}")
            location_name = LOCATION_UNAVAILABLE

        # 4. Save
        try:
            report = await self.store.create(NewReport(
                title=title,
                description=(draft.description or "").strip() or None,
                image_url=image_url,
                location_name=location_name,
                latitude=coordinate.latitude,
                longitude=coordinate.longitude,
            ))
        except PersistenceFailed:
            raise
        except Exception as e:
            logger.error(f"Failed to save report: {e}")
            raise PersistenceFailed("Failed to submit report.") from e

        logger.info(f"Report {report.id} submitted for review")
        return report
