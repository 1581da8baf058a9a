"""
Unswachh - Error Taxonomy
Domain errors raised by the report lifecycle.

Each error carries a user-facing message and the HTTP status the API
layer answers with.
"""

from typing import Optional


class UnswachhError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "Something went wrong."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# =============================================================================
# SUBMISSION
# =============================================================================

class SubmissionError(UnswachhError):
    """A report submission was rejected or failed."""


class MissingLocation(SubmissionError):
    status_code = 400
    default_message = "Verified location is required. Please use 'Use My Location'."


class MissingImage(SubmissionError):
    status_code = 400
    default_message = "Please provide an image of the area."


class InvalidReport(SubmissionError):
    status_code = 422
    default_message = "Report is missing required information."


class DuplicateNearby(SubmissionError):
    status_code = 409
    default_message = (
        "An issue has already been reported near this location. "
        "Please check the map for existing reports in this area."
    )

    def __init__(
        self,
        existing_id: Optional[str] = None,
        distance_m: Optional[float] = None,
        message: Optional[str] = None
    ):
        super().__init__(message)
        self.existing_id = existing_id
        self.distance_m = distance_m


class UploadFailed(SubmissionError):
    status_code = 502
    default_message = "Failed to upload the image."


class PersistenceFailed(SubmissionError):
    status_code = 503
    default_message = "Failed to save changes. Please try again."


# =============================================================================
# GEOLOCATION
# =============================================================================

class GeoError(UnswachhError):
    """Device position could not be verified."""
    status_code = 400


class GeoDenied(GeoError):
    default_message = "Could not fetch location. Please enable permissions."


class GeoUnsupported(GeoError):
    default_message = "Geolocation is not supported by your browser."


# =============================================================================
# MODERATION AND VOTING
# =============================================================================

class ModerationError(UnswachhError):
    """Admin-only action failed."""


class Unauthorized(ModerationError):
    status_code = 401
    default_message = "Incorrect password."


class ReportNotFound(UnswachhError):
    status_code = 404
    default_message = "Report not found."

    def __init__(self, report_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(message)
        self.report_id = report_id


class ReportNotVotable(UnswachhError):
    status_code = 409
    default_message = "Only approved reports can be voted on."


# =============================================================================
# COLLABORATORS
# =============================================================================

class ImageProcessingError(UnswachhError):
    """Raw image could not be decoded or re-encoded."""
    status_code = 400
    default_message = "The uploaded file is not a readable image."


class ImageUploadError(UnswachhError):
    """Image host rejected or failed the upload."""
    status_code = 502
    default_message = "Image host is unavailable."
