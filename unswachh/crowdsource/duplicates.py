"""
Proximity duplicate detection for new reports
Blocks submissions too close to any existing report
"""

import logging
from typing import Callable, Iterable, Optional, Tuple

from unswachh.core.constants import DUPLICATE_RADIUS_M
from unswachh.core.geo_utils import Coordinate, haversine_distance
from unswachh.crowdsource.report_store import Report

logger = logging.getLogger(__name__)

DistanceFunction = Callable[[float, float, float, float], float]


class DuplicateGuard:
    """
    Rejects candidates closer than the duplicate radius to an existing report.

    Every report counts regardless of its status, so a location with a
    pending report cannot be reported again while it waits for review.
    """

    def __init__(
        self,
        radius_m: float = DUPLICATE_RADIUS_M,
        distance: DistanceFunction = haversine_distance
    ):
        """
        Initialize guard.

        Args:
            radius_m: Exclusive duplicate radius in meters
            distance: Distance function in meters (lat1, lon1, lat2, lon2)
        """
        self.radius_m = radius_m
        self.distance = distance

    def _distance_to(self, candidate: Coordinate, report: Report) -> float:
        return self.distance(
            candidate.latitude, candidate.longitude,
            report.latitude, report.longitude
        )

    def find_duplicate(
        self,
        candidate: Coordinate,
        existing: Iterable[Report]
    ) -> Optional[Tuple[Report, float]]:
        """
        Return the first report within the radius and its distance.

        Args:
            candidate: Location of the new report
            existing: Reports to scan

        Returns:
            (report, distance_m) or None
        """
        for report in existing:
            distance = self._distance_to(candidate, report)
            if distance < self.radius_m:
                logger.info(
                    f"Duplicate of {report.id} at {distance:.1f} m "
                    f"(radius {self.radius_m} m)"
                )
                return report, distance
        return None

    def is_duplicate(self, candidate: Coordinate, existing: Iterable[Report]) -> bool:
        """True iff any existing report is strictly closer than the radius."""
        return self.find_duplicate(candidate, existing) is not None

    def find_nearest(
        self,
        candidate: Coordinate,
        existing: Iterable[Report]
    ) -> Optional[Tuple[Report, float]]:
        """Closest report and its distance, or None if there are none."""
        nearest = None
        for report in existing:
            distance = self._distance_to(candidate, report)
            if nearest is None or distance < nearest[1]:
                nearest = (report, distance)
        return nearest
