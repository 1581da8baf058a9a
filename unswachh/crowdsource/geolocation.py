"""
Device location verification for report submission
A report location must come from live positioning, never a map click
"""

import logging
from enum import IntEnum
from typing import Optional

from unswachh.core.exceptions import GeoDenied, GeoUnsupported
from unswachh.core.geo_utils import Coordinate, VerifiedCoordinate

logger = logging.getLogger(__name__)


class PositionErrorCode(IntEnum):
    """Error codes reported by the device positioning API."""
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PositionError(Exception):
    """Positioning capability failed to produce a fix."""

    def __init__(self, code: PositionErrorCode, message: str = ""):
        super().__init__(message or code.name.lower())
        self.code = code


class PositionProvider:
    """
    Source of the device's current position.

    Subclasses set ``supported`` to False when the device has no
    positioning capability and raise PositionError when the user refuses
    or no fix can be obtained.
    """

    supported: bool = True

    async def get_current_position(self) -> Coordinate:
        raise NotImplementedError

    @property
    def accuracy_m(self) -> Optional[float]:
        return None


class DevicePosition(PositionProvider):
    """
    Fix reported by the client device for one submission.

    Built from what the browser geolocation callback delivered: either a
    coordinate or an error code. ``supported=False`` models a browser
    without the geolocation API.
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        accuracy_m: Optional[float] = None,
        error_code: Optional[int] = None,
        supported: bool = True
    ):
        self.latitude = latitude
        self.longitude = longitude
        self._accuracy_m = accuracy_m
        self.error_code = error_code
        self.supported = supported

    @property
    def accuracy_m(self) -> Optional[float]:
        return self._accuracy_m

    async def get_current_position(self) -> Coordinate:
        if self.error_code is not None:
            raise PositionError(PositionErrorCode(self.error_code))
        if self.latitude is None or self.longitude is None:
            raise PositionError(PositionErrorCode.POSITION_UNAVAILABLE)
        return Coordinate(self.latitude, self.longitude)


class GeoVerifier:
    """
    Obtains a verified coordinate from a position provider.

    Nothing is cached: every call asks the provider for a fresh fix, so
    each submission must verify its own location.
    """

    def __init__(self, provider: PositionProvider):
        self.provider = provider

    async def verify(self) -> VerifiedCoordinate:
        """
        Request the current device position.

        Returns:
            VerifiedCoordinate

        Raises:
            GeoUnsupported: Device has no positioning capability
            GeoDenied: User refused or the provider reported an error
        """
        if not self.provider.supported:
            logger.info("Geolocation not supported by device")
            raise GeoUnsupported()

        try:
            position = await self.provider.get_current_position()
        except PositionError as e:
            logger.info(f"Geolocation failed: {e}")
            raise GeoDenied() from e
        except ValueError as e:
            # Out-of-range fix
            logger.warning(f"Geolocation returned invalid coordinates: {e}")
            raise GeoDenied() from e

        verified = VerifiedCoordinate(
            latitude=position.latitude,
            longitude=position.longitude,
            accuracy_m=self.provider.accuracy_m,
        )
        logger.debug(f"Location verified: ({verified.latitude}, {verified.longitude})")
        return verified
