"""
Unswachh - Image Pipeline
Compresses report photos and uploads them to Cloudinary.
"""

import asyncio
import io
import logging
from typing import Optional

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from unswachh.core.constants import CLOUDINARY_UPLOAD_URL
from unswachh.core.exceptions import ImageProcessingError, ImageUploadError

logger = logging.getLogger(__name__)


class ImageNormalizer:
    """
    Re-encodes photos as bounded-size JPEGs.

    Camera photos are rotated according to their EXIF orientation,
    converted to RGB and downscaled so the longest side fits
    max_dimension.
    """

    def __init__(self, max_dimension: int = 1920, quality: int = 80):
        self.max_dimension = max_dimension
        self.quality = quality

    def normalize(self, raw: bytes) -> bytes:
        """
        Compress raw image bytes.

        Raises:
            ImageProcessingError: Data is not a readable image
        """
        try:
            with Image.open(io.BytesIO(raw)) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode != "RGB":
                    img = img.convert("RGB")
                img.thumbnail((self.max_dimension, self.max_dimension))

                out = io.BytesIO()
                img.save(out, format="JPEG", quality=self.quality, optimize=True)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageProcessingError() from e

        compressed = out.getvalue()
        logger.debug(f"Image compressed: {len(raw)} -> {len(compressed)} bytes")
        return compressed


class ImageUploader:
    """Stores an image and returns a URL for it."""

    async def upload(self, image: bytes) -> str:
        raise NotImplementedError


class CloudinaryUploader(ImageUploader):
    """Unsigned upload to Cloudinary with an upload preset."""

    def __init__(
        self,
        cloud_name: Optional[str],
        upload_preset: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.timeout = timeout
        self._transport = transport

    async def upload(self, image: bytes) -> str:
        """
        Upload JPEG bytes.

        Returns:
            secure_url of the stored image

        Raises:
            ImageUploadError: Not configured, transport failure or bad response
        """
        if not self.cloud_name or not self.upload_preset:
            raise ImageUploadError("Cloudinary credentials missing.")

        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    data={"upload_preset": self.upload_preset},
                    files={"file": ("report.jpg", image, "image/jpeg")},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Cloudinary upload failed: {e}")
            raise ImageUploadError() from e

        secure_url = data.get("secure_url")
        if not secure_url:
            raise ImageUploadError("Image host returned no URL.")
        return secure_url


class ImagePipeline:
    """Normalize then upload; returns the stored image reference."""

    def __init__(self, normalizer: ImageNormalizer, uploader: ImageUploader):
        self.normalizer = normalizer
        self.uploader = uploader

    async def process(self, raw: bytes) -> str:
        # Decoding and re-encoding are CPU bound
        compressed = await asyncio.to_thread(self.normalizer.normalize, raw)
        return await self.uploader.upload(compressed)


def create_image_pipeline(settings) -> ImagePipeline:
    return ImagePipeline(
        normalizer=ImageNormalizer(
            max_dimension=settings.image_max_dimension,
            quality=settings.image_quality,
        ),
        uploader=CloudinaryUploader(
            cloud_name=settings.cloudinary_cloud_name,
            upload_preset=settings.cloudinary_upload_preset,
            timeout=settings.http_timeout_seconds,
        ),
    )
