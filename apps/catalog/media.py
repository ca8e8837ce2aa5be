"""
Media host boundary

Product and settings images are stored by an external media host; the
catalog only keeps the returned URL. The uploader class is configured
through settings.MEDIA_UPLOADER.
"""
import logging
from functools import lru_cache
from typing import BinaryIO

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from django.conf import settings
from django.utils.module_loading import import_string

from apps.core.exceptions import MediaUploadException

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = 'https://via.placeholder.com/1200x1200?text=Image+Upload'


class MediaUploader:
    """Interface for media-host adapters."""

    def upload_image(self, file: BinaryIO, folder: str = 'products') -> str:
        raise NotImplementedError


class CloudinaryMediaUploader(MediaUploader):
    """
    Uploads to Cloudinary, capped at 1200x1200 with automatic quality.

    Without CLOUDINARY_CLOUD_NAME the upload is skipped and a placeholder
    URL is returned, so local setups can still create products.
    """

    def __init__(self):
        self.cloud_name = getattr(settings, 'CLOUDINARY_CLOUD_NAME', '')
        if self.is_configured:
            cloudinary.config(
                cloud_name=self.cloud_name,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name) and self.cloud_name != 'dummy'

    def upload_image(self, file: BinaryIO, folder: str = 'products') -> str:
        if not self.is_configured:
            logger.warning("Cloudinary is not configured, returning placeholder image URL")
            return PLACEHOLDER_IMAGE_URL

        try:
            result = cloudinary.uploader.upload(
                file,
                folder=folder,
                resource_type='image',
                transformation=[
                    {'width': 1200, 'height': 1200, 'crop': 'limit'},
                    {'quality': 'auto'},
                ],
            )
        except CloudinaryError as e:
            raise MediaUploadException(str(e)) from e

        url = result.get('secure_url')
        if not url:
            raise MediaUploadException("Upload service returned no image URL")
        return url


@lru_cache(maxsize=None)
def _load_uploader(path: str) -> MediaUploader:
    return import_string(path)()


def get_media_uploader() -> MediaUploader:
    return _load_uploader(settings.MEDIA_UPLOADER)
