"""Image uploads to Cloudinary. Only the returned secure URL is ever persisted."""

import logging

import cloudinary
import cloudinary.uploader

import config
from errors import InternalError

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=config.CLOUDINARY_CLOUD_NAME,
    api_key=config.CLOUDINARY_API_KEY,
    api_secret=config.CLOUDINARY_API_SECRET,
    secure=True,
)


def upload_image(image: str) -> str:
    """Upload a data URI / base64 payload or remote URL and return its durable URL."""
    try:
        result = cloudinary.uploader.upload(image)
    except Exception:
        logger.exception("Image upload failed")
        raise InternalError()
    url = result.get("secure_url")
    if not url:
        logger.error("Upload response carried no secure_url: %r", result)
        raise InternalError()
    return url
