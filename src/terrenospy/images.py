"""Image inputs for listings.

Listings store images as URLs. Local files picked by the admin are
embedded as base64 ``data:`` URLs, so the whole listing lives in the
document.
"""

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Iterable, Optional

from .config import Settings

logger = logging.getLogger(__name__)

URL_PREFIXES = ("http://", "https://", "data:")


def file_to_data_url(path: Path, max_size: int) -> Optional[str]:
    """Read an image file into a data URL.

    Returns:
        The data URL, or None if the file is not an image, is larger
        than ``max_size`` bytes, or cannot be read
    """
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        logger.warning(f"Skipping {path}: not an image")
        return None

    try:
        size = path.stat().st_size
        if size > max_size:
            logger.warning(f"Skipping {path}: {size} bytes exceeds {max_size}")
            return None
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"Error reading image {path}: {e}")
        return None

    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def prepare_images(values: Iterable[str], settings: Settings) -> list[str]:
    """Turn admin image inputs into stored image URLs.

    URLs are kept as given; anything else is read as a local file path.
    Unusable files are skipped and at most ``settings.max_images`` are kept.
    """
    images = []
    for value in values:
        value = value.strip()
        if not value:
            continue
        if value.startswith(URL_PREFIXES):
            images.append(value)
        else:
            data_url = file_to_data_url(Path(value).expanduser(), settings.max_file_size)
            if data_url:
                images.append(data_url)
        if len(images) >= settings.max_images:
            break
    return images
