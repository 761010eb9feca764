"""
Asset hosting client for billboard and product images.
Uploads are forwarded to the configured asset host; only the URL it returns
is stored on our records.
"""
import os
import logging
from typing import Optional

import requests
from django.conf import settings
from PIL import Image as PILImage, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Upload endpoint of the asset host (unsigned upload API)
ASSET_UPLOAD_URL = getattr(
    settings,
    'ASSET_UPLOAD_URL',
    os.getenv('ASSET_UPLOAD_URL', '')
)

# Upload preset name sent with every upload
ASSET_UPLOAD_PRESET = getattr(
    settings,
    'ASSET_UPLOAD_PRESET',
    os.getenv('ASSET_UPLOAD_PRESET', '')
)

ASSET_API_KEY = getattr(
    settings,
    'ASSET_API_KEY',
    os.getenv('ASSET_API_KEY', '')
)

ASSET_UPLOAD_TIMEOUT = getattr(
    settings,
    'ASSET_UPLOAD_TIMEOUT',
    int(os.getenv('ASSET_UPLOAD_TIMEOUT', '30'))
)

ASSET_MAX_UPLOAD_BYTES = getattr(
    settings,
    'ASSET_MAX_UPLOAD_BYTES',
    int(os.getenv('ASSET_MAX_UPLOAD_BYTES', str(5 * 1024 * 1024)))
)


class AssetUploadError(Exception):
    """Raised when an image cannot be uploaded to the asset host"""


def verify_image(uploaded_file) -> str:
    """
    Check that the upload is a readable image within the size limit.

    Args:
        uploaded_file: Django UploadedFile (or any file object with ``size``)

    Returns:
        Image format reported by Pillow (e.g. 'PNG')
    """
    size = getattr(uploaded_file, 'size', None)
    if size is not None and size > ASSET_MAX_UPLOAD_BYTES:
        raise AssetUploadError(f"Image is larger than {ASSET_MAX_UPLOAD_BYTES // (1024 * 1024)} MB")

    try:
        image = PILImage.open(uploaded_file)
        image_format = image.format
        image.verify()
    except PILImage.DecompressionBombError as e:
        raise AssetUploadError(f"Image dimensions are too large: {e}")
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise AssetUploadError(f"Uploaded file is not a valid image: {e}")
    finally:
        uploaded_file.seek(0)
    return image_format


def upload_image(uploaded_file, folder: Optional[str] = None) -> str:
    """
    Upload an image to the asset host and return its public URL.

    Args:
        uploaded_file: Django UploadedFile
        folder: Optional folder on the asset host (e.g. 'store-12')

    Returns:
        The hosted URL (``secure_url`` preferred over ``url``)
    """
    if not ASSET_UPLOAD_URL:
        raise AssetUploadError("Asset hosting is not configured (ASSET_UPLOAD_URL)")

    verify_image(uploaded_file)

    data = {'upload_preset': ASSET_UPLOAD_PRESET}
    if ASSET_API_KEY:
        data['api_key'] = ASSET_API_KEY
    if folder:
        data['folder'] = folder

    filename = getattr(uploaded_file, 'name', None) or 'upload'
    content_type = getattr(uploaded_file, 'content_type', None) or 'application/octet-stream'

    try:
        response = requests.post(
            ASSET_UPLOAD_URL,
            data=data,
            files={'file': (filename, uploaded_file, content_type)},
            timeout=ASSET_UPLOAD_TIMEOUT,
        )
    except requests.exceptions.Timeout:
        logger.error(f"Asset upload timed out after {ASSET_UPLOAD_TIMEOUT}s for {filename}")
        raise AssetUploadError("Image upload timed out")
    except requests.exceptions.RequestException as e:
        logger.error(f"Asset upload failed for {filename}: {str(e)}")
        raise AssetUploadError("Image upload failed")

    if response.status_code >= 400:
        logger.error(f"Asset host rejected {filename}: HTTP {response.status_code} {response.text[:200]}")
        raise AssetUploadError(f"Image upload failed (HTTP {response.status_code})")

    try:
        payload = response.json()
    except ValueError:
        raise AssetUploadError("Asset host returned an invalid response")

    url = payload.get('secure_url') or payload.get('url')
    if not url:
        raise AssetUploadError("Asset host response did not include a URL")

    logger.info(f"Uploaded {filename} to asset host: {url}")
    return url
