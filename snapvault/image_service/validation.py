"""
    Upload checks that run before any network call.
"""
from io import BytesIO
import re
import xml.etree.ElementTree as ET
from PIL import Image, UnidentifiedImageError

from snapvault.exceptions import UploadValidationError
from snapvault.settings import settings

# Control characters and characters that are unsafe in a path segment.
UNSAFE_FILENAME = re.compile(r'[\x00-\x1f\x7f/\\:*?"<>|]')

# Pillow format name -> MIME type
MIME_MAP = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

def sanitize_filename(filename: str) -> str:
    """Replaces everything outside [a-zA-Z0-9.-] with '_' for use in object keys."""
    return re.sub(r"[^a-zA-Z0-9.-]", "_", filename)

def validate_upload(filename: str, content_type: str, size: int) -> None:
    """Checks type, size and name of a selected file."""
    if content_type not in settings.allowed_content_types:
        raise UploadValidationError(
            f"Unsupported file type '{content_type}'. Allowed types: {', '.join(settings.allowed_content_types)}"
        )
    if size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        raise UploadValidationError(f"File is too large. Maximum size is {limit_mb:g} MB.")
    if not filename or not filename.strip():
        raise UploadValidationError("File name must not be empty.")
    if len(filename) > settings.max_filename_length:
        raise UploadValidationError(
            f"File name is too long. Maximum length is {settings.max_filename_length} characters."
        )
    if UNSAFE_FILENAME.search(filename):
        raise UploadValidationError("File name contains invalid characters.")

def validate_image_bytes(file_bytes: bytes, content_type: str) -> str:
    """Validate that the file content is a real image of the declared type."""
    if content_type == "image/svg+xml":
        try:
            root = ET.fromstring(file_bytes.decode("utf-8"))
        except (ET.ParseError, UnicodeDecodeError):
            raise UploadValidationError("Invalid SVG file")
        # Check if root tag is svg (with or without namespace)
        tag_name = root.tag.split("}")[-1].lower()
        if tag_name != "svg":
            raise UploadValidationError("Invalid SVG root element")
        return content_type

    try:
        with Image.open(BytesIO(file_bytes)) as img:
            detected = MIME_MAP.get((img.format or "").upper())
    except (UnidentifiedImageError, OSError):
        raise UploadValidationError("Invalid image file")
    if detected != content_type:
        raise UploadValidationError(
            f"File content ({detected or 'unknown'}) does not match its type ({content_type})"
        )
    return detected
