import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(image/[\w.+-]+);base64,(.+)$", re.DOTALL)


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: Optional[str]) -> Optional[Tuple[str, bytes]]:
    """Returns (mime_type, bytes) for a base64 image data URI, None for anything else."""
    if not uri:
        return None
    match = DATA_URI_PATTERN.match(uri)
    if not match:
        return None
    try:
        return match.group(1), base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Ignoring data URI with an invalid base64 payload.")
        return None


def decode_payload(uri: Optional[str]) -> Optional[bytes]:
    """Decodes whatever follows the first comma of a data URI."""
    if not uri or "," not in uri:
        return None
    payload = uri.split(",", 1)[1]
    if not payload:
        return None
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError):
        logger.warning("Could not decode image payload.")
        return None


def encode_image_file(path: Path) -> str:
    """
    Reads an image from disk as a data URI. The media type comes from the
    image content rather than the file extension.
    """
    path = Path(path)
    try:
        with Image.open(path) as img:
            mime_type = Image.MIME.get(img.format, "image/png")
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"{path} is not a readable image: {e}") from e
    return to_data_uri(path.read_bytes(), mime_type)
