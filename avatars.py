"""
Avatar helpers for the Momentum leaderboard
Upload validation, resize to a small JPEG data URL, initials and fallbacks
"""

import base64
from io import BytesIO
from typing import Optional
from urllib.parse import quote

from PIL import Image, UnidentifiedImageError

from config import AVATAR


class AvatarError(ValueError):
    """Raised when an uploaded avatar cannot be used."""


def validate_avatar_upload(content_type: Optional[str], size_bytes: int):
    """
    Check the upload is an image and within the size limit.

    Raises:
        AvatarError: not an image/* type, or larger than AVATAR["max_upload_bytes"]
    """
    if not content_type or not content_type.startswith("image/"):
        raise AvatarError("Please select an image file")

    max_bytes = AVATAR["max_upload_bytes"]
    if size_bytes > max_bytes:
        raise AvatarError(f"Please select an image smaller than {max_bytes // (1024 * 1024)}MB")


def fit_within(width: int, height: int, max_size: int) -> tuple:
    """
    Scale (width, height) down to fit a max_size square, keeping aspect ratio.
    Images already inside the box are left alone.

    Examples:
        fit_within(400, 200, 200) -> (200, 100)
        fit_within(100, 300, 200) -> (67, 200)
        fit_within(120, 80, 200) -> (120, 80)
    """
    if width > height:
        if width > max_size:
            height = round(height * max_size / width)
            width = max_size
    elif height > max_size:
        width = round(width * max_size / height)
        height = max_size
    return max(width, 1), max(height, 1)


def build_avatar_data_url(image_bytes: bytes) -> str:
    """
    Resize an uploaded image and encode it as a JPEG base64 data URL.

    Args:
        image_bytes: Raw uploaded file content

    Returns:
        "data:image/jpeg;base64,..." string small enough to store on the profile

    Raises:
        AvatarError: content is not a readable image
    """
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise AvatarError(f"Could not read image: {e}")

    img = img.convert("RGB")
    new_size = fit_within(img.width, img.height, AVATAR["max_size_px"])
    if new_size != img.size:
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=AVATAR["jpeg_quality"])
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def decode_data_url(data_url: str) -> Optional[bytes]:
    """Raw bytes of a base64 data URL, None for anything else."""
    if not data_url or not data_url.startswith("data:") or ";base64," not in data_url:
        return None
    try:
        return base64.b64decode(data_url.split(";base64,", 1)[1])
    except (ValueError, TypeError):
        return None


def get_initials(name: str) -> str:
    """
    Up to two initials for an avatar placeholder.

    Examples:
        get_initials("jane mary doe") -> "JM"
        get_initials("") -> "?"
    """
    letters = [word[0] for word in (name or "").split() if word]
    if not letters:
        return "?"
    return "".join(letters).upper()[:2]


def fallback_avatar_url(name: str) -> str:
    """Generated avatar URL seeded by the agent name."""
    return AVATAR["fallback_url"].format(seed=quote(name or "agent"))


def avatar_source(avatar: Optional[str], name: str) -> str:
    """Stored avatar when present, otherwise the generated fallback."""
    return avatar or fallback_avatar_url(name)
