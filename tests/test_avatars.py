"""Tests for avatar validation, resizing and fallbacks."""

from __future__ import annotations

import base64
from io import BytesIO

import pytest
from PIL import Image

from avatars import (
    AvatarError,
    avatar_source,
    build_avatar_data_url,
    decode_data_url,
    fallback_avatar_url,
    fit_within,
    get_initials,
    validate_avatar_upload,
)


def _png_bytes(size=(400, 200), mode="RGBA") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color=(200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestValidateAvatarUpload:
    def test_accepts_small_image(self):
        validate_avatar_upload("image/png", 1024)

    def test_rejects_non_image(self):
        with pytest.raises(AvatarError, match="image file"):
            validate_avatar_upload("application/pdf", 1024)

    def test_rejects_missing_type(self):
        with pytest.raises(AvatarError):
            validate_avatar_upload(None, 1024)

    def test_rejects_large_file(self):
        with pytest.raises(AvatarError, match="5MB"):
            validate_avatar_upload("image/jpeg", 6 * 1024 * 1024)


@pytest.mark.parametrize(
    "size, expected",
    [
        ((400, 200), (200, 100)),
        ((100, 300), (67, 200)),
        ((120, 80), (120, 80)),
        ((200, 200), (200, 200)),
    ],
)
def test_fit_within(size, expected):
    assert fit_within(*size, 200) == expected


def test_build_avatar_data_url_resizes_to_jpeg():
    data_url = build_avatar_data_url(_png_bytes((400, 200)))

    assert data_url.startswith("data:image/jpeg;base64,")
    img = Image.open(BytesIO(base64.b64decode(data_url.split(",", 1)[1])))
    assert img.format == "JPEG"
    assert img.size == (200, 100)
    assert img.mode == "RGB"


def test_build_avatar_data_url_keeps_small_images():
    data_url = build_avatar_data_url(_png_bytes((50, 40), mode="RGB"))
    img = Image.open(BytesIO(decode_data_url(data_url)))
    assert img.size == (50, 40)


def test_build_avatar_data_url_rejects_garbage():
    with pytest.raises(AvatarError, match="Could not read image"):
        build_avatar_data_url(b"definitely not an image")


def test_decode_data_url():
    assert decode_data_url("data:image/jpeg;base64,aGVsbG8=") == b"hello"
    assert decode_data_url("https://example.com/a.png") is None
    assert decode_data_url("") is None
    assert decode_data_url(None) is None


def test_get_initials():
    assert get_initials("jane mary doe") == "JM"
    assert get_initials("Omar") == "O"
    assert get_initials("") == "?"
    assert get_initials(None) == "?"


def test_fallback_and_source():
    assert fallback_avatar_url("Jane Doe").endswith("seed=Jane%20Doe")
    assert avatar_source("data:image/jpeg;base64,xx", "Jane") == "data:image/jpeg;base64,xx"
    assert avatar_source(None, "Jane") == fallback_avatar_url("Jane")
