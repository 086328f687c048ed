from __future__ import annotations

import base64

import pytest

from api.app.errors import UploadError
from api.app.uploads import decode_upload


def test_decode_upload_returns_base64_payload(image_bytes):
    raw = image_bytes()
    image = decode_upload(raw, "image/png")
    assert base64.b64decode(image.data) == raw
    assert image.mime_type == "image/png"


def test_decode_upload_detects_type_when_not_declared(image_bytes):
    image = decode_upload(image_bytes(), "application/octet-stream")
    assert image.mime_type == "image/png"


@pytest.mark.parametrize("payload", [b"", b"definitely not an image"])
def test_decode_upload_rejects_unreadable_files(payload):
    with pytest.raises(UploadError):
        decode_upload(payload, "image/png", field="design")
