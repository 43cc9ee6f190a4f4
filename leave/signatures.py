# File: leave/signatures.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

"""
Hand-drawn/uploaded signature payloads.

The workflow only checks that a signature is present; the image itself is
stored as-is and never inspected.
"""
from __future__ import annotations

import base64
import binascii
import re
import uuid
from typing import Union

from django.core.exceptions import ValidationError
from django.core.files.base import ContentFile, File
from django.utils.translation import gettext_lazy as _

SignaturePayload = Union[bytes, str, File]

_DATA_URL = re.compile(r"^data:(?P<mime>image/[\w.+-]+)?(;base64)?,(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
    "image/webp": "webp",
}


def signature_content(payload: SignaturePayload, *, prefix: str) -> ContentFile:
    """
    Turn a signature payload into a file ready for a FileField.

    Accepts raw bytes, an uploaded File, or a `data:image/...;base64,...` URL
    (what the signature pad posts). Empty payloads raise ValidationError.
    """
    if payload is None:
        raise ValidationError(_("A signature is required."))

    ext = "png"
    if isinstance(payload, File):
        payload.seek(0)
        raw = payload.read()
    elif isinstance(payload, bytes):
        raw = payload
    else:
        m = _DATA_URL.match(payload.strip())
        if not m:
            raise ValidationError(_("Signature must be an image data URL."))
        ext = _EXTENSIONS.get((m.group("mime") or "").lower(), "png")
        try:
            raw = base64.b64decode(m.group("data"), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(_("Signature data is not valid base64."))

    if not raw:
        raise ValidationError(_("A signature is required."))

    return ContentFile(raw, name=f"{prefix}-{uuid.uuid4().hex}.{ext}")
