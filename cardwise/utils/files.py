"""Helpers for answer attachments (images, recordings, markdown files)."""

import base64
import binascii
import mimetypes
from pathlib import Path
from typing import Iterable, Union

from ..engine.errors import ValidationError
from ..engine.models import Attachment

IMAGE_TYPES = ["image/*"]
AUDIO_TYPES = ["audio/*"]
MARKDOWN_TYPES = ["text/markdown", "text/plain"]


def guess_type(path: Union[str, Path]) -> str:
    mime, _ = mimetypes.guess_type(str(path))
    if mime is None and str(path).lower().endswith((".md", ".markdown")):
        return "text/markdown"
    return mime or "application/octet-stream"


def file_to_attachment(path: Union[str, Path]) -> Attachment:
    """Read a file into an inline base64 attachment."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Attachment file not found: {path}")

    raw = p.read_bytes()
    return Attachment(
        name=p.name,
        type=guess_type(p),
        data=base64.b64encode(raw).decode("ascii"),
        size=len(raw),
    )


def attachment_bytes(attachment: Attachment) -> bytes:
    """Decode an attachment's payload. Tolerates a leading data: URL prefix."""
    data = attachment.data
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Attachment '{attachment.name}' is not valid base64") from e


def format_file_size(size: int) -> str:
    """Human readable size: 0 Bytes, 1.5 KB, 2 MB..."""
    if size <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def validate_file_type(mime_type: str, allowed_types: Iterable[str]) -> bool:
    """Check a MIME type against a list that may contain wildcards like ``image/*``."""
    for allowed in allowed_types:
        if allowed.endswith("/*"):
            if mime_type.startswith(allowed[:-1]):
                return True
        elif mime_type == allowed:
            return True
    return False
