#!/usr/bin/env python3
"""Tests for attachment helpers."""

import base64
import sys
import tempfile
from pathlib import Path

import pytest

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.engine.errors import ValidationError
from cardwise.engine.models import Attachment
from cardwise.utils.files import (AUDIO_TYPES, IMAGE_TYPES, attachment_bytes,
                                  file_to_attachment, format_file_size,
                                  guess_type, validate_file_type)


def test_file_to_attachment():
    with tempfile.TemporaryDirectory() as temp_dir:
        path = Path(temp_dir) / "notes.md"
        path.write_text("# Hallo", encoding="utf-8")

        attachment = file_to_attachment(path)

    assert attachment.name == "notes.md"
    assert attachment.type == "text/markdown"
    assert attachment.size == len("# Hallo")
    assert attachment_bytes(attachment) == b"# Hallo"


def test_file_to_attachment_missing():
    with pytest.raises(FileNotFoundError):
        file_to_attachment("/nonexistent/recording.mp3")


def test_attachment_bytes_data_url():
    payload = base64.b64encode(b"\x89PNG").decode("ascii")
    attachment = Attachment("dot.png", "image/png", f"data:image/png;base64,{payload}", 4)
    assert attachment_bytes(attachment) == b"\x89PNG"


def test_attachment_bytes_invalid():
    with pytest.raises(ValidationError):
        attachment_bytes(Attachment("broken.mp3", "audio/mpeg", "not base64!!"))


def test_guess_type():
    assert guess_type("photo.png") == "image/png"
    assert guess_type("README.markdown") == "text/markdown"
    assert guess_type("blob") == "application/octet-stream"


def test_format_file_size():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(512) == "512 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(5 * 1024 * 1024) == "5 MB"


def test_validate_file_type():
    assert validate_file_type("image/jpeg", IMAGE_TYPES)
    assert validate_file_type("audio/ogg", AUDIO_TYPES)
    assert not validate_file_type("video/mp4", IMAGE_TYPES + AUDIO_TYPES)
    assert validate_file_type("text/markdown", ["text/markdown"])
    assert not validate_file_type("text/plain", ["text/markdown"])


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
