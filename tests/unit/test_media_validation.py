"""Attachment checks that run before any upload."""

import pytest

from qaforum.errors import ValidationError
from qaforum.social.media import MediaFile, validate_files


def _png(size: int = 10) -> MediaFile:
    return MediaFile(filename="a.png", content_type="image/png", data=b"x" * size)


class TestValidateFiles:
    def test_images_and_videos_accepted(self):
        validate_files([_png(), MediaFile("clip.mp4", "video/mp4", b"v")])

    def test_too_many_files(self):
        with pytest.raises(ValidationError, match="at most 5"):
            validate_files([_png() for _ in range(6)])

    def test_wrong_type(self):
        with pytest.raises(ValidationError, match="Only images and videos"):
            validate_files([MediaFile("notes.pdf", "application/pdf", b"%PDF")])

    def test_oversized_file(self):
        with pytest.raises(ValidationError, match="larger than 10 MB"):
            validate_files([_png(10 * 1024 * 1024 + 1)])

    def test_kind(self):
        assert _png().kind == "image"
        assert MediaFile("c.webm", "video/webm", b"").kind == "video"
