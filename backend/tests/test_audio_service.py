"""
VoiceNotes Backend: Audio Validation Tests
==========================================

What we test:
    ✅ Browser recording types accepted, codec parameters dropped
    ✅ Extension fallback for generic content types
    ✅ Non-audio types rejected
    ✅ Empty and oversized clips rejected
"""

import pytest

from voicenotes.exceptions import ValidationError
from voicenotes.services.audio_service import AudioService


class TestAudioService:
    def setup_method(self):
        self.service = AudioService(max_audio_size=1024)

    @pytest.mark.parametrize(
        "content_type,expected",
        [
            ("audio/webm", "audio/webm"),
            ("audio/webm;codecs=opus", "audio/webm"),
            ("audio/mp4", "audio/mp4"),
            ("AUDIO/WAV", "audio/wav"),
            ("audio/mpeg", "audio/mpeg"),
        ],
    )
    def test_declared_audio_types_accepted(self, content_type, expected):
        assert self.service.validate("clip", b"\x00" * 10, content_type) == expected

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("memo.m4a", "audio/mp4"),
            ("memo.WEBM", "audio/webm"),
            ("memo.mp3", "audio/mpeg"),
        ],
    )
    def test_generic_type_falls_back_to_extension(self, filename, expected):
        assert self.service.validate(filename, b"\x00" * 10, "application/octet-stream") == expected
        assert self.service.validate(filename, b"\x00" * 10, None) == expected

    @pytest.mark.parametrize("content_type", ["video/mp4", "image/png", "text/plain"])
    def test_non_audio_rejected(self, content_type):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate("clip.webm", b"\x00" * 10, content_type)
        assert exc_info.value.field == "audio"

    def test_unknown_extension_with_generic_type_rejected(self):
        with pytest.raises(ValidationError):
            self.service.validate("clip.bin", b"\x00" * 10, "application/octet-stream")

    def test_empty_clip_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate("clip.webm", b"", "audio/webm")

    def test_size_limit_is_inclusive(self):
        assert self.service.validate("clip.webm", b"\x00" * 1024, "audio/webm") == "audio/webm"

        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate("clip.webm", b"\x00" * 1025, "audio/webm")
