"""
VoiceNotes Backend: Audio Upload Validation
===========================================

What:  Checks a recorded or uploaded audio clip before it is sent for
       transcription.
How:   Resolves the content type (declared type first, file extension when
       the client sent a generic type), then checks the payload is non-empty
       and within ``max_audio_size``.
Who:   Called by POST /api/ai/transcribe before the AI delegate.

Audio is never written to disk: the clip is held in memory for the length
of one request and sent inline to the provider.
"""

import logging
from pathlib import Path
from typing import Optional

from voicenotes.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Allowed Audio Types ───────────────────────────────────────────────────
# MediaRecorder in browsers produces audio/webm (Chrome, Firefox) or
# audio/mp4 (Safari); the rest cover uploaded files.
ALLOWED_MIME_TYPES = {
    "audio/webm",
    "audio/wav",
    "audio/x-wav",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/m4a",
    "audio/x-m4a",
    "audio/ogg",
    "audio/aac",
    "audio/flac",
    "audio/aiff",
}

EXTENSION_MIME_TYPES = {
    ".webm": "audio/webm",
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".mp4": "audio/mp4",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".aif": "audio/aiff",
    ".aiff": "audio/aiff",
}

# Types a client sends when it does not know better.
GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


class AudioService:
    """Validates audio clips for transcription."""

    def __init__(self, max_audio_size: int):
        self.max_audio_size = max_audio_size

    def resolve_mime_type(self, filename: Optional[str], content_type: Optional[str]) -> str:
        """
        Normalized MIME type of the upload.

        Parameters such as ``;codecs=opus`` are dropped. A generic or missing
        declared type is replaced by the type implied by the file extension.

        Raises:
            ValidationError: neither the declared type nor the extension is
                an allowed audio type
        """
        declared = (content_type or "").split(";", 1)[0].strip().lower()
        mime_type = declared
        if declared in GENERIC_MIME_TYPES:
            ext = Path(filename or "").suffix.lower()
            mime_type = EXTENSION_MIME_TYPES.get(ext, declared)

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"Audio type '{mime_type or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_MIME_TYPES))}"
                ),
                field="audio",
                context={"content_type": content_type, "filename": filename},
            )
        return mime_type

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="The audio recording is empty.", field="audio")

        if size > self.max_audio_size:
            max_mb = self.max_audio_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"Audio size ({size / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="audio",
                context={"max_size": self.max_audio_size, "actual_size": size},
            )

    def validate(self, filename: Optional[str], content: bytes, content_type: Optional[str]) -> str:
        """
        Validate an uploaded clip and return the MIME type to send with it.

        Raises:
            ValidationError: unsupported type, empty payload or oversized payload
        """
        mime_type = self.resolve_mime_type(filename, content_type)
        self.validate_size(len(content))
        logger.debug(
            "Audio accepted: filename=%s, mime_type=%s, size=%d",
            filename,
            mime_type,
            len(content),
        )
        return mime_type
