"""
VoiceNotes Backend: Abstract AI Delegate Interface
==================================================

What:  The contract for the external speech-to-text and summarization
       capability.
How:   Concrete providers inherit from ``AIDelegate``. Callers (the AI routes
       and NoteService) depend only on this class, and tests substitute a
       deterministic fake.

Both operations are pure request/response: no state is carried from one call
to the next (beyond provider health bookkeeping such as a circuit breaker).
"""

from abc import ABC, abstractmethod


class AIDelegate(ABC):
    """
    Abstract interface for AI transcription and summarization.

    Contract:
        - Errors are reported as application exceptions only:
            ValidationError       empty input or unsupported audio type
            ExternalServiceError  provider failed or returned nothing usable
            ServiceTimeoutError   provider did not answer in time
        - No automatic retries; a failure surfaces on the first attempt
        - Output is not deterministic; callers must not depend on exact text
    """

    @abstractmethod
    async def transcribe(self, audio: bytes, mime_type: str) -> str:
        """
        Convert recorded speech to text.

        Args:
            audio: Raw audio bytes as uploaded by the client.
            mime_type: Content type of ``audio`` (e.g. "audio/webm").

        Returns:
            The transcript, stripped of surrounding whitespace.
        """
        ...

    @abstractmethod
    async def summarize(self, text: str) -> str:
        """
        Produce a short summary of ``text``.

        Returns:
            A non-empty summary string.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Lightweight reachability probe (no token cost).

        Returns True if the provider is reachable, False otherwise.
        """
        ...
