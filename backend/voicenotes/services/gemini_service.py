"""
VoiceNotes Backend: Google Gemini AI Delegate
=============================================

What:  ``AIDelegate`` implementation that transcribes audio and summarizes
       text with Google Gemini.
How:   Audio is sent inline as a ``{"mime_type", "data"}`` part next to a
       transcription prompt; summaries use a single text prompt. Every call
       is bounded by ``asyncio.wait_for(ai_timeout_seconds)`` and guarded by
       a circuit breaker.
Who:   Constructed once by ``create_app()`` and injected into the AI routes
       and NoteService through ``app.state``.
Why:   Gemini accepts audio natively, so a single provider covers both
       speech-to-text and summaries.

Failure handling:
    1. Circuit OPEN            → CircuitBreakerOpenError, provider not called
    2. Timeout elapsed         → ServiceTimeoutError, counts as a failure
    3. SDK/provider exception  → ExternalServiceError, counts as a failure
    4. Success                 → breaker reset to CLOSED
    No call is retried; the caller decides whether to try again.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, List, Optional

import google.generativeai as genai

from voicenotes.config import Settings
from voicenotes.exceptions import (
    CircuitBreakerOpenError,
    ExternalServiceError,
    ServiceTimeoutError,
    ValidationError,
)
from voicenotes.services.ai_base import AIDelegate

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Consecutive-failure circuit breaker for the AI provider.

    State Machine:
        CLOSED     failures counted; threshold reached → OPEN
        OPEN       every call rejected until recovery_timeout has passed,
                   then → HALF_OPEN
        HALF_OPEN  one probe call allowed; success → CLOSED, failure → OPEN

    Not shared across worker processes; each uvicorn worker tracks its own
    provider health.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Admit or reject a call.

        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.OPEN:
            elapsed = time.monotonic() - (self.opened_at or 0.0)
            if elapsed < self.recovery_timeout:
                remaining = max(1, int(self.recovery_timeout - elapsed))
                raise CircuitBreakerOpenError(recovery_time=remaining)
            logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (provider recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (probe call failed)")
            self._open()
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self._open()

    def _open(self) -> None:
        self.state = self.OPEN
        self.opened_at = time.monotonic()


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(AIDelegate):
    """Gemini-backed transcription and summarization."""

    TRANSCRIBE_PROMPT = """You are a precise speech-to-text system. Transcribe the spoken
words in this audio recording.

Instructions:
1. Return ONLY the transcript, with no commentary or descriptions of the audio
2. Keep the speaker's wording; fix only obvious filler like repeated "um"
3. Use normal punctuation and paragraph breaks between topics
4. If no speech is present, return an empty response"""

    SUMMARIZE_PROMPT = """Summarize the following note in a few concise sentences.
Keep names, dates, decisions and action items. Return only the summary.

Note:
"""

    def __init__(self, settings: Settings):
        # The SDK keeps its credentials in module state; configure() is the
        # only supported way to set the key.
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model_name = settings.gemini_model
        self.model = genai.GenerativeModel(settings.gemini_model)
        self.timeout = settings.ai_timeout_seconds
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, timeout=%.0fs, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            self.timeout,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def transcribe(self, audio: bytes, mime_type: str) -> str:
        if not audio:
            raise ValidationError(message="The audio recording is empty.", field="audio")
        if not mime_type or not mime_type.startswith("audio/"):
            raise ValidationError(
                message=f"Content type '{mime_type}' is not a supported audio format.",
                field="audio",
                context={"mime_type": mime_type},
            )

        parts = [self.TRANSCRIBE_PROMPT, {"mime_type": mime_type, "data": audio}]
        return await self._generate("transcription", parts, size=len(audio))

    async def summarize(self, text: str) -> str:
        if not text or not text.strip():
            raise ValidationError(message="There is no text to summarize.", field="content")

        summary = await self._generate("summarization", [self.SUMMARIZE_PROMPT + text], size=len(text))
        if not summary:
            raise ExternalServiceError(
                message="The AI service returned an empty summary. Please try again.",
                context={"model": self.model_name},
            )
        return summary

    async def _generate(self, operation: str, parts: List[Any], size: int) -> str:
        """
        One bounded provider call with circuit breaker bookkeeping.

        Returns the response text stripped of surrounding whitespace.
        """
        request_id = uuid.uuid4().hex[:8]

        # Raises CircuitBreakerOpenError before any network I/O.
        self.circuit_breaker.can_execute()

        logger.info("[%s] Starting Gemini %s (%d bytes of input)", request_id, operation, size)
        start_time = time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self.model.generate_content_async(
                    parts,
                    request_options={"timeout": self.timeout},
                ),
                timeout=self.timeout,
            )
            # .text raises ValueError when the response was blocked or empty
            text = (response.text or "").strip()

        except asyncio.TimeoutError:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini %s timed out after %.0fs",
                request_id,
                operation,
                self.timeout,
            )
            raise ServiceTimeoutError(
                timeout=self.timeout,
                operation=operation,
                context={"request_id": request_id},
            )
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini %s failed: %s",
                request_id,
                operation,
                str(e),
                exc_info=True,
            )
            raise ExternalServiceError(
                message=f"AI {operation} failed. Please try again later.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] Gemini %s completed in %.0fms, returned %d chars",
            request_id,
            operation,
            duration_ms,
            len(text),
        )
        return text

    async def health_check(self) -> bool:
        """
        Lists the available models (free, no tokens) off the event loop.

        Returns True when the API answers, even if the configured model name
        is missing from the listing.
        """
        try:
            models = await asyncio.to_thread(lambda: list(genai.list_models()))
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False

        target = f"models/{self.model_name}"
        if target not in [m.name for m in models]:
            logger.warning("Configured model %s not found in available models", target)
        return True
