"""
VoiceNotes Backend: Gemini Service Unit Tests (Mocked)
======================================================

What:  GeminiService and its circuit breaker with the Google Generative AI
       SDK patched out. No network calls.

What we test:
    ✅ Circuit breaker state machine
    ✅ Transcription sends the audio inline with its MIME type
    ✅ Summaries are stripped; empty answers are errors
    ✅ Provider exceptions and timeouts map to application errors
    ✅ An open circuit rejects calls before the SDK is touched
    ❌ Real API calls
"""

import asyncio
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from voicenotes.config import Settings
from voicenotes.exceptions import (
    CircuitBreakerOpenError,
    ExternalServiceError,
    ServiceTimeoutError,
    ValidationError,
)
from voicenotes.services.gemini_service import CircuitBreaker, GeminiService


class TestCircuitBreaker:
    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute()

    def test_opens_at_threshold_and_rejects(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        assert cb.state == "open"

        time.sleep(0.01)
        assert cb.can_execute()
        assert cb.state == "half_open"

    def test_failed_probe_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=0)
        for _ in range(3):
            cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"

    def test_successful_probe_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"


def _settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        gemini_api_key="test-key-not-real",
        gemini_model="gemini-1.5-flash",
        ai_timeout_seconds=5,
        cb_failure_threshold=2,
        cb_recovery_timeout=60,
    )
    values.update(overrides)
    return Settings(**values)


def _response(text: str) -> MagicMock:
    response = MagicMock()
    response.text = text
    return response


@pytest.fixture
def mock_genai():
    with patch("voicenotes.services.gemini_service.genai") as mock_genai:
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(return_value=_response("  hello world \n"))
        mock_genai.GenerativeModel.return_value = mock_model
        yield mock_genai


class TestGeminiServiceMocked:
    def test_configures_sdk_with_api_key(self, mock_genai):
        GeminiService(_settings())

        mock_genai.configure.assert_called_once_with(api_key="test-key-not-real")
        mock_genai.GenerativeModel.assert_called_once_with("gemini-1.5-flash")

    @pytest.mark.asyncio
    async def test_transcribe_sends_inline_audio(self, mock_genai):
        service = GeminiService(_settings())

        text = await service.transcribe(b"RIFFdata", "audio/wav")

        assert text == "hello world"
        parts = service.model.generate_content_async.await_args.args[0]
        assert parts[0] == GeminiService.TRANSCRIBE_PROMPT
        assert parts[1] == {"mime_type": "audio/wav", "data": b"RIFFdata"}

    @pytest.mark.asyncio
    async def test_transcribe_rejects_empty_audio_without_calling_sdk(self, mock_genai):
        service = GeminiService(_settings())

        with pytest.raises(ValidationError):
            await service.transcribe(b"", "audio/webm")
        with pytest.raises(ValidationError):
            await service.transcribe(b"data", "video/mp4")
        service.model.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summarize_includes_text_in_prompt(self, mock_genai):
        service = GeminiService(_settings())

        summary = await service.summarize("Long meeting notes")

        assert summary == "hello world"
        prompt = service.model.generate_content_async.await_args.args[0][0]
        assert prompt.startswith(GeminiService.SUMMARIZE_PROMPT)
        assert prompt.endswith("Long meeting notes")

    @pytest.mark.asyncio
    async def test_summarize_rejects_blank_text(self, mock_genai):
        service = GeminiService(_settings())

        with pytest.raises(ValidationError):
            await service.summarize("   ")

    @pytest.mark.asyncio
    async def test_empty_summary_is_an_error(self, mock_genai):
        service = GeminiService(_settings())
        service.model.generate_content_async = AsyncMock(return_value=_response("   "))

        with pytest.raises(ExternalServiceError):
            await service.summarize("Some text")

    @pytest.mark.asyncio
    async def test_provider_exception_becomes_external_service_error(self, mock_genai):
        service = GeminiService(_settings())
        service.model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await service.summarize("Some text")

        assert "quota" not in exc_info.value.message
        assert exc_info.value.context["error_type"] == "RuntimeError"
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, mock_genai):
        service = GeminiService(_settings(ai_timeout_seconds=0.05))

        async def slow(*args, **kwargs):
            await asyncio.sleep(5)

        service.model.generate_content_async = slow

        with pytest.raises(ServiceTimeoutError) as exc_info:
            await service.transcribe(b"data", "audio/webm")

        assert exc_info.value.timeout == 0.05
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_rejects_without_calling_sdk(self, mock_genai):
        service = GeminiService(_settings())
        service.model.generate_content_async = AsyncMock(side_effect=RuntimeError("down"))

        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await service.summarize("Some text")
        assert service.circuit_breaker.state == "open"

        with pytest.raises(CircuitBreakerOpenError):
            await service.summarize("Some text")
        assert service.model.generate_content_async.await_count == 2

    @pytest.mark.asyncio
    async def test_health_check(self, mock_genai):
        mock_genai.list_models.return_value = [SimpleNamespace(name="models/gemini-1.5-flash")]
        service = GeminiService(_settings())

        assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_failure_returns_false(self, mock_genai):
        mock_genai.list_models.side_effect = RuntimeError("no network")
        service = GeminiService(_settings())

        assert await service.health_check() is False
