"""
Knowledge Scout Backend - Google Gemini Service
===============================================

What:  LLMService implementation backed by Google Gemini.
Why:   Summaries, question generation and chat replies all need a text model.
How:   Each call passes through a circuit breaker, then a tenacity retry loop
       with exponential backoff and jitter around the SDK call.
Who:   Built once per app in create_app(); shared by AIService and ChatService.

Resilience Strategy:
    1. Circuit breaker check (fails instantly while OPEN)
    2. Tenacity retry for transient failures
    3. Request timeout on every SDK call
    4. Success/failure recorded on the breaker
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

import google.generativeai as genai
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential_jitter,
)

from scout.config import Settings
from scout.exceptions import CircuitBreakerOpenError, LLMServiceError
from scout.services.llm_base import LLMService

logger = logging.getLogger(__name__)

# Seconds the SDK waits for one generate call
GENERATE_TIMEOUT = 60


class CircuitBreaker:
    """
    Circuit breaker guarding the LLM provider.

    State Machine:
        CLOSED     → failures >= threshold → OPEN
        OPEN       → recovery_timeout elapsed → HALF_OPEN (one trial call)
        HALF_OPEN  → success → CLOSED / failure → OPEN

    Not thread-safe; one instance lives on a single event loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True when a call may proceed.

        Raises:
            CircuitBreakerOpenError while OPEN and still inside the recovery window.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (trial call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


class GeminiService(LLMService):
    """
    Gemini text generation with retry and circuit breaker.

    Error Handling Chain:
        SDK call fails → tenacity retries (retry_max_attempts, backoff)
        → retries exhausted → breaker failure recorded → LLMServiceError
        → threshold reached → later calls rejected with CircuitBreakerOpenError
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        if settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def generate(self, prompt: str) -> str:
        request_id = str(uuid.uuid4())[:8]

        # Checked before any retrying: an open breaker must not be retried
        self.circuit_breaker.can_execute()

        logger.info("[%s] Gemini generate: prompt %d chars", request_id, len(prompt))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.settings.retry_min_wait,
                max=self.settings.retry_max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

        try:
            async for attempt in retrying:
                with attempt:
                    text = await self._call_gemini(prompt, request_id)
        except RetryError as e:
            self.circuit_breaker.record_failure()
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error("[%s] All Gemini retries exhausted: %s", request_id, last)
            raise LLMServiceError(
                message="AI generation failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={
                    "request_id": request_id,
                    "attempts": self.settings.retry_max_attempts,
                    "error_type": type(last).__name__ if last else None,
                },
            ) from e

        self.circuit_breaker.record_success()
        return text

    async def _call_gemini(self, prompt: str, request_id: str) -> str:
        start_time = time.time()
        try:
            response = await self.model.generate_content_async(
                prompt,
                request_options={"timeout": GENERATE_TIMEOUT},
            )
        except Exception as e:
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                (time.time() - start_time) * 1000,
                e,
            )
            raise

        text = response.text.strip() if response.text else ""
        logger.info(
            "[%s] Gemini generate completed in %.0fms, %d chars",
            request_id,
            (time.time() - start_time) * 1000,
            len(text),
        )
        return text

    async def health_check(self) -> bool:
        try:
            models = await asyncio.to_thread(lambda: list(genai.list_models()))
        except Exception as e:
            logger.warning("Gemini health check failed: %s", e)
            return False
        target = f"models/{self.settings.gemini_model}"
        if target not in {m.name for m in models}:
            logger.warning("Configured model %s not found in available models", target)
        return True
