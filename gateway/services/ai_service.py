# gateway/services/ai_service.py
# Purpose: Single place for AI calls with retries, jitter, and a minimal
# circuit breaker. Keeps the handler groups thin and testable.
# Notes:
# - The OpenAI client is built lazily so the app boots without credentials.
# - Failures surface as AIServiceError and travel to the error boundary.

from __future__ import annotations

import json
import logging
import random
import re
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

from openai import OpenAI

Messages = List[Dict[str, str]]

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AIServiceError(RuntimeError):
    """The AI backend failed or returned something unusable."""


class AIService:
    """Typed façade around the OpenAI client.

    Features:
    - Per-call retries with exponential backoff + jitter
    - Minimal circuit breaker (opens after N consecutive failures)
    - JSON helper for handlers that ask the model for structured output
    """

    def __init__(
        self,
        client: Any = None,
        logger: Optional[logging.Logger] = None,
        *,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        max_retries: int = 2,
        breaker_threshold: int = 3,
        breaker_cooldown: float = 20.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._logger = logger
        self._api_key = api_key
        self.model = model
        self._timeout = timeout
        self._max_retries = max_retries
        self._breaker_threshold = breaker_threshold
        self._breaker_cooldown = breaker_cooldown
        self._sleep = sleep
        self._consecutive_failures = 0
        self._breaker_open_until = 0.0

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key, max_retries=0, timeout=self._timeout)
        return self._client

    # ---- Circuit breaker helpers -------------------------------------------------

    def _check_breaker(self) -> None:
        if time.monotonic() < self._breaker_open_until:
            raise AIServiceError("AI service temporarily unavailable (circuit open)")

    def _record_success(self) -> None:
        self._consecutive_failures = 0

    def _record_failure(self) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures >= self._breaker_threshold:
            self._breaker_open_until = time.monotonic() + self._breaker_cooldown
            if self._logger:
                self._logger.error(
                    "circuit opened",
                    extra={
                        "event": "breaker.open",
                        "cooldown_s": self._breaker_cooldown,
                        "failures": self._consecutive_failures,
                    },
                )

    def _backoff(self, attempt: int) -> None:
        self._sleep(min(1.0 * (2**attempt), 5.0) + random.uniform(0, 0.25))

    # ---- Public API --------------------------------------------------------------

    def complete(self, messages: Messages, model: Optional[str] = None) -> str:
        """Non-streaming completion: returns the assistant text."""
        model = model or self.model
        self._check_breaker()
        attempt = 0
        while True:
            try:
                resp = self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    timeout=self._timeout,
                )
                self._record_success()
                content = (resp.choices[0].message.content or "").strip()
                if self._logger:
                    usage = getattr(resp, "usage", None)
                    extra = {"event": "ai.complete", "model": model}
                    if usage:
                        extra["total_tokens"] = getattr(usage, "total_tokens", None)
                    self._logger.info("ai complete", extra=extra)
                return content
            except Exception as exc:  # noqa: BLE001
                if self._logger:
                    self._logger.warning(
                        "ai error",
                        extra={"event": "ai.error", "attempt": attempt, "error": str(exc), "model": model},
                    )
                self._record_failure()
                if attempt >= self._max_retries:
                    raise AIServiceError(f"AI request failed: {exc}") from exc
                self._backoff(attempt)
                attempt += 1

    def complete_json(self, messages: Messages, model: Optional[str] = None) -> Any:
        """Completion whose reply must be a JSON document (code fences tolerated)."""
        raw = self.complete(messages, model=model)
        try:
            return json.loads(_FENCE_RE.sub("", raw.strip()))
        except json.JSONDecodeError as exc:
            raise AIServiceError("AI response was not valid JSON") from exc

    def stream(self, messages: Messages, model: Optional[str] = None) -> Iterator[str]:
        """Streaming completion: yields token chunks as strings."""
        model = model or self.model
        self._check_breaker()
        try:
            stream = self.client.chat.completions.create(
                model=model,
                messages=messages,
                stream=True,
                timeout=self._timeout,
            )
        except Exception as exc:  # noqa: BLE001
            self._record_failure()
            raise AIServiceError(f"AI stream failed: {exc}") from exc
        try:
            for chunk in stream:
                # SDK shape: chunk.choices[0].delta.content
                choices = getattr(chunk, "choices", None)
                if not choices:
                    continue
                delta = getattr(choices[0], "delta", None)
                token = getattr(delta, "content", None) if delta else None
                if token:
                    yield token
        except Exception as exc:  # noqa: BLE001
            self._record_failure()
            raise AIServiceError(f"AI stream interrupted: {exc}") from exc
        self._record_success()

    @property
    def breaker_open(self) -> bool:
        """True if the breaker is currently open (cooling down)."""
        return time.monotonic() < self._breaker_open_until
