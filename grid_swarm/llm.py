"""Structured-output LLM client wrapper.

The swarm is designed to run even without an LLM (deterministic fallbacks).
If OpenAI-compatible credentials are configured, each stage asks the provider
for a strict JSON packet; otherwise the offline narrator replays a fixed
five-phase storyline keyed by cycle number.

NOTE:
- Only generic/transient failures are retried here. A rate-limit rejection is
  raised immediately so the circuit breaker can pause the whole swarm.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from .errors import InferenceError, TransientInferenceError, classify_provider_error
from .narratives import offline_packet
from .prompts import SYSTEM_PROMPT
from .schemas import StagePacket
from .utils.logging import RunContext

logger = logging.getLogger(__name__)

# (system_prompt, user_prompt) -> raw provider text
CompletionFn = Callable[[str, str], str]

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_packet(raw: str, *, stage: str = "") -> StagePacket:
    """Strictly deserialize provider text; any failure is a transient error."""
    text = _FENCE_RE.sub("", (raw or "").strip())
    try:
        return StagePacket.model_validate_json(text or "{}")
    except ValidationError as exc:
        raise TransientInferenceError(f"unparsable packet: {exc.error_count()} error(s)", stage=stage, cause=exc) from exc


@dataclass
class StructuredLLMClient:
    model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    temperature: float = field(default_factory=lambda: float(os.getenv("OPENAI_TEMPERATURE", "0.2")))
    max_tokens: Optional[int] = None  # None means no limit (API default)
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    base_url: Optional[str] = field(default_factory=lambda: os.getenv("OPENAI_BASE_URL"))
    max_retries: int = 2
    retry_delay_s: float = 1.0
    offline_latency_s: float = 0.2
    run_context: Optional[RunContext] = None
    # Overrides the OpenAI SDK call; makes the client count as configured.
    completion_fn: Optional[CompletionFn] = None
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        # Allow override via environment variable
        env_max_tokens = os.getenv("OPENAI_MAX_TOKENS")
        if env_max_tokens:
            self.max_tokens = int(env_max_tokens)
        self._client: Any = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self.completion_fn is not None

    def update_credentials(self, api_key: Optional[str], base_url: Optional[str] = None) -> None:
        self.api_key = api_key or None
        if base_url is not None:
            self.base_url = base_url or None
        self._client = None
        logger.info("LLM credentials updated (configured=%s)", self.is_configured)

    def _log(self, record: Dict[str, Any]) -> None:
        if self.run_context:
            self.run_context.log_llm(record)

    def generate(self, stage_id: str, prompt: str, *, cycle: int = 0) -> StagePacket:
        """Return a structured packet for one stage, or raise a classified InferenceError."""
        if not self.is_configured:
            return self._offline(stage_id, prompt, cycle)

        attempts = self.max_retries + 1
        last_error: Optional[InferenceError] = None
        for attempt in range(1, attempts + 1):
            try:
                raw = self._complete(prompt)
                packet = parse_packet(raw, stage=stage_id)
            except Exception as exc:  # pylint: disable=broad-except
                err = classify_provider_error(exc, stage=stage_id)
                err.stage = stage_id
                self._log(
                    {
                        "event": "llm_packet",
                        "llm_used": True,
                        "model": self.model,
                        "stage": stage_id,
                        "attempt": attempt,
                        "prompt": prompt,
                        "fallback_used": False,
                        "error": f"{err.kind.value}: {err}",
                    }
                )
                if not err.retryable:
                    logger.warning("[LLM] %s failed (%s), not retrying: %s", stage_id, err.kind.value, err)
                    raise err
                last_error = err
                if attempt < attempts:
                    logger.info("[LLM] %s attempt %d/%d failed: %s", stage_id, attempt, attempts, err)
                    self.sleep(self.retry_delay_s)
                continue

            self._log(
                {
                    "event": "llm_packet",
                    "llm_used": True,
                    "model": self.model,
                    "stage": stage_id,
                    "attempt": attempt,
                    "prompt": prompt,
                    "fallback_used": False,
                    "response": packet.model_dump(),
                }
            )
            return packet

        logger.warning("[LLM] %s exhausted %d attempt(s)", stage_id, attempts)
        if last_error is None:
            # max_retries < 0 leaves no attempt at all
            raise TransientInferenceError(f"no attempt made (max_retries={self.max_retries})", stage=stage_id)
        raise last_error

    def _offline(self, stage_id: str, prompt: str, cycle: int) -> StagePacket:
        if self.offline_latency_s > 0:
            self.sleep(self.offline_latency_s)  # simulated thinking time
        packet = offline_packet(stage_id, cycle)
        self._log(
            {
                "event": "llm_packet",
                "llm_used": False,
                "model": self.model,
                "stage": stage_id,
                "cycle": cycle,
                "prompt": prompt,
                "fallback_used": True,
                "response": packet.model_dump(),
            }
        )
        return packet

    def _complete(self, prompt: str) -> str:
        if self.completion_fn is not None:
            return self.completion_fn(SYSTEM_PROMPT, prompt)

        if self._client is None:
            from openai import OpenAI

            # Initialize client with optional base_url for custom providers
            client_kwargs: Dict[str, Any] = {"api_key": self.api_key, "max_retries": 0}
            if self.base_url:
                client_kwargs["base_url"] = self.base_url
            self._client = OpenAI(**client_kwargs)

        request_kwargs: Dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if self.max_tokens is not None:
            request_kwargs["max_tokens"] = self.max_tokens

        resp = self._client.chat.completions.create(**request_kwargs)
        return (resp.choices[0].message.content or "").strip()
