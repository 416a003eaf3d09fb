"""Shared fakes: a manually driven timer factory and a scripted completion stub."""

from __future__ import annotations

import json
import random
from typing import Callable, List, Optional

import pytest

from grid_swarm.config import OrchestratorConfig
from grid_swarm.llm import StructuredLLMClient
from grid_swarm.orchestrator import AgentOrchestrator
from grid_swarm.providers import RecordingNotificationSink


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None], period: Optional[float], seq: int) -> None:
        self.due = due
        self.callback = callback
        self.period = period
        self.seq = seq
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """TimerFactory whose clock only moves when a test calls `advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: List[ManualHandle] = []
        self._seq = 0

    def _add(self, delay: float, callback: Callable[[], None], period: Optional[float]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback, period, self._seq)
        self._seq += 1
        self.handles.append(handle)
        return handle

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        return self._add(delay, callback, None)

    def call_every(self, period: float, callback: Callable[[], None]) -> ManualHandle:
        return self._add(period, callback, period)

    def active(self, *, repeating: Optional[bool] = None) -> List[ManualHandle]:
        handles = [h for h in self.handles if not h.cancelled]
        if repeating is None:
            return handles
        return [h for h in handles if (h.period is not None) == repeating]

    def advance(self, seconds: float = 0.0) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self.now = handle.due
            if handle.period is None:
                self.handles.remove(handle)
            else:
                handle.due += handle.period
            handle.callback()
        self.now = target


def packet_json(log_code: str = "OK", analysis: str = "Nominal.", recommendation: str = "Hold.", financial_impact: str = "N/A") -> str:
    return json.dumps(
        {
            "log_code": log_code,
            "analysis": analysis,
            "recommendation": recommendation,
            "financial_impact": financial_impact,
        }
    )


class ScriptedCompletion:
    """Completion stub: pops scripted replies (str or exception), then falls back to a default packet."""

    def __init__(self, replies=None) -> None:
        self.replies = list(replies or [])
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def __call__(self, system_prompt: str, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else packet_json()
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_config(**overrides) -> OrchestratorConfig:
    values = dict(
        log_capacity=50,
        offline_period_s=1.5,
        online_period_s=10.0,
        backoff_s=30.0,
        max_retries=2,
        retry_delay_s=0.0,
        offline_latency_s=0.0,
        noise_probability=0.0,
    )
    values.update(overrides)
    return OrchestratorConfig(**values)


def make_llm(completion: Optional[ScriptedCompletion] = None, **overrides) -> StructuredLLMClient:
    values = dict(
        api_key=None,
        base_url=None,
        completion_fn=completion,
        max_retries=2,
        retry_delay_s=0.0,
        offline_latency_s=0.0,
        sleep=lambda _s: None,
    )
    values.update(overrides)
    return StructuredLLMClient(**values)


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def notifier() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def build_orchestrator(timers, notifier):
    def _build(completion: Optional[ScriptedCompletion] = None, *, config: Optional[OrchestratorConfig] = None, **kwargs):
        return AgentOrchestrator(
            llm=make_llm(completion),
            notifier=kwargs.pop("notifier", notifier),
            config=config or make_config(),
            timers=timers,
            rng=kwargs.pop("rng", random.Random(7)),
            **kwargs,
        )

    return _build
