"""AgentOrchestrator: the single object the UI and API talk to.

Constructed once at process start with its collaborators injected, then
passed by reference to consumers. It wires the broadcast hub, the circuit
breaker, the pipeline runner and the scheduler together and maps cycle
outcomes onto the orchestrator status.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from .backoff import BackoffCircuitBreaker
from .config import OrchestratorConfig
from .errors import ErrorKind, StageAborted
from .hub import EventBroadcastHub, LogListener, StatusListener, Unsubscribe
from .llm import StructuredLLMClient
from .providers import (
    EnvironmentalProvider,
    KnowledgeProvider,
    LoggingNotificationSink,
    NotificationSink,
    TelemetryProvider,
)
from .runner import PipelineRunner
from .scheduler import OrchestratorScheduler, ThreadingTimers, TimerFactory
from .schemas import OrchestratorStatus, StageEvent
from .utils.logging import RunContext

logger = logging.getLogger(__name__)


class AgentOrchestrator:
    def __init__(
        self,
        *,
        llm: Optional[StructuredLLMClient] = None,
        telemetry: Optional[TelemetryProvider] = None,
        environment: Optional[EnvironmentalProvider] = None,
        knowledge: Optional[KnowledgeProvider] = None,
        notifier: Optional[NotificationSink] = None,
        config: Optional[OrchestratorConfig] = None,
        timers: Optional[TimerFactory] = None,
        rng: Optional[random.Random] = None,
        run_context: Optional[RunContext] = None,
    ) -> None:
        self.config = config or OrchestratorConfig()
        self.llm = llm or StructuredLLMClient(
            max_retries=self.config.max_retries,
            retry_delay_s=self.config.retry_delay_s,
            offline_latency_s=self.config.offline_latency_s,
        )
        if run_context is not None:
            self.llm.run_context = run_context
        self.run_context = run_context
        self.knowledge = knowledge
        self.notifier = notifier or LoggingNotificationSink()
        self.timers = timers or ThreadingTimers()

        self.hub = EventBroadcastHub(capacity=self.config.log_capacity)
        self.breaker = BackoffCircuitBreaker(
            hub=self.hub,
            notifier=self.notifier,
            timers=self.timers,
            cooldown_s=self.config.backoff_s,
        )
        self.runner = PipelineRunner(
            llm=self.llm,
            publish=self.hub.publish,
            telemetry=telemetry,
            environment=environment,
            knowledge=knowledge,
            breaker=self.breaker,
            noise_probability=self.config.noise_probability,
            rng=rng,
        )
        self.scheduler = OrchestratorScheduler(cycle=self._cycle, timers=self.timers)

    # ------------------------------------------------------------- lifecycle

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    @property
    def status(self) -> OrchestratorStatus:
        return self.hub.status

    @property
    def provider_configured(self) -> bool:
        return self.llm.is_configured

    def start(self) -> bool:
        """Start the autonomous loop; a no-op (returning False) if already running."""
        if self.scheduler.is_running:
            return False
        # Fixed for the lifetime of this run, chosen by provider availability.
        period = self.config.period_for(self.llm.is_configured)
        logger.info("Orchestrator: starting autonomous loop (%s mode)", "online" if self.llm.is_configured else "offline")
        self.hub.set_status(OrchestratorStatus.RUNNING)
        return self.scheduler.start(period)

    def stop(self) -> bool:
        if not self.scheduler.stop():
            return False
        logger.info("Orchestrator: halting loop")
        self.hub.set_status(OrchestratorStatus.IDLE)
        return True

    def run_cycle(self) -> bool:
        """Run a single guarded cycle outside the timer; False if one is in flight.

        Only failures move the status here: RUNNING belongs to start()/stop().
        """
        return self.scheduler.run_once()

    def update_credentials(self, api_key: Optional[str], base_url: Optional[str] = None) -> None:
        self.llm.update_credentials(api_key, base_url)
        self.breaker.reset()
        self.hub.set_status(OrchestratorStatus.IDLE)

    # ------------------------------------------------------------- broadcast

    def subscribe_status(self, listener: StatusListener) -> Unsubscribe:
        return self.hub.subscribe_status(listener)

    def subscribe_log(self, listener: LogListener) -> Unsubscribe:
        return self.hub.subscribe_log(listener)

    def current_log(self) -> List[StageEvent]:
        return self.hub.current_log()

    # ----------------------------------------------------------------- cycle

    def _cycle(self) -> None:
        if self.breaker.engaged:
            logger.debug("backoff engaged, cycle skipped")
            return

        was_running = self.scheduler.is_running
        if was_running:
            self.hub.set_status(OrchestratorStatus.RUNNING)
            # stop() racing the promotion above must still end on IDLE
            if not self.scheduler.is_running:
                self.hub.set_status(OrchestratorStatus.IDLE)
        try:
            self.runner.run_cycle()
        except StageAborted as exc:
            logger.warning("cycle aborted at %s (%s): %s", exc.stage, exc.kind.value, exc.reason)
            if exc.kind != ErrorKind.RATE_LIMITED:
                self._mark_error(was_running)
        except Exception:  # pylint: disable=broad-except
            # Nothing escapes a cycle: the next tick always gets a fresh attempt.
            logger.exception("cycle crashed")
            self._mark_error(was_running)
        else:
            # a clean manual cycle clears an earlier failure but never claims RUNNING
            if not was_running and self.hub.status == OrchestratorStatus.ERROR:
                self.hub.set_status(OrchestratorStatus.IDLE)

    def _mark_error(self, was_running: bool) -> None:
        if self.breaker.engaged:
            return
        # stop() during the cycle already settled the status on IDLE
        if was_running and not self.scheduler.is_running:
            return
        self.hub.set_status(OrchestratorStatus.ERROR)
