"""Command line entry point: ``python -m grid_swarm``.

Examples:
    python -m grid_swarm --cycles 5          # five synchronous cycles, then exit
    python -m grid_swarm --watch 60          # run the scheduler for a minute
"""

from __future__ import annotations

import argparse
import random
import threading
from pathlib import Path
from typing import List, Optional

from .config import OrchestratorConfig
from .knowledge import KnowledgeBase
from .orchestrator import AgentOrchestrator
from .providers import LoggingNotificationSink, StaticEnvironment, StaticTelemetry
from .schemas import OrchestratorStatus, StageEvent
from .utils.logging import init_run_context


def format_event(event: StageEvent) -> str:
    line = f"[{event.timestamp}] {event.severity:<8} {event.source_stage}->{event.target_stage} {event.short_code}"
    if event.recommendation:
        line += f" | {event.recommendation}"
    if event.financial_impact:
        line += f" ({event.financial_impact})"
    return line


class _EventPrinter:
    """Prints only events not seen yet; the hub always sends full snapshots."""

    def __init__(self, show_system: bool = True) -> None:
        self.show_system = show_system
        # Holding the previous snapshot keeps its objects alive, so ids stay unique.
        self._last: List[StageEvent] = []

    def __call__(self, events: List[StageEvent]) -> None:
        seen = {id(event) for event in self._last}
        self._last = list(events)
        for event in events:
            if id(event) in seen:
                continue
            if event.is_system and not self.show_system:
                continue
            print(format_event(event), flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grid_swarm", description="Multi-stage grid agent swarm")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--cycles", type=int, default=None, help="Run N cycles synchronously and exit")
    mode.add_argument("--watch", type=float, default=None, help="Run the scheduler for SECONDS (0 = until Ctrl-C)")
    parser.add_argument("--no-noise", action="store_true", help="Disable SYSTEM noise events in offline mode")
    parser.add_argument("--load-mw", type=float, default=None, help="Static telemetry reading in MW")
    parser.add_argument("--knowledge", nargs="*", default=[], help="Text/CSV/JSON files to inject as context")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for noise events")
    parser.add_argument("--session", default="cli", help="Session id used for log file names")
    parser.add_argument("--log-root", type=Path, default=None, help="Directory holding logs_running/ and logs_llm_direct/")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = OrchestratorConfig()
    if args.no_noise:
        config.noise_probability = 0.0

    knowledge = KnowledgeBase()
    for path in args.knowledge:
        knowledge.ingest_file(Path(path))

    run_ctx = init_run_context(args.session, root=args.log_root, stream=False)
    orchestrator = AgentOrchestrator(
        telemetry=StaticTelemetry(reading=args.load_mw),
        environment=StaticEnvironment(),
        knowledge=knowledge,
        notifier=LoggingNotificationSink(run_ctx.logger),
        config=config,
        rng=random.Random(args.seed),
        run_context=run_ctx,
    )
    orchestrator.subscribe_status(lambda status: print(f"== status: {OrchestratorStatus(status).value}", flush=True))
    orchestrator.subscribe_log(_EventPrinter(show_system=not args.no_noise))

    try:
        if args.watch is None:
            for _ in range(args.cycles or 1):
                orchestrator.run_cycle()
            return 0 if orchestrator.status != OrchestratorStatus.ERROR else 1

        done = threading.Event()
        orchestrator.start()
        try:
            done.wait(args.watch if args.watch > 0 else None)
        except KeyboardInterrupt:
            print("\ninterrupted")
        finally:
            orchestrator.stop()
        return 0
    finally:
        run_ctx.close()


if __name__ == "__main__":
    raise SystemExit(main())
