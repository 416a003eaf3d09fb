from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


def _timestamp() -> str:
    # YYMMDD_HHMMSS
    return datetime.now().strftime("%y%m%d_%H%M%S")


def _repo_root() -> Path:
    # grid_swarm/utils/logging.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


@dataclass
class RunContext:
    run_ts: str
    session_id: str
    logs_running_path: str
    logs_llm_direct_path: str
    logger: logging.Logger

    def log_llm(self, record: Dict[str, Any]) -> None:
        """Append one JSONL record to logs_llm_direct."""
        record = {"ts": datetime.now().isoformat(timespec="milliseconds"), **record}
        try:
            p = Path(self.logs_llm_direct_path)
            p.parent.mkdir(parents=True, exist_ok=True)
            with p.open("a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
        except OSError:
            # never raise from logging
            self.logger.debug("could not append llm record to %s", self.logs_llm_direct_path)

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)


def init_run_context(
    session_id: str,
    *,
    root: Optional[Path] = None,
    logs_running_dir: str = "logs_running",
    logs_llm_direct_dir: str = "logs_llm_direct",
    stream: bool = True,
) -> RunContext:
    """Create a per-session context with isolated log files.

    This avoids global logger handler conflicts and produces:
    - logs_llm_direct/<YYMMDD_HHMMSS>_<session>.jsonl
    - logs_running/<YYMMDD_HHMMSS>_<session>.log
    """

    root = root or _repo_root()
    ts = _timestamp()

    logs_running_path = str(root / logs_running_dir / f"{ts}_{session_id}.log")
    logs_llm_path = str(root / logs_llm_direct_dir / f"{ts}_{session_id}.jsonl")

    # build a dedicated logger
    logger_name = f"grid_swarm.{session_id}.{ts}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.propagate = False  # do not duplicate to root

    # Clear handlers if reused accidentally
    logger.handlers = []

    Path(logs_running_path).parent.mkdir(parents=True, exist_ok=True)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    fh = logging.FileHandler(logs_running_path, encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    if stream:
        sh = logging.StreamHandler()
        sh.setLevel(logging.INFO)
        sh.setFormatter(fmt)
        logger.addHandler(sh)

    ctx = RunContext(
        run_ts=ts,
        session_id=session_id,
        logs_running_path=logs_running_path,
        logs_llm_direct_path=logs_llm_path,
        logger=logger,
    )

    ctx.logger.info("RunContext initialized: session_id=%s ts=%s", session_id, ts)
    ctx.logger.info("logs_running=%s", logs_running_path)
    ctx.logger.info("logs_llm_direct=%s", logs_llm_path)
    return ctx
